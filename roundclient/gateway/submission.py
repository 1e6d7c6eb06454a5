"""Hand a finalized cart to the authority as one request."""

from __future__ import annotations

from collections.abc import Sequence
import logging
from typing import Any

from roundclient.cart.models import CartItem

from .http import AuthorityClient
from .models import AcceptedSubmission

logger = logging.getLogger(__name__)

BATCH_PATH = "/trading/place-trades-batch"


def build_batch_payload(items: Sequence[CartItem]) -> dict[str, Any]:
    trades = []
    for item in items:
        trades.append(
            {
                "clientItemId": item.id,
                "roundId": item.round_id,
                "tradeType": item.game_category.trade_type,
                "selection": item.selected_options[0],
                "selections": list(item.selected_options),
                "amount": item.stake_amount,
            }
        )
    return {"trades": trades}


class SubmissionGateway(AuthorityClient):
    """Atomic, non-retrying submission of every staged stake in one call."""

    async def submit(self, items: Sequence[CartItem]) -> AcceptedSubmission:
        if not items:
            raise ValueError("cannot submit an empty batch")
        payload = build_batch_payload(items)
        logger.info("submitting %s staged stakes", len(items))
        envelope = await self.request_envelope("POST", BATCH_PATH, json=payload)
        return AcceptedSubmission(message=envelope.message, data=envelope.data)
