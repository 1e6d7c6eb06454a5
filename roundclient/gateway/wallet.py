"""Wallet balance reads."""

from __future__ import annotations

from pydantic import ValidationError

from roundclient.errors import SubmissionRejectedError

from .http import AuthorityClient
from .models import BalancePayload

BALANCE_PATH = "/wallet/balance"


class WalletClient(AuthorityClient):
    """Fetches the available balance; the caller decides when to poll."""

    async def get_balance(self) -> float:
        envelope = await self.request_envelope("GET", BALANCE_PATH)
        try:
            payload = BalancePayload.model_validate(envelope.data)
        except ValidationError as exc:
            raise SubmissionRejectedError(
                code="INVALID_RESPONSE",
                message="wallet balance response has no numeric balance",
            ) from exc
        return payload.balance
