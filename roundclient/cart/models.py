"""Cart item and derived totals."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from roundclient.rounds.models import GameCategory


@dataclass(frozen=True, slots=True)
class CartItem:
    """One staged stake, local until the cart is submitted."""

    id: str
    game_category: GameCategory
    round_id: str
    selected_options: tuple[str, ...]
    stake_amount: int
    created_at: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "gameType": self.game_category.value,
            "roundId": self.round_id,
            "options": list(self.selected_options),
            "amount": self.stake_amount,
            "timestamp": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CartItem":
        return cls(
            id=str(data["id"]),
            game_category=GameCategory.parse(data["gameType"]),
            round_id=str(data["roundId"]),
            selected_options=tuple(str(option) for option in data["options"]),
            stake_amount=int(data["amount"]),
            created_at=float(data.get("timestamp", 0.0)),
        )


@dataclass(frozen=True, slots=True)
class CartTotals:
    """Values derived from the current items; never stored."""

    total_items: int
    subtotal: int
    service_charge: int
    grand_total: int
    potential_payout: float


@dataclass(frozen=True, slots=True)
class SubmissionReceipt:
    """Accepted submission as reported by the authority."""

    item_ids: tuple[str, ...]
    totals: CartTotals
    data: Any = None
    message: str | None = None
