"""Pure pricing over staged cart items."""

from __future__ import annotations

from collections.abc import Callable
from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal
import math

from .models import CartItem
from .models import CartTotals

MultiplierLookup = Callable[[str, str], float | None]


@dataclass(frozen=True, slots=True)
class PricingPolicy:
    service_charge_rate: float = 0.10
    min_service_charge: int = 5


DEFAULT_POLICY = PricingPolicy()


def calculate_subtotal(items: Sequence[CartItem]) -> int:
    return sum(item.stake_amount for item in items)


def calculate_service_charge(subtotal: int, policy: PricingPolicy = DEFAULT_POLICY) -> int:
    """``max(ceil(subtotal * rate), floor)`` for a non-empty cart, else 0."""
    if subtotal <= 0:
        return 0
    # Decimal keeps 70 * 0.10 at exactly 7 before the ceiling.
    charge = math.ceil(Decimal(subtotal) * Decimal(str(policy.service_charge_rate)))
    return max(charge, policy.min_service_charge)


def potential_payout(items: Sequence[CartItem], multiplier_lookup: MultiplierLookup | None) -> float:
    """Best-case payout if one selected option of every item wins; informational only."""
    if multiplier_lookup is None:
        return 0.0
    total = 0.0
    for item in items:
        multipliers = [multiplier_lookup(item.round_id, option) for option in item.selected_options]
        known = [value for value in multipliers if value is not None]
        if known:
            total += item.stake_amount * max(known)
    return total


def compute_totals(
    items: Sequence[CartItem],
    policy: PricingPolicy = DEFAULT_POLICY,
    multiplier_lookup: MultiplierLookup | None = None,
) -> CartTotals:
    subtotal = calculate_subtotal(items)
    service_charge = calculate_service_charge(subtotal, policy) if items else 0
    return CartTotals(
        total_items=len(items),
        subtotal=subtotal,
        service_charge=service_charge,
        grand_total=subtotal + service_charge,
        potential_payout=potential_payout(items, multiplier_lookup),
    )
