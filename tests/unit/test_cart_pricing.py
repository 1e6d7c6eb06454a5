"""Cart pricing: service charge ceiling, floor and grand total."""

from __future__ import annotations

import pytest

from roundclient.cart.models import CartItem
from roundclient.cart.pricing import PricingPolicy
from roundclient.cart.pricing import calculate_service_charge
from roundclient.cart.pricing import compute_totals
from roundclient.rounds.models import GameCategory


def _item(amount: int, *, item_id: str = "i", options: tuple[str, ...] = ("Red",)) -> CartItem:
    return CartItem(
        id=item_id,
        game_category=GameCategory.COLOR,
        round_id="r1",
        selected_options=options,
        stake_amount=amount,
    )


@pytest.mark.parametrize(
    ("subtotal", "service_charge", "grand_total"),
    [
        (4, 5, 9),
        (1, 5, 6),
        (50, 5, 55),
        (51, 6, 57),
        (70, 7, 77),
        (100, 10, 110),
        (101, 11, 112),
        (1234, 124, 1358),
    ],
)
def test_service_charge_is_ceiling_of_ten_percent_with_floor_of_five(
    subtotal: int,
    service_charge: int,
    grand_total: int,
) -> None:
    """Input: one stake of ``subtotal`` -> Output: ceil(10%) floored at 5, grand total adds it."""
    totals = compute_totals([_item(subtotal)])

    assert totals.subtotal == subtotal
    assert totals.service_charge == service_charge
    assert totals.grand_total == grand_total
    assert totals.grand_total == totals.subtotal + totals.service_charge


def test_empty_cart_has_no_service_charge() -> None:
    """Input: no items -> Output: every total is zero, no minimum charge."""
    totals = compute_totals([])

    assert totals.total_items == 0
    assert totals.subtotal == 0
    assert totals.service_charge == 0
    assert totals.grand_total == 0


def test_subtotal_sums_every_item() -> None:
    """Input: stakes 30, 45, 25 -> Output: subtotal 100, charge 10, grand total 110."""
    totals = compute_totals([_item(30, item_id="a"), _item(45, item_id="b"), _item(25, item_id="c")])

    assert totals.total_items == 3
    assert totals.subtotal == 100
    assert totals.service_charge == 10
    assert totals.grand_total == 110


def test_policy_overrides_rate_and_floor() -> None:
    """Input: 5% rate with floor 2 -> Output: 10 -> 2, 100 -> 5, 0 -> 0."""
    policy = PricingPolicy(service_charge_rate=0.05, min_service_charge=2)

    assert calculate_service_charge(10, policy) == 2
    assert calculate_service_charge(100, policy) == 5
    assert calculate_service_charge(0, policy) == 0


def test_potential_payout_uses_best_multiplier_per_item() -> None:
    """Input: items with known multipliers -> Output: sum of stake x best selected multiplier."""
    multipliers = {"Red": 2.0, "Green": 3.0, "7": 7.0, "1": 2.0}
    items = [
        _item(10, item_id="a", options=("Red",)),
        _item(5, item_id="b", options=("1", "7")),
        _item(4, item_id="c", options=("Unpriced",)),
    ]

    totals = compute_totals(items, multiplier_lookup=lambda _round_id, option: multipliers.get(option))

    assert totals.potential_payout == pytest.approx(10 * 2.0 + 5 * 7.0)
