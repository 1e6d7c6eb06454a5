"""Order cart: stage stakes locally, price them, submit them as one batch."""

from __future__ import annotations

from collections.abc import Callable
from collections.abc import Iterable
from collections.abc import Sequence
import logging
import time
from typing import Any
from typing import Protocol
import uuid

from roundclient.errors import CartValidationError
from roundclient.errors import InsufficientBalanceError
from roundclient.errors import StaleRoundError
from roundclient.errors import SubmissionInProgressError
from roundclient.rounds.models import GameCategory
from roundclient.rounds.models import RoundStatus
from roundclient.rounds.projection import RoundStateProjection

from .models import CartItem
from .models import CartTotals
from .models import SubmissionReceipt
from .pricing import DEFAULT_POLICY
from .pricing import PricingPolicy
from .pricing import compute_totals
from .storage import CartStore

logger = logging.getLogger(__name__)

MAX_CART_ITEMS = 20
MAX_NUMBER_SELECTIONS = 3


class SubmissionBackend(Protocol):
    async def submit(self, items: Sequence[CartItem]) -> Any: ...


class BalanceProvider(Protocol):
    async def get_balance(self) -> float: ...


def generate_cart_item_id() -> str:
    return f"cart_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def normalize_options(selected_options: Iterable[Any]) -> tuple[str, ...]:
    """Strip, stringify and deduplicate while keeping first-seen order."""
    seen: dict[str, None] = {}
    for option in selected_options:
        text = str(option).strip()
        if text:
            seen.setdefault(text, None)
    return tuple(seen)


class OrderCartEngine:
    """Single-writer cart over the round projection.

    Items are kept in insertion order. Totals are recomputed on every read.
    ``submit`` re-checks every item's round immediately before the request
    and leaves the cart untouched on any failure.
    """

    def __init__(
        self,
        projection: RoundStateProjection,
        *,
        gateway: SubmissionBackend | None = None,
        wallet: BalanceProvider | None = None,
        policy: PricingPolicy = DEFAULT_POLICY,
        max_items: int = MAX_CART_ITEMS,
        max_number_selections: int = MAX_NUMBER_SELECTIONS,
        store: CartStore | None = None,
        id_factory: Callable[[], str] = generate_cart_item_id,
    ) -> None:
        self._projection = projection
        self._gateway = gateway
        self._wallet = wallet
        self._policy = policy
        self._max_items = max_items
        self._max_number_selections = max_number_selections
        self._store = store
        self._id_factory = id_factory
        self._items: list[CartItem] = store.load() if store is not None else []
        self._submitting = False

    @property
    def items(self) -> tuple[CartItem, ...]:
        return tuple(self._items)

    @property
    def is_submitting(self) -> bool:
        return self._submitting

    def __len__(self) -> int:
        return len(self._items)

    def add_item(
        self,
        game_category: GameCategory | str,
        round_id: str,
        selected_options: Iterable[Any],
        stake_amount: int,
    ) -> str:
        """Stage one stake and return its cart item id, or raise without changing the cart."""
        try:
            category = GameCategory.parse(game_category)
        except ValueError as exc:
            raise CartValidationError(f"unknown game category: {game_category!r}") from exc

        if len(self._items) >= self._max_items:
            raise CartValidationError(f"cart is full: at most {self._max_items} stakes per batch")
        if isinstance(stake_amount, bool) or not isinstance(stake_amount, int):
            raise CartValidationError("stake amount must be a whole number of currency units")
        if stake_amount <= 0:
            raise CartValidationError("stake amount must be greater than 0")

        options = normalize_options(selected_options)
        if not options:
            raise CartValidationError("select at least one option")
        self._check_selection_bound(category, options)

        target = self._projection.get_round(round_id)
        if target is None or not self._projection.is_open(round_id):
            status = target.status.value if target is not None else "unknown"
            raise StaleRoundError(
                f"round {round_id} is not accepting stakes (status={status})", stale_item_ids=[]
            )
        if target.game_category is not category:
            raise CartValidationError(
                f"round {round_id} belongs to {target.game_category.value}, not {category.value}"
            )
        unknown = [option for option in options if option not in target.options]
        if unknown:
            raise CartValidationError(f"options not offered by round {round_id}: {', '.join(unknown)}")

        item = CartItem(
            id=self._id_factory(),
            game_category=category,
            round_id=round_id,
            selected_options=options,
            stake_amount=stake_amount,
            created_at=time.time(),
        )
        self._items.append(item)
        self._persist()
        logger.debug("staged %s on round %s: %s x %s", category.value, round_id, options, stake_amount)
        return item.id

    def remove_item(self, item_id: str) -> bool:
        """Remove one item; returns False (and changes nothing) for an unknown id."""
        for idx, item in enumerate(self._items):
            if item.id == item_id:
                del self._items[idx]
                self._persist()
                return True
        return False

    def clear(self) -> None:
        """Drop every staged item. Irreversible; confirmation belongs to the caller."""
        self._items.clear()
        self._persist()

    def compute_totals(self) -> CartTotals:
        return compute_totals(self._items, self._policy, self._multiplier_lookup)

    def items_for_round(self, round_id: str) -> list[CartItem]:
        return [item for item in self._items if item.round_id == round_id]

    def items_for_category(self, category: GameCategory | str) -> list[CartItem]:
        category = GameCategory.parse(category)
        return [item for item in self._items if item.game_category is category]

    def stale_items(self) -> list[CartItem]:
        """Items whose round has left ``open`` (closed, settled, cancelled, superseded, unknown)."""
        return [item for item in self._items if not self._projection.is_open(item.round_id)]

    def validate_balance(self, balance: float) -> None:
        if not self._items:
            raise CartValidationError("cart is empty")
        totals = self.compute_totals()
        if balance < totals.grand_total:
            raise InsufficientBalanceError(required=totals.grand_total, available=balance)

    async def submit(self) -> SubmissionReceipt:
        """Submit every staged item as one request; the cart is unchanged on failure."""
        if self._gateway is None or self._wallet is None:
            raise RuntimeError("cart engine has no submission gateway or wallet configured")
        if self._submitting:
            raise SubmissionInProgressError("a submission is already in flight")

        self._submitting = True
        try:
            snapshot = tuple(self._items)
            if not snapshot:
                raise CartValidationError("cart is empty")
            self._raise_if_stale(snapshot)

            totals = compute_totals(snapshot, self._policy, self._multiplier_lookup)
            balance = await self._wallet.get_balance()
            if balance < totals.grand_total:
                raise InsufficientBalanceError(required=totals.grand_total, available=balance)

            # The balance read suspended; rounds may have closed meanwhile.
            self._raise_if_stale(snapshot)
            accepted = await self._gateway.submit(snapshot)
        finally:
            self._submitting = False

        submitted_ids = {item.id for item in snapshot}
        self._items = [item for item in self._items if item.id not in submitted_ids]
        self._persist()
        logger.info("submitted %s stakes, grand total %s", len(snapshot), totals.grand_total)
        return SubmissionReceipt(
            item_ids=tuple(item.id for item in snapshot),
            totals=totals,
            data=getattr(accepted, "data", accepted),
            message=getattr(accepted, "message", None),
        )

    def _raise_if_stale(self, snapshot: Sequence[CartItem]) -> None:
        stale = [item for item in snapshot if not self._projection.is_open(item.round_id)]
        if not stale:
            return
        described = []
        for item in stale:
            status = self._projection.status_of(item.round_id)
            if self._projection.is_superseded(item.round_id):
                reason = "superseded"
            else:
                reason = status.value if isinstance(status, RoundStatus) else "unknown"
            described.append(f"{item.id} ({reason})")
        raise StaleRoundError(
            f"{len(stale)} staged stake(s) target rounds no longer open: {', '.join(described)}",
            stale_item_ids=[item.id for item in stale],
        )

    def _check_selection_bound(self, category: GameCategory, options: tuple[str, ...]) -> None:
        if category is GameCategory.COLOR and len(options) != 1:
            raise CartValidationError("color stakes take exactly one option per add")
        if category is GameCategory.NUMBER and len(options) > self._max_number_selections:
            raise CartValidationError(
                f"number stakes take at most {self._max_number_selections} options"
            )

    def _multiplier_lookup(self, round_id: str, option: str) -> float | None:
        target = self._projection.get_round(round_id)
        if target is None:
            return None
        return target.multiplier_for(option)

    def _persist(self) -> None:
        if self._store is not None:
            self._store.save(self._items)
