"""Client-side mirror of the live round per game category."""

from __future__ import annotations

from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from datetime import timezone
import logging
import time

from roundclient.listeners import ListenerSet
from roundclient.listeners import Subscription

from .dispatcher import RoundEventDispatcher
from .dispatcher import RoundEventKind
from .models import GameCategory
from .models import OrderPlaced
from .models import Round
from .models import RoundStatus
from .models import TimerTick

logger = logging.getLogger(__name__)

RETIRED_ROUND_LIMIT = 64

# Position along upcoming -> open -> closed -> settled.
_STATUS_RANK: dict[RoundStatus, int] = {
    RoundStatus.UPCOMING: 0,
    RoundStatus.OPEN: 1,
    RoundStatus.CLOSED: 2,
    RoundStatus.SETTLED: 3,
}

ChangeHandler = Callable[[GameCategory, Round], None]


def can_transition(current: RoundStatus, target: RoundStatus) -> bool:
    """Forward moves along the normal path, or cancellation from any non-terminal state."""
    if current.is_terminal:
        return False
    if target is RoundStatus.CANCELLED:
        return True
    return _STATUS_RANK[target] >= _STATUS_RANK[current]


@dataclass(frozen=True, slots=True)
class Settlement:
    """Result recorded from a finalization event; informational only."""

    round_id: str
    sequence_number: int
    winning_option: str
    multiplier: float | None


@dataclass(frozen=True, slots=True)
class _Tick:
    time_left: float
    received_at: float


class RoundStateProjection:
    """Best-effort copy of the authoritative rounds, one live round per category.

    The dispatcher is the only writer. Status moves only on authority events;
    countdown values are advisory and never close a round.
    """

    def __init__(self, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._live: dict[GameCategory, Round] = {}
        self._retired: OrderedDict[str, Round] = OrderedDict()
        self._superseded: set[str] = set()
        self._settlements: dict[GameCategory, Settlement] = {}
        self._ticks: dict[str, _Tick] = {}
        self._activity: dict[str, int] = {}
        self._listeners: ListenerSet[ChangeHandler] = ListenerSet()

    def attach(self, dispatcher: RoundEventDispatcher) -> list[Subscription]:
        return [
            dispatcher.on(RoundEventKind.CREATED, self.apply_created),
            dispatcher.on(RoundEventKind.UPDATED, self.apply_round_event),
            dispatcher.on(RoundEventKind.CLOSED, self.apply_round_event),
            dispatcher.on(RoundEventKind.FINALIZED, self.apply_round_event),
            dispatcher.on(RoundEventKind.STAKE_PLACED_BY_OTHER, self.apply_order_placed),
            dispatcher.on(RoundEventKind.TIMER_TICK, self.apply_timer),
        ]

    def on_change(self, handler: ChangeHandler) -> Subscription:
        return self._listeners.add(handler)

    # Reads

    def current(self, category: GameCategory | str) -> Round | None:
        return self._live.get(GameCategory.parse(category))

    def live_rounds(self) -> dict[GameCategory, Round]:
        return dict(self._live)

    def get_round(self, round_id: str) -> Round | None:
        for live in self._live.values():
            if live.id == round_id:
                return live
        return self._retired.get(round_id)

    def status_of(self, round_id: str) -> RoundStatus | None:
        found = self.get_round(round_id)
        return found.status if found is not None else None

    def is_open(self, round_id: str) -> bool:
        """True only for a live round whose projected status is ``open``."""
        for live in self._live.values():
            if live.id == round_id:
                return live.status is RoundStatus.OPEN
        return False

    def is_superseded(self, round_id: str) -> bool:
        return round_id in self._superseded

    def last_settlement(self, category: GameCategory | str) -> Settlement | None:
        return self._settlements.get(GameCategory.parse(category))

    def activity_count(self, round_id: str) -> int:
        return self._activity.get(round_id, 0)

    def time_remaining(self, round_id: str, *, now: datetime | None = None) -> int:
        """Advisory whole seconds left in the stake window."""
        tick = self._ticks.get(round_id)
        if tick is not None:
            elapsed = self._clock() - tick.received_at
            return max(0, int(tick.time_left - elapsed))
        found = self.get_round(round_id)
        if found is None:
            return 0
        return calculate_time_remaining(found.opens_until, now=now)

    # Writes, driven by the dispatcher only

    def apply_created(self, incoming: Round) -> None:
        category = incoming.game_category
        live = self._live.get(category)
        if live is not None and live.id == incoming.id:
            self.apply_round_event(incoming)
            return
        if incoming.id in self._retired:
            logger.warning("ignoring created event for retired round %s", incoming.id)
            return
        if live is not None and incoming.sequence_number < live.sequence_number:
            logger.warning(
                "ignoring created round %s (seq %s) older than live %s (seq %s)",
                incoming.id,
                incoming.sequence_number,
                live.id,
                live.sequence_number,
            )
            return
        self._replace(category, incoming)

    def apply_round_event(self, incoming: Round) -> None:
        category = incoming.game_category
        live = self._live.get(category)
        if live is None or live.id != incoming.id:
            if incoming.id in self._retired:
                logger.warning("ignoring %s event for retired round %s", incoming.status.value, incoming.id)
                return
            if live is not None and incoming.sequence_number <= live.sequence_number:
                logger.warning("ignoring event for unknown older round %s", incoming.id)
                return
            # Missed the created event (e.g. joined mid-round); adopt it.
            self._replace(category, incoming)
            return

        if not can_transition(live.status, incoming.status):
            logger.warning(
                "rejected transition %s -> %s for round %s",
                live.status.value,
                incoming.status.value,
                live.id,
            )
            return
        if incoming.options != live.options or incoming.multipliers != live.multipliers:
            logger.warning("round %s changed its options or multipliers; keeping originals", live.id)
            incoming = incoming.model_copy(update={"options": live.options, "multipliers": live.multipliers})
            if incoming.winning_option is not None and incoming.winning_option not in live.options:
                logger.warning("round %s winning option is not an original option; ignoring", live.id)
                return
        self._store(category, incoming)

    def apply_order_placed(self, event: OrderPlaced) -> None:
        round_id = event.round.id
        if not self._is_live(round_id):
            logger.debug("ignoring order activity for round %s that is not live", round_id)
            return
        self._activity[round_id] = self._activity.get(round_id, 0) + 1

    def apply_timer(self, tick: TimerTick) -> None:
        if not self._is_live(tick.round_id):
            logger.debug("ignoring timer tick for round %s that is not live", tick.round_id)
            return
        self._ticks[tick.round_id] = _Tick(time_left=tick.time_left, received_at=self._clock())

    def _replace(self, category: GameCategory, incoming: Round) -> None:
        old = self._live.get(category)
        if old is not None:
            if not old.status.is_terminal:
                self._superseded.add(old.id)
                logger.info("round %s superseded by %s", old.id, incoming.id)
            self._retire(old)
        self._store(category, incoming)

    def _store(self, category: GameCategory, round_: Round) -> None:
        self._live[category] = round_
        if round_.status is RoundStatus.SETTLED and round_.winning_option is not None:
            self._settlements[category] = Settlement(
                round_id=round_.id,
                sequence_number=round_.sequence_number,
                winning_option=round_.winning_option,
                multiplier=round_.multiplier_for(round_.winning_option),
            )
        if round_.status is not RoundStatus.OPEN:
            self._ticks.pop(round_.id, None)
        logger.debug("projected %s round %s as %s", category.value, round_.id, round_.status.value)
        for handler in self._listeners.snapshot():
            handler(category, round_)

    def _is_live(self, round_id: str) -> bool:
        return any(live.id == round_id for live in self._live.values())

    def _retire(self, old: Round) -> None:
        self._retired[old.id] = old
        self._ticks.pop(old.id, None)
        self._activity.pop(old.id, None)
        while len(self._retired) > RETIRED_ROUND_LIMIT:
            dropped_id, _ = self._retired.popitem(last=False)
            self._superseded.discard(dropped_id)


def calculate_time_remaining(ends_at: datetime, *, now: datetime | None = None) -> int:
    current = now or datetime.now(timezone.utc)
    if ends_at.tzinfo is None:
        ends_at = ends_at.replace(tzinfo=timezone.utc)
    if current.tzinfo is None:
        current = current.replace(tzinfo=timezone.utc)
    return max(0, int((ends_at - current).total_seconds()))


def format_countdown(seconds: int | float) -> str:
    """Render seconds as ``MM:SS``."""
    total = max(0, int(seconds))
    minutes, secs = divmod(total, 60)
    return f"{minutes:02d}:{secs:02d}"
