"""Validate inbound channel events and fan them out to subscribers."""

from __future__ import annotations

from collections import deque
from collections.abc import Callable
from enum import Enum
import logging
from typing import Any

from pydantic import BaseModel
from pydantic import ValidationError

from roundclient.channel import protocol
from roundclient.channel.connection import ChannelConnectionManager
from roundclient.errors import MalformedEventError
from roundclient.listeners import ListenerSet
from roundclient.listeners import Subscription

from .models import OrderPlaced
from .models import Round
from .models import RoundStatus
from .models import TimerTick

logger = logging.getLogger(__name__)

EventHandler = Callable[[Any], None]


class RoundEventKind(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    CLOSED = "closed"
    FINALIZED = "finalized"
    STAKE_PLACED_BY_OTHER = "stakePlacedByOther"
    TIMER_TICK = "timerTick"


EVENT_KIND_BY_TYPE: dict[str, RoundEventKind] = {
    protocol.ROUND_CREATED: RoundEventKind.CREATED,
    protocol.ROUND_UPDATED: RoundEventKind.UPDATED,
    protocol.ROUND_CLOSED: RoundEventKind.CLOSED,
    protocol.ROUND_FINALIZED: RoundEventKind.FINALIZED,
    protocol.ORDER_PLACED: RoundEventKind.STAKE_PLACED_BY_OTHER,
    protocol.ROUND_TIMER: RoundEventKind.TIMER_TICK,
}

_PAYLOAD_MODEL: dict[RoundEventKind, type[BaseModel]] = {
    RoundEventKind.CREATED: Round,
    RoundEventKind.UPDATED: Round,
    RoundEventKind.CLOSED: Round,
    RoundEventKind.FINALIZED: Round,
    RoundEventKind.STAKE_PLACED_BY_OTHER: OrderPlaced,
    RoundEventKind.TIMER_TICK: TimerTick,
}

_REQUIRED_STATUS: dict[RoundEventKind, RoundStatus] = {
    RoundEventKind.CLOSED: RoundStatus.CLOSED,
    RoundEventKind.FINALIZED: RoundStatus.SETTLED,
}


def parse_event(event_type: str, payload: Any) -> tuple[RoundEventKind, BaseModel]:
    """Validate one wire event against its schema or raise ``MalformedEventError``."""
    kind = EVENT_KIND_BY_TYPE.get(event_type)
    if kind is None:
        raise MalformedEventError(event_type, "unknown event type")
    if not isinstance(payload, dict):
        raise MalformedEventError(event_type, "payload must be an object")
    try:
        event = _PAYLOAD_MODEL[kind].model_validate(payload)
    except ValidationError as exc:
        raise MalformedEventError(event_type, f"{exc.error_count()} validation error(s): {exc}") from exc
    required = _REQUIRED_STATUS.get(kind)
    if required is not None and isinstance(event, Round) and event.status is not required:
        raise MalformedEventError(event_type, f"status must be {required.value}, got {event.status.value}")
    return kind, event


class RoundEventDispatcher:
    """Synchronous, ordered fan-out of validated round events.

    Handlers for a kind run in registration order. Events are never
    reordered or coalesced; an event dispatched from inside a handler is
    queued and delivered after the current event finishes, so handlers are
    never re-entered. Malformed payloads are logged and dropped.
    """

    def __init__(self) -> None:
        self._listeners: dict[RoundEventKind, ListenerSet[EventHandler]] = {
            kind: ListenerSet() for kind in RoundEventKind
        }
        self._queue: deque[tuple[RoundEventKind, BaseModel]] = deque()
        self._dispatching = False
        self.dropped_count = 0

    def on(self, kind: RoundEventKind | str, handler: EventHandler) -> Subscription:
        return self._listeners[RoundEventKind(kind)].add(handler)

    def listener_count(self, kind: RoundEventKind | str | None = None) -> int:
        if kind is None:
            return sum(len(listeners) for listeners in self._listeners.values())
        return len(self._listeners[RoundEventKind(kind)])

    def remove_all_listeners(self) -> None:
        for listeners in self._listeners.values():
            listeners.clear()
        logger.debug("removed all round event listeners")

    def attach(self, connection: ChannelConnectionManager) -> Subscription:
        return connection.on_message(self.dispatch)

    def dispatch(self, event_type: str, payload: Any) -> bool:
        """Validate and deliver one wire event; returns False when it was dropped."""
        if event_type not in EVENT_KIND_BY_TYPE:
            logger.debug("ignoring non-round event %s", event_type)
            return False
        try:
            kind, event = parse_event(event_type, payload)
        except MalformedEventError as exc:
            self.dropped_count += 1
            logger.warning("dropping malformed event: %s", exc)
            return False
        self._queue.append((kind, event))
        if not self._dispatching:
            self._drain()
        return True

    def _drain(self) -> None:
        self._dispatching = True
        try:
            while self._queue:
                kind, event = self._queue.popleft()
                for handler in self._listeners[kind].snapshot():
                    try:
                        handler(event)
                    except Exception:
                        logger.exception("round event handler failed for %s", kind.value)
        finally:
            self._dispatching = False
