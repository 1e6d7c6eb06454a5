"""Per-call-site listener handles."""

from __future__ import annotations

from collections.abc import Callable
from typing import Generic
from typing import TypeVar

H = TypeVar("H", bound=Callable[..., object])


class Subscription:
    """Handle returned by every ``on_*`` registration; ``cancel`` detaches it."""

    __slots__ = ("_listeners", "_token")

    def __init__(self, listeners: "ListenerSet", token: int) -> None:
        self._listeners: ListenerSet | None = listeners
        self._token = token

    @property
    def active(self) -> bool:
        return self._listeners is not None and self._listeners.has(self._token)

    def cancel(self) -> None:
        if self._listeners is None:
            return
        self._listeners.discard(self._token)
        self._listeners = None


class ListenerSet(Generic[H]):
    """Ordered handler registry; handlers run in registration order."""

    def __init__(self) -> None:
        self._handlers: dict[int, H] = {}
        self._next_token = 0

    def add(self, handler: H) -> Subscription:
        token = self._next_token
        self._next_token += 1
        self._handlers[token] = handler
        return Subscription(self, token)

    def has(self, token: int) -> bool:
        return token in self._handlers

    def discard(self, token: int) -> None:
        self._handlers.pop(token, None)

    def clear(self) -> None:
        self._handlers.clear()

    def snapshot(self) -> list[H]:
        return list(self._handlers.values())

    def __len__(self) -> int:
        return len(self._handlers)
