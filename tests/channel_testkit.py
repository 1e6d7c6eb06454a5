"""Shared fakes for channel, projection and cart tests."""

from __future__ import annotations

import asyncio
from collections import deque
from collections.abc import Callable
from datetime import datetime
from datetime import timedelta
from datetime import timezone
import json
from typing import Any

from roundclient.channel.protocol import ws_event
from roundclient.core.config import Settings
from roundclient.errors import ConnectivityError

COLOR_OPTIONS = ["Red", "Green", "Violet"]
NUMBER_OPTIONS = [str(number) for number in range(10)]

_CLOSED = object()
_DROPPED = object()


def make_settings(**overrides: Any) -> Settings:
    values: dict[str, Any] = {
        "roundclient_api_base_url": "http://authority.test/api",
        "roundclient_transports": "websocket",
        "roundclient_reconnect_attempts": 5,
        "roundclient_reconnect_delay_seconds": 2.0,
    }
    values.update(overrides)
    return Settings(**values)


def round_payload(
    *,
    round_id: str = "r1",
    seq: int = 1,
    category: str = "color",
    status: str = "open",
    winning: str | None = None,
    options: list[str] | None = None,
    multipliers: dict[str, float] | None = None,
    ends_in: float = 60.0,
) -> dict[str, Any]:
    """Wire-shaped round object as the authority sends it."""
    if options is None:
        options = COLOR_OPTIONS if category in {"color", "colour"} else NUMBER_OPTIONS
    if multipliers is None:
        multipliers = {option: 2.0 for option in options}
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "id": round_id,
        "roundNumber": seq,
        "gameType": category,
        "status": status,
        "endsAt": (now + timedelta(seconds=ends_in)).isoformat(),
        "resultDeclarationTime": (now + timedelta(seconds=ends_in + 30)).isoformat(),
        "options": list(options),
        "multipliers": dict(multipliers),
    }
    if winning is not None:
        payload["winningOption"] = winning
    return payload


class FakeTransport:
    """In-memory transport whose inbound frames are pushed by the test."""

    def __init__(self, network: "FakeNetwork", name: str) -> None:
        self.name = name
        self._network = network
        self.token: str | None = None
        self.base_url: str | None = None
        self.sent: list[dict[str, Any]] = []
        self.raw_sent: list[str] = []
        self.closed = False
        self._inbox: asyncio.Queue[Any] = asyncio.Queue()

    async def open(self, base_url: str, token: str | None) -> None:
        self.base_url = base_url
        self.token = token
        outcome = self._network.next_outcome(self.name)
        if isinstance(outcome, Exception):
            raise outcome

    async def send(self, frame: str) -> None:
        if self.closed:
            raise ConnectivityError("fake transport closed")
        self.raw_sent.append(frame)
        self.sent.append(json.loads(frame))

    async def recv(self) -> str | bytes:
        item = await self._inbox.get()
        if item is _CLOSED:
            raise ConnectivityError("fake transport closed locally")
        if item is _DROPPED:
            raise ConnectivityError("fake transport dropped by peer")
        if isinstance(item, Exception):
            raise item
        return item

    async def close(self) -> None:
        self.closed = True
        self._inbox.put_nowait(_CLOSED)

    def push(self, event_type: str, payload: dict[str, Any]) -> None:
        self._inbox.put_nowait(json.dumps(ws_event(event_type, payload)))

    def push_raw(self, frame: str | bytes) -> None:
        self._inbox.put_nowait(frame)

    def drop(self, error: Exception | None = None) -> None:
        self._inbox.put_nowait(error if error is not None else _DROPPED)

    def sent_types(self) -> list[str]:
        return [message["type"] for message in self.sent]


class FakeNetwork:
    """Scripted open() outcomes shared by every transport it creates.

    Outcomes are consumed in order; once exhausted every open succeeds.
    """

    def __init__(self, outcomes: list[Exception | None] | None = None) -> None:
        self._outcomes: deque[Exception | None] = deque(outcomes or [])
        self.transports: list[FakeTransport] = []
        self.sleeps: list[float] = []

    def next_outcome(self, name: str) -> Exception | None:
        if self._outcomes:
            return self._outcomes.popleft()
        return None

    def factory(self, name: str = "websocket") -> Callable[[], FakeTransport]:
        def build() -> FakeTransport:
            transport = FakeTransport(self, name)
            self.transports.append(transport)
            return transport

        return build

    def factories(self, *names: str) -> dict[str, Callable[[], FakeTransport]]:
        return {name: self.factory(name) for name in (names or ("websocket",))}

    async def sleep(self, delay: float) -> None:
        self.sleeps.append(delay)
        await asyncio.sleep(0)

    @property
    def latest(self) -> FakeTransport:
        return self.transports[-1]


async def wait_until(predicate: Callable[[], bool], *, timeout_seconds: float = 2.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout_seconds
    while not predicate():
        if loop.time() >= deadline:
            raise AssertionError("condition not reached before timeout")
        await asyncio.sleep(0.001)


async def settle() -> None:
    """Let queued callbacks and background tasks run."""
    for _ in range(5):
        await asyncio.sleep(0)


class RecordingNotifier:
    """Notifier that keeps every ``(level, title, message)`` it is given."""

    def __init__(self) -> None:
        self.messages: list[tuple[str, str, str]] = []

    def info(self, title: str, message: str) -> None:
        self.messages.append(("info", title, message))

    def success(self, title: str, message: str) -> None:
        self.messages.append(("success", title, message))

    def error(self, title: str, message: str) -> None:
        self.messages.append(("error", title, message))
