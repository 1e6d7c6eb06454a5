"""Client-side heartbeat handling and transport liveness watchdog."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from collections.abc import Callable
from datetime import datetime
from datetime import timezone

from .protocol import PING
from .protocol import PONG
from .protocol import encode_event


class HeartbeatState:
    """Track frames received on one transport."""

    def __init__(self) -> None:
        self.last_frame_at: float | None = None
        self.last_ping_at: float | None = None
        self.missed_windows = 0
        self._frame_event = asyncio.Event()

    def mark_frame_received(self) -> None:
        self.last_frame_at = datetime.now(timezone.utc).timestamp()
        self.missed_windows = 0
        self._frame_event.set()

    def mark_ping_received(self) -> None:
        self.last_ping_at = datetime.now(timezone.utc).timestamp()
        self.mark_frame_received()

    async def wait_for_frame(self, *, timeout_seconds: float) -> bool:
        self._frame_event.clear()
        try:
            await asyncio.wait_for(self._frame_event.wait(), timeout=timeout_seconds)
        except TimeoutError:
            self.missed_windows += 1
            return False
        return True


def is_ping(event_type: str) -> bool:
    return event_type == PING


def is_pong(event_type: str) -> bool:
    return event_type == PONG


def pong_frame() -> str:
    return encode_event(PONG, {})


async def heartbeat_watchdog(
    heartbeat_state: HeartbeatState,
    *,
    timeout_seconds: float,
    on_timeout: Callable[[], Awaitable[None]],
) -> None:
    """Invoke ``on_timeout`` once the transport stays silent for a whole window."""
    while True:
        received = await heartbeat_state.wait_for_frame(timeout_seconds=timeout_seconds)
        if not received:
            await on_timeout()
            return
