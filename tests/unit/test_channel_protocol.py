"""Wire envelope decoding and heartbeat bookkeeping."""

from __future__ import annotations

import asyncio

import pytest

from roundclient.channel import protocol
from roundclient.channel.heartbeat import HeartbeatState
from roundclient.channel.heartbeat import heartbeat_watchdog
from roundclient.channel.heartbeat import pong_frame
from roundclient.channel.transports import to_ws_url


def test_envelope_round_trip_keeps_type_and_payload() -> None:
    """Input: encoded join frame as text and bytes -> Output: same type and payload back."""
    frame = protocol.encode_event(protocol.JOIN_ROUND, {"roundId": "r1"})

    assert protocol.decode_frame(frame) == (protocol.JOIN_ROUND, {"roundId": "r1"})
    assert protocol.decode_frame(frame.encode("utf-8")) == (protocol.JOIN_ROUND, {"roundId": "r1"})


@pytest.mark.parametrize("raw", ["", "nope", "[1, 2]", '{"payload": {}}', '{"type": ""}'])
def test_non_envelopes_decode_to_none(raw: str) -> None:
    """Input: empty, non-JSON, list or typeless frame -> Output: None."""
    assert protocol.decode_frame(raw) is None


def test_bare_heartbeat_strings_are_accepted() -> None:
    """Input: bare PING and pong frame -> Output: heartbeat event types with empty payload."""
    assert protocol.decode_frame("PING") == (protocol.PING, {})
    assert protocol.decode_frame(pong_frame()) == (protocol.PONG, {})


@pytest.mark.parametrize(
    ("base_url", "expected"),
    [
        ("http://host:8000", "ws://host:8000"),
        ("https://host", "wss://host"),
        ("ws://host", "ws://host"),
    ],
)
def test_ws_url_scheme_mapping(base_url: str, expected: str) -> None:
    """Input: http, https or ws base url -> Output: matching ws/wss url."""
    assert to_ws_url(base_url) == expected


def test_watchdog_fires_after_silent_window() -> None:
    """Input: no frames for one window -> Output: timeout callback called once."""
    fired: list[int] = []

    async def scenario() -> HeartbeatState:
        state = HeartbeatState()

        async def on_timeout() -> None:
            fired.append(1)

        await heartbeat_watchdog(state, timeout_seconds=0.02, on_timeout=on_timeout)
        return state

    state = asyncio.run(scenario())

    assert fired == [1]
    assert state.missed_windows == 1


def test_frames_keep_watchdog_quiet() -> None:
    """Input: pings every 50ms against a 200ms window -> Output: timeout never fires."""
    async def scenario() -> list[int]:
        state = HeartbeatState()
        fired: list[int] = []

        async def on_timeout() -> None:
            fired.append(1)

        task = asyncio.create_task(heartbeat_watchdog(state, timeout_seconds=0.2, on_timeout=on_timeout))
        for _ in range(5):
            await asyncio.sleep(0.05)
            state.mark_ping_received()
        task.cancel()
        return fired

    assert asyncio.run(scenario()) == []


def test_undecodable_bytes_decode_to_none() -> None:
    """Input: binary frame that is not UTF-8 -> Output: None, no exception."""
    assert protocol.decode_frame(b"\xff\xfe") is None
