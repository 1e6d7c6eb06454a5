"""Push-channel wire protocol helpers."""

from __future__ import annotations

import json
from typing import Any

WS_PROTOCOL_VERSION = 1

# Inbound, authority -> client.
ROUND_CREATED = "round:created"
ROUND_UPDATED = "round:updated"
ROUND_CLOSED = "round:closed"
ROUND_FINALIZED = "round:finalized"
ORDER_PLACED = "order:placed"
ROUND_TIMER = "round:timer"

# Outbound intents, client -> authority.
JOIN_TRADING = "join:trading"
JOIN_ROUND = "join:round"

PING = "PING"
PONG = "PONG"

# Close code used by the authority for a refused credential.
CLOSE_UNAUTHORIZED = 4401


def ws_event(event_type: str, payload: dict[str, Any]) -> dict[str, Any]:
    return {"v": WS_PROTOCOL_VERSION, "type": event_type, "payload": payload}


def encode_event(event_type: str, payload: dict[str, Any]) -> str:
    return json.dumps(ws_event(event_type, payload))


def decode_frame(raw: str | bytes) -> tuple[str, Any] | None:
    """Split one frame into ``(type, payload)``; None when it is not an envelope."""
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError:
            return None
    if raw in (PING, PONG):
        return raw, {}
    try:
        message = json.loads(raw)
    except json.JSONDecodeError:
        return None
    if not isinstance(message, dict):
        return None
    event_type = message.get("type")
    if not isinstance(event_type, str) or not event_type:
        return None
    return event_type, message.get("payload")
