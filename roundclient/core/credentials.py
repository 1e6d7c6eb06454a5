"""Session credential providers and local token inspection."""

from __future__ import annotations

import json
from datetime import datetime
from datetime import timezone
from pathlib import Path
from typing import Protocol

import jwt

TOKEN_FILE_KEY = "auth_token"


class CredentialProvider(Protocol):
    """Supplies the opaque session token attached to the channel handshake."""

    def get_token(self) -> str | None: ...


class StaticCredentialProvider:
    """Return a fixed token (or none)."""

    def __init__(self, token: str | None = None) -> None:
        self._token = token or None

    def get_token(self) -> str | None:
        return self._token

    def set_token(self, token: str | None) -> None:
        self._token = token or None


class FileCredentialProvider:
    """Read the persisted token from a file on every call.

    The file holds either ``{"auth_token": "..."}`` or the raw token text.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    def get_token(self) -> str | None:
        if not self._path.is_file():
            return None
        text = self._path.read_text(encoding="utf-8").strip()
        if not text:
            return None
        if text.startswith("{"):
            try:
                payload = json.loads(text)
            except json.JSONDecodeError:
                return None
            token = payload.get(TOKEN_FILE_KEY) if isinstance(payload, dict) else None
            return str(token) if token else None
        return text


def token_expiry_epoch(token: str) -> int | None:
    """Return the ``exp`` claim of a JWT without verifying it, or None for opaque tokens."""
    try:
        payload = jwt.decode(token, options={"verify_signature": False, "verify_exp": False})
    except jwt.InvalidTokenError:
        return None
    exp = payload.get("exp")
    if not isinstance(exp, int):
        return None
    return exp


def is_token_expired(token: str, *, now: datetime | None = None) -> bool:
    exp = token_expiry_epoch(token)
    if exp is None:
        return False
    current = now or datetime.now(timezone.utc)
    return int(current.astimezone(timezone.utc).timestamp()) >= exp
