"""Streaming and long-polling transports for the push channel.

Each transport carries text frames in the ``{"v", "type", "payload"}``
envelope. Failures are reported as ``ConnectivityError`` (retryable) or
``AuthRejectedError`` (not retryable).
"""

from __future__ import annotations

from collections import deque
import json
import logging
from typing import Any
from typing import Protocol
from urllib.parse import urlencode

import httpx
import websockets
from websockets.exceptions import ConnectionClosed
from websockets.exceptions import InvalidHandshake
from websockets.exceptions import WebSocketException

from roundclient.errors import AuthRejectedError
from roundclient.errors import ConnectivityError

from .protocol import CLOSE_UNAUTHORIZED

logger = logging.getLogger(__name__)

WS_PATH = "/ws/trading"
POLL_OPEN_PATH = "/channel/open"
POLL_PATH = "/channel/poll"
POLL_EMIT_PATH = "/channel/emit"
POLL_CLOSE_PATH = "/channel/close"

AUTH_REJECTED_STATUSES = frozenset({401, 403})


class Transport(Protocol):
    """One physical connection attempt to the channel endpoint."""

    name: str

    async def open(self, base_url: str, token: str | None) -> None: ...

    async def send(self, frame: str) -> None: ...

    async def recv(self) -> str | bytes: ...

    async def close(self) -> None: ...


def to_ws_url(base_url: str) -> str:
    if base_url.startswith("https://"):
        return "wss://" + base_url[len("https://") :]
    if base_url.startswith("http://"):
        return "ws://" + base_url[len("http://") :]
    return base_url


def _handshake_status(exc: InvalidHandshake) -> int | None:
    response = getattr(exc, "response", None)
    status = getattr(response, "status_code", None)
    if status is None:
        status = getattr(exc, "status_code", None)
    return int(status) if status is not None else None


def _json_object(response: httpx.Response) -> dict[str, Any]:
    try:
        payload = response.json()
    except ValueError as exc:
        raise ConnectivityError("polling response is not JSON") from exc
    if not isinstance(payload, dict):
        raise ConnectivityError("polling response must be a JSON object")
    return payload



class WebSocketTransport:
    """Persistent streaming transport backed by ``websockets``."""

    name = "websocket"

    def __init__(self, *, open_timeout: float = 10.0) -> None:
        self._open_timeout = open_timeout
        self._ws: Any = None

    async def open(self, base_url: str, token: str | None) -> None:
        url = to_ws_url(base_url.rstrip("/")) + WS_PATH
        if token:
            url = f"{url}?{urlencode({'token': token})}"
        try:
            self._ws = await websockets.connect(url, open_timeout=self._open_timeout)
        except InvalidHandshake as exc:
            status = _handshake_status(exc)
            if status in AUTH_REJECTED_STATUSES:
                raise AuthRejectedError(f"handshake rejected with status {status}") from exc
            raise ConnectivityError(f"websocket handshake failed: {exc}") from exc
        except (OSError, TimeoutError, WebSocketException) as exc:
            raise ConnectivityError(f"websocket connect failed: {exc}") from exc

    async def send(self, frame: str) -> None:
        if self._ws is None:
            raise ConnectivityError("websocket is not open")
        try:
            await self._ws.send(frame)
        except ConnectionClosed as exc:
            raise self._closed_error(exc) from exc

    async def recv(self) -> str | bytes:
        if self._ws is None:
            raise ConnectivityError("websocket is not open")
        try:
            raw = await self._ws.recv()
        except ConnectionClosed as exc:
            raise self._closed_error(exc) from exc
        return raw

    async def close(self) -> None:
        ws, self._ws = self._ws, None
        if ws is not None:
            await ws.close()

    @staticmethod
    def _closed_error(exc: ConnectionClosed) -> Exception:
        received = getattr(exc, "rcvd", None)
        code = getattr(received, "code", None)
        if code == CLOSE_UNAUTHORIZED:
            return AuthRejectedError("channel closed: UNAUTHORIZED")
        return ConnectivityError(f"channel closed (code={code})")


class LongPollingTransport:
    """Fallback transport that long-polls the channel over plain HTTP."""

    name = "polling"

    def __init__(
        self,
        *,
        poll_timeout: float = 25.0,
        request_timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._poll_timeout = poll_timeout
        self._request_timeout = request_timeout
        self._client = client
        self._owns_client = client is None
        self._base_url: str | None = None
        self._sid: str | None = None
        self._headers: dict[str, str] = {}
        self._buffer: deque[str] = deque()

    async def open(self, base_url: str, token: str | None) -> None:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._request_timeout, trust_env=False)
        self._base_url = base_url.rstrip("/")
        self._headers = {"Authorization": f"Bearer {token}"} if token else {}
        response = await self._request("POST", POLL_OPEN_PATH, json={})
        sid = _json_object(response).get("sid")
        if not isinstance(sid, str) or not sid:
            raise ConnectivityError("polling handshake returned no session id")
        self._sid = sid

    async def send(self, frame: str) -> None:
        self._require_open()
        await self._request("POST", POLL_EMIT_PATH, json={"sid": self._sid, "frame": json.loads(frame)})

    async def recv(self) -> str:
        self._require_open()
        while not self._buffer:
            response = await self._request(
                "GET",
                POLL_PATH,
                params={"sid": self._sid},
                timeout=self._poll_timeout + self._request_timeout,
            )
            payload = _json_object(response)
            if payload.get("closed"):
                raise ConnectivityError("polling session closed by server")
            frames = payload.get("frames") or []
            if not isinstance(frames, list):
                raise ConnectivityError("polling response frames must be a list")
            for frame in frames:
                self._buffer.append(frame if isinstance(frame, str) else json.dumps(frame))
        return self._buffer.popleft()

    async def close(self) -> None:
        client = self._client
        sid, self._sid = self._sid, None
        self._buffer.clear()
        if client is None:
            return
        try:
            if sid is not None:
                await client.post(
                    f"{self._base_url}{POLL_CLOSE_PATH}", json={"sid": sid}, headers=self._headers
                )
        except httpx.HTTPError as exc:
            logger.debug("polling close request failed: %s", exc)
        finally:
            if self._owns_client:
                await client.aclose()
                self._client = None

    def _require_open(self) -> None:
        if self._client is None or self._sid is None:
            raise ConnectivityError("polling session is not open")

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        assert self._client is not None
        try:
            response = await self._client.request(
                method, f"{self._base_url}{path}", headers=self._headers, **kwargs
            )
        except httpx.HTTPError as exc:
            raise ConnectivityError(f"polling request failed: {exc}") from exc
        if response.status_code in AUTH_REJECTED_STATUSES:
            raise AuthRejectedError(f"polling rejected with status {response.status_code}")
        if response.status_code >= 400:
            raise ConnectivityError(f"polling request failed with status {response.status_code}")
        return response