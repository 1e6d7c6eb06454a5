"""Single logical push-channel connection with bounded reconnection."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from collections.abc import Callable
from enum import Enum
import inspect
import logging
from typing import Any

from roundclient.core.config import Settings
from roundclient.core.credentials import CredentialProvider
from roundclient.core.credentials import is_token_expired
from roundclient.errors import AuthRejectedError
from roundclient.errors import ChannelError
from roundclient.errors import ConnectivityError
from roundclient.listeners import ListenerSet
from roundclient.listeners import Subscription

from .heartbeat import HeartbeatState
from .heartbeat import heartbeat_watchdog
from .heartbeat import is_ping
from .heartbeat import is_pong
from .heartbeat import pong_frame
from .protocol import decode_frame
from .protocol import encode_event
from .transports import LongPollingTransport
from .transports import Transport
from .transports import WebSocketTransport

logger = logging.getLogger(__name__)

MessageHandler = Callable[[str, Any], None]
ConnectedHandler = Callable[[], Awaitable[None] | None]
StatusHandler = Callable[["ConnectionStatus", "ChannelError | None"], None]
TransportFactory = Callable[[], Transport]
Sleep = Callable[[float], Awaitable[None]]


class ConnectionStatus(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    FAILED = "failed"


def default_transport_factories(settings: Settings) -> dict[str, TransportFactory]:
    return {
        "websocket": lambda: WebSocketTransport(open_timeout=settings.roundclient_request_timeout_seconds),
        "polling": lambda: LongPollingTransport(
            poll_timeout=settings.roundclient_poll_timeout_seconds,
            request_timeout=settings.roundclient_request_timeout_seconds,
        ),
    }


class ChannelConnectionManager:
    """Owns the one channel connection: handshake, retries, teardown.

    ``connect`` is idempotent: concurrent callers share one handshake.
    Transient failures are retried up to ``reconnect_attempts`` times with a
    fixed delay, trying each configured transport in order per attempt. An
    auth rejection ends the cycle immediately. Exhausting the ceiling forces
    a full disconnect and publishes ``FAILED`` with a terminal
    ``ConnectivityError``.
    """

    def __init__(
        self,
        *,
        settings: Settings,
        credentials: CredentialProvider,
        transport_factories: dict[str, TransportFactory] | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._settings = settings
        self._credentials = credentials
        factories = transport_factories or default_transport_factories(settings)
        self._transport_order = [
            (name, factories[name]) for name in settings.transport_order if name in factories
        ]
        if not self._transport_order:
            raise ValueError("no transport factory matches the configured transport order")
        self._sleep = sleep
        self._max_attempts = settings.roundclient_reconnect_attempts
        self._delay_seconds = settings.roundclient_reconnect_delay_seconds

        self._transport: Transport | None = None
        self._status = ConnectionStatus.DISCONNECTED
        self._last_error: ChannelError | None = None
        self._attempts = 0
        self._generation = 0
        self._closing = False
        self._connect_task: asyncio.Task[None] | None = None
        self._reader_task: asyncio.Task[None] | None = None
        self._watchdog_task: asyncio.Task[None] | None = None
        self._closing_tasks: set[asyncio.Task[None]] = set()

        self._message_listeners: ListenerSet[MessageHandler] = ListenerSet()
        self._connected_listeners: ListenerSet[ConnectedHandler] = ListenerSet()
        self._status_listeners: ListenerSet[StatusHandler] = ListenerSet()

    @property
    def status(self) -> ConnectionStatus:
        return self._status

    @property
    def last_error(self) -> ChannelError | None:
        return self._last_error

    @property
    def generation(self) -> int:
        """Number of successful handshakes so far; bumps on every reconnect."""
        return self._generation

    @property
    def transport_name(self) -> str | None:
        return self._transport.name if self._transport is not None else None

    def is_connected(self) -> bool:
        return self._status is ConnectionStatus.CONNECTED and self._transport is not None

    def on_message(self, handler: MessageHandler) -> Subscription:
        return self._message_listeners.add(handler)

    def on_connected(self, handler: ConnectedHandler) -> Subscription:
        return self._connected_listeners.add(handler)

    def on_status(self, handler: StatusHandler) -> Subscription:
        return self._status_listeners.add(handler)

    async def connect(self) -> None:
        """Establish the connection, or join the handshake already in progress."""
        if self.is_connected():
            return
        if self._connect_task is None or self._connect_task.done():
            self._closing = False
            self._attempts = 0
            self._connect_task = asyncio.create_task(self._establish(ConnectionStatus.CONNECTING))
        task = self._connect_task
        try:
            await asyncio.shield(task)
        except asyncio.CancelledError:
            if task.cancelled():
                raise ConnectivityError("connection attempt aborted by disconnect") from None
            raise
        if not self.is_connected():
            raise self._last_error or ConnectivityError("channel is not connected")

    def disconnect(self) -> None:
        """Tear down immediately; pending reconnect attempts are abandoned."""
        was_active = self._status is not ConnectionStatus.DISCONNECTED
        self._teardown()
        if was_active:
            logger.info("channel disconnected")
            self._set_status(ConnectionStatus.DISCONNECTED, None)

    def _teardown(self) -> None:
        self._closing = True
        current = asyncio.current_task() if _has_running_loop() else None
        for task in (self._connect_task, self._reader_task, self._watchdog_task):
            if task is not None and not task.done() and task is not current:
                task.cancel()
        self._connect_task = None
        self._reader_task = None
        self._watchdog_task = None
        transport, self._transport = self._transport, None
        if transport is not None:
            self._close_in_background(transport)
        self._attempts = 0

    async def emit(self, event_type: str, payload: dict[str, Any]) -> bool:
        """Send one outbound intent; returns False when it could not be written."""
        transport = self._transport
        if transport is None or not self.is_connected():
            logger.debug("dropping %s while not connected", event_type)
            return False
        try:
            await transport.send(encode_event(event_type, payload))
        except ChannelError as exc:
            logger.warning("failed to send %s: %s", event_type, exc)
            return False
        logger.debug("sent %s %s", event_type, payload)
        return True

    async def _establish(self, status: ConnectionStatus) -> None:
        self._set_status(status, None)
        token = self._credentials.get_token()
        if not token:
            logger.warning("no session credential found, connecting without authentication")
        elif is_token_expired(token):
            expired = AuthRejectedError("session credential has expired")
            self._fail(expired)
            raise expired

        base_url = self._settings.socket_url
        while True:
            try:
                transport = await self._open_any(base_url, token)
            except AuthRejectedError as exc:
                self._fail(exc)
                raise
            except ConnectivityError as exc:
                self._attempts += 1
                logger.warning(
                    "channel connect attempt %s/%s failed: %s", self._attempts, self._max_attempts, exc
                )
                if self._attempts >= self._max_attempts:
                    terminal = ConnectivityError(
                        f"gave up after {self._attempts} connection attempts", terminal=True
                    )
                    self._fail(terminal)
                    raise terminal from exc
                self._set_status(ConnectionStatus.RECONNECTING, exc)
                await self._sleep(self._delay_seconds)
                continue
            break

        self._transport = transport
        self._attempts = 0
        self._generation += 1
        logger.info("channel connected via %s to %s", transport.name, base_url)
        heartbeat_state = HeartbeatState()
        self._reader_task = asyncio.create_task(self._read_loop(transport, heartbeat_state))
        self._watchdog_task = asyncio.create_task(
            heartbeat_watchdog(
                heartbeat_state,
                timeout_seconds=self._settings.roundclient_heartbeat_timeout_seconds,
                on_timeout=transport.close,
            )
        )
        self._set_status(ConnectionStatus.CONNECTED, None)
        await self._notify_connected()

    async def _open_any(self, base_url: str, token: str | None) -> Transport:
        last_error: ConnectivityError | None = None
        for name, factory in self._transport_order:
            transport = factory()
            try:
                await transport.open(base_url, token)
            except AuthRejectedError:
                await self._safe_close(transport)
                raise
            except ConnectivityError as exc:
                logger.info("transport %s unavailable: %s", name, exc)
                await self._safe_close(transport)
                last_error = exc
                continue
            return transport
        assert last_error is not None
        raise last_error

    async def _read_loop(self, transport: Transport, heartbeat_state: HeartbeatState) -> None:
        try:
            while True:
                raw = await transport.recv()
                heartbeat_state.mark_frame_received()
                decoded = decode_frame(raw)
                if decoded is None:
                    logger.warning("dropping undecodable frame: %.200s", raw)
                    continue
                event_type, payload = decoded
                if is_ping(event_type):
                    heartbeat_state.mark_ping_received()
                    await transport.send(pong_frame())
                    continue
                if is_pong(event_type):
                    continue
                logger.debug("received %s", event_type)
                self._deliver(event_type, payload)
        except AuthRejectedError as exc:
            if self._closing or transport is not self._transport:
                return
            self._drop_transport()
            self._fail(exc)
        except ConnectivityError as exc:
            if self._closing or transport is not self._transport:
                return
            logger.warning("channel dropped: %s", exc)
            self._drop_transport()
            self._connect_task = asyncio.create_task(self._reconnect())
        except Exception:
            if self._closing or transport is not self._transport:
                return
            logger.exception("channel reader failed, recycling transport")
            self._drop_transport()
            self._connect_task = asyncio.create_task(self._reconnect())

    def _deliver(self, event_type: str, payload: Any) -> None:
        for handler in self._message_listeners.snapshot():
            try:
                handler(event_type, payload)
            except Exception:
                logger.exception("channel message handler failed for %s", event_type)

    async def _reconnect(self) -> None:
        try:
            await self._establish(ConnectionStatus.RECONNECTING)
        except ChannelError:
            # Already published through status observers.
            return

    async def _notify_connected(self) -> None:
        for handler in self._connected_listeners.snapshot():
            result = handler()
            if inspect.isawaitable(result):
                await result

    def _drop_transport(self) -> None:
        transport, self._transport = self._transport, None
        if self._watchdog_task is not None and not self._watchdog_task.done():
            self._watchdog_task.cancel()
        self._watchdog_task = None
        self._reader_task = None
        if transport is not None:
            self._close_in_background(transport)

    def _fail(self, exc: ChannelError) -> None:
        logger.error("channel failed: %s", exc)
        self._teardown()
        self._set_status(ConnectionStatus.FAILED, exc)

    def _set_status(self, status: ConnectionStatus, error: ChannelError | None) -> None:
        self._status = status
        if error is not None:
            self._last_error = error
        elif status is ConnectionStatus.CONNECTED:
            self._last_error = None
        for handler in self._status_listeners.snapshot():
            handler(status, error)

    def _close_in_background(self, transport: Transport) -> None:
        if not _has_running_loop():
            return
        task = asyncio.get_running_loop().create_task(self._safe_close(transport))
        self._closing_tasks.add(task)
        task.add_done_callback(self._closing_tasks.discard)

    @staticmethod
    async def _safe_close(transport: Transport) -> None:
        try:
            await transport.close()
        except (ChannelError, OSError) as exc:
            logger.debug("transport close failed: %s", exc)


def _has_running_loop() -> bool:
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return False
    return True
