"""Composition root wiring channel, rounds and cart for one user session."""

from __future__ import annotations

from collections.abc import Iterable
import logging

import httpx

from roundclient.cart.engine import OrderCartEngine
from roundclient.cart.models import SubmissionReceipt
from roundclient.cart.pricing import PricingPolicy
from roundclient.cart.storage import CartStore
from roundclient.channel.connection import ChannelConnectionManager
from roundclient.channel.connection import ConnectionStatus
from roundclient.channel.connection import TransportFactory
from roundclient.core.config import Settings
from roundclient.core.credentials import CredentialProvider
from roundclient.core.credentials import FileCredentialProvider
from roundclient.core.credentials import StaticCredentialProvider
from roundclient.errors import AuthRejectedError
from roundclient.errors import ChannelError
from roundclient.gateway.submission import SubmissionGateway
from roundclient.gateway.wallet import WalletClient
from roundclient.listeners import Subscription
from roundclient.rooms.subscriptions import RoomSubscriptionManager
from roundclient.rounds.dispatcher import RoundEventDispatcher
from roundclient.rounds.models import GameCategory
from roundclient.rounds.notifications import LoggingNotifier
from roundclient.rounds.notifications import Notifier
from roundclient.rounds.notifications import RoundNotifications
from roundclient.rounds.projection import RoundStateProjection

logger = logging.getLogger(__name__)


def default_credentials(settings: Settings) -> CredentialProvider:
    if settings.roundclient_credential_path:
        return FileCredentialProvider(settings.roundclient_credential_path)
    return StaticCredentialProvider()


class TradingSession:
    """Owns one independent set of client components.

    Each instance has its own connection, dispatcher, projection and cart,
    so tests and multiple sessions never share global state.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        credentials: CredentialProvider | None = None,
        notifier: Notifier | None = None,
        transport_factories: dict[str, TransportFactory] | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.settings = settings
        self.credentials = credentials or default_credentials(settings)
        self.notifier = notifier or LoggingNotifier()

        self.connection = ChannelConnectionManager(
            settings=settings,
            credentials=self.credentials,
            transport_factories=transport_factories,
        )
        self.rooms = RoomSubscriptionManager(self.connection)
        self.dispatcher = RoundEventDispatcher()
        self.projection = RoundStateProjection()
        self.notifications = RoundNotifications(self.notifier)

        timeout = settings.roundclient_request_timeout_seconds
        self.gateway = SubmissionGateway(
            base_url=settings.roundclient_api_base_url,
            credentials=self.credentials,
            timeout=timeout,
            client=http_client,
        )
        self.wallet = WalletClient(
            base_url=settings.roundclient_api_base_url,
            credentials=self.credentials,
            timeout=timeout,
            client=http_client,
        )
        store = CartStore(settings.roundclient_cart_path) if settings.roundclient_cart_path else None
        self.cart = OrderCartEngine(
            self.projection,
            gateway=self.gateway,
            wallet=self.wallet,
            policy=PricingPolicy(
                service_charge_rate=settings.roundclient_service_charge_rate,
                min_service_charge=settings.roundclient_min_service_charge,
            ),
            max_items=settings.roundclient_max_cart_items,
            max_number_selections=settings.roundclient_max_number_selections,
            store=store,
        )
        self._subscriptions: list[Subscription] = []

    async def start(self, categories: Iterable[GameCategory | str] = ()) -> None:
        """Wire listeners, connect, and join one room per category."""
        if not self._subscriptions:
            self._subscriptions = [
                self.dispatcher.attach(self.connection),
                self.connection.on_status(self._on_status),
                *self.projection.attach(self.dispatcher),
            ]
            self.notifications.attach(self.dispatcher)
        await self.connection.connect()
        for category in categories:
            await self.rooms.join_room(category)

    async def submit_cart(self) -> SubmissionReceipt:
        receipt = await self.cart.submit()
        self.notifier.success("Orders placed", f"{len(receipt.item_ids)} stake(s) accepted")
        return receipt

    async def close(self) -> None:
        """Detach every listener, drop the connection and release HTTP resources."""
        self.notifications.detach()
        self.dispatcher.remove_all_listeners()
        for subscription in self._subscriptions:
            subscription.cancel()
        self._subscriptions = []
        self.rooms.close()
        self.connection.disconnect()
        await self.gateway.aclose()
        await self.wallet.aclose()

    async def __aenter__(self) -> "TradingSession":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    def _on_status(self, status: ConnectionStatus, error: ChannelError | None) -> None:
        if status is not ConnectionStatus.FAILED or error is None:
            return
        if isinstance(error, AuthRejectedError):
            self.notifier.error("Session expired", "Please sign in again.")
        else:
            self.notifier.error("Connection lost", str(error))
