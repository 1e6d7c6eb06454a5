"""Client core for server-driven trading rounds."""

from roundclient.cart.engine import OrderCartEngine
from roundclient.channel.connection import ChannelConnectionManager
from roundclient.channel.connection import ConnectionStatus
from roundclient.core.config import Settings
from roundclient.core.config import load_settings
from roundclient.rooms.subscriptions import RoomSubscriptionManager
from roundclient.rounds.dispatcher import RoundEventDispatcher
from roundclient.rounds.models import GameCategory
from roundclient.rounds.models import Round
from roundclient.rounds.models import RoundStatus
from roundclient.rounds.projection import RoundStateProjection
from roundclient.session import TradingSession

__all__ = [
    "ChannelConnectionManager",
    "ConnectionStatus",
    "GameCategory",
    "OrderCartEngine",
    "RoomSubscriptionManager",
    "Round",
    "RoundEventDispatcher",
    "RoundStateProjection",
    "RoundStatus",
    "Settings",
    "TradingSession",
    "load_settings",
]
