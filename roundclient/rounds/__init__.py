"""Round models, event dispatch and the client-side round projection."""

from roundclient.rounds.dispatcher import RoundEventDispatcher
from roundclient.rounds.dispatcher import RoundEventKind
from roundclient.rounds.dispatcher import parse_event
from roundclient.rounds.models import GameCategory
from roundclient.rounds.models import OrderPlaced
from roundclient.rounds.models import Round
from roundclient.rounds.models import RoundStatus
from roundclient.rounds.models import TimerTick
from roundclient.rounds.notifications import LoggingNotifier
from roundclient.rounds.notifications import Notifier
from roundclient.rounds.notifications import RoundNotifications
from roundclient.rounds.projection import RoundStateProjection
from roundclient.rounds.projection import Settlement
from roundclient.rounds.projection import can_transition
from roundclient.rounds.projection import format_countdown

__all__ = [
    "GameCategory",
    "LoggingNotifier",
    "Notifier",
    "OrderPlaced",
    "Round",
    "RoundEventDispatcher",
    "RoundEventKind",
    "RoundNotifications",
    "RoundStateProjection",
    "RoundStatus",
    "Settlement",
    "TimerTick",
    "can_transition",
    "format_countdown",
    "parse_event",
]
