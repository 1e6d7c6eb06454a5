"""Room subscription bookkeeping."""

from roundclient.rooms.subscriptions import RoomSubscriptionManager

__all__ = ["RoomSubscriptionManager"]
