"""Desired-room bookkeeping with transparent rejoin after reconnection."""

from __future__ import annotations

import logging

from roundclient.channel.connection import ChannelConnectionManager
from roundclient.channel.protocol import JOIN_ROUND
from roundclient.channel.protocol import JOIN_TRADING
from roundclient.rounds.models import GameCategory

logger = logging.getLogger(__name__)


class RoomSubscriptionManager:
    """Track which category rooms (and round rooms) the client should be in.

    The local desired set is authoritative: the transport has no leave
    acknowledgment, so ``leave_room`` only drops the entry and the server
    detaches on disconnect. Every successful handshake replays one join
    intent per desired entry; entries already joined on the current
    connection are never sent twice.
    """

    def __init__(self, connection: ChannelConnectionManager) -> None:
        self._connection = connection
        self._desired_rooms: dict[GameCategory, None] = {}
        self._desired_rounds: dict[str, None] = {}
        self._joined_generation = -1
        self._joined_rooms: set[GameCategory] = set()
        self._joined_rounds: set[str] = set()
        self._subscription = connection.on_connected(self._rejoin_all)

    @property
    def desired_rooms(self) -> tuple[GameCategory, ...]:
        return tuple(self._desired_rooms)

    @property
    def desired_rounds(self) -> tuple[str, ...]:
        return tuple(self._desired_rounds)

    def wants(self, category: GameCategory) -> bool:
        return category in self._desired_rooms

    async def join_room(self, category: GameCategory | str) -> None:
        category = GameCategory.parse(category)
        self._desired_rooms[category] = None
        self._sync_generation()
        if self._connection.is_connected() and category not in self._joined_rooms:
            await self._send_room_join(category)

    def leave_room(self, category: GameCategory | str) -> None:
        category = GameCategory.parse(category)
        self._desired_rooms.pop(category, None)
        self._joined_rooms.discard(category)
        logger.debug("left room %s locally; transport detaches on disconnect", category.value)

    async def join_round(self, round_id: str) -> None:
        self._desired_rounds[round_id] = None
        self._sync_generation()
        if self._connection.is_connected() and round_id not in self._joined_rounds:
            await self._send_round_join(round_id)

    def leave_round(self, round_id: str) -> None:
        self._desired_rounds.pop(round_id, None)
        self._joined_rounds.discard(round_id)

    def close(self) -> None:
        self._subscription.cancel()
        self._desired_rooms.clear()
        self._desired_rounds.clear()
        self._joined_rooms.clear()
        self._joined_rounds.clear()

    async def _rejoin_all(self) -> None:
        self._sync_generation()
        if self._desired_rooms or self._desired_rounds:
            logger.info(
                "rejoining rooms=%s rounds=%s",
                [category.value for category in self._desired_rooms],
                list(self._desired_rounds),
            )
        for category in list(self._desired_rooms):
            if category in self._desired_rooms and category not in self._joined_rooms:
                await self._send_room_join(category)
        for round_id in list(self._desired_rounds):
            if round_id in self._desired_rounds and round_id not in self._joined_rounds:
                await self._send_round_join(round_id)

    def _sync_generation(self) -> None:
        generation = self._connection.generation
        if generation != self._joined_generation:
            self._joined_generation = generation
            self._joined_rooms.clear()
            self._joined_rounds.clear()

    async def _send_room_join(self, category: GameCategory) -> None:
        self._joined_rooms.add(category)
        if not await self._connection.emit(JOIN_TRADING, {"gameType": category.value}):
            self._joined_rooms.discard(category)
            return
        logger.info("joined trading room %s", category.value)

    async def _send_round_join(self, round_id: str) -> None:
        self._joined_rounds.add(round_id)
        if not await self._connection.emit(JOIN_ROUND, {"roundId": round_id}):
            self._joined_rounds.discard(round_id)
            return
        logger.info("joined round room %s", round_id)
