"""Transient user notifications for round lifecycle milestones."""

from __future__ import annotations

import logging
from typing import Protocol

from roundclient.listeners import Subscription

from .dispatcher import RoundEventDispatcher
from .dispatcher import RoundEventKind
from .models import Round

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    """Surface that shows short-lived messages to the user."""

    def info(self, title: str, message: str) -> None: ...

    def success(self, title: str, message: str) -> None: ...

    def error(self, title: str, message: str) -> None: ...


class LoggingNotifier:
    """Notifier that writes to the log; used when no UI surface is wired."""

    def info(self, title: str, message: str) -> None:
        logger.info("%s: %s", title, message)

    def success(self, title: str, message: str) -> None:
        logger.info("%s: %s", title, message)

    def error(self, title: str, message: str) -> None:
        logger.error("%s: %s", title, message)


def _format_multiplier(value: float | None) -> str:
    if value is None:
        return "?"
    return f"{value:g}"


def result_message(round_: Round) -> str:
    winner = round_.winning_option or "Unknown"
    multiplier = round_.multiplier_for(winner) if round_.winning_option else None
    return f"Round {round_.sequence_number}\nWinner: {winner} ({_format_multiplier(multiplier)}x)"


class RoundNotifications:
    """Announce stake-window closure and declared results."""

    def __init__(self, notifier: Notifier) -> None:
        self._notifier = notifier
        self._subscriptions: list[Subscription] = []

    def attach(self, dispatcher: RoundEventDispatcher) -> None:
        self._subscriptions = [
            dispatcher.on(RoundEventKind.CLOSED, self._on_closed),
            dispatcher.on(RoundEventKind.FINALIZED, self._on_finalized),
        ]

    def detach(self) -> None:
        for subscription in self._subscriptions:
            subscription.cancel()
        self._subscriptions = []

    def _on_closed(self, round_: Round) -> None:
        self._notifier.info("Trading Closed!", "Waiting for result...")

    def _on_finalized(self, round_: Round) -> None:
        self._notifier.success("Result Declared!", result_message(round_))
