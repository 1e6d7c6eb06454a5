"""Error taxonomy shared by channel, projection and cart code."""

from __future__ import annotations

from typing import Any


class RoundClientError(Exception):
    """Base class for all client-core errors."""


class ChannelError(RoundClientError):
    """Base class for push-channel errors."""


class ConnectivityError(ChannelError):
    """Raised when a handshake or transport fails.

    ``terminal`` is set once the reconnect ceiling has been exhausted.
    """

    def __init__(self, message: str, *, terminal: bool = False) -> None:
        super().__init__(message)
        self.terminal = terminal


class AuthRejectedError(ChannelError):
    """Raised when the session credential is refused. Never retried."""


class MalformedEventError(RoundClientError):
    """Raised when an inbound payload does not match its event schema."""

    def __init__(self, event_type: str, message: str) -> None:
        super().__init__(f"{event_type}: {message}")
        self.event_type = event_type


class CartError(RoundClientError):
    """Base class for cart-domain errors."""


class CartValidationError(CartError):
    """Raised when a staged selection is rejected before entering the cart."""


class StaleRoundError(CartError):
    """Raised when cart items target rounds that no longer accept stakes."""

    def __init__(self, message: str, *, stale_item_ids: list[str]) -> None:
        super().__init__(message)
        self.stale_item_ids = stale_item_ids


class InsufficientBalanceError(CartError):
    """Raised when the grand total exceeds the available wallet balance."""

    def __init__(self, *, required: int, available: float) -> None:
        self.required = required
        self.available = available
        self.shortfall = required - available
        super().__init__(f"insufficient balance: need {self.shortfall:.2f} more")


class SubmissionInProgressError(CartError):
    """Raised when a submission is attempted while another is in flight."""


class SubmissionRejectedError(RoundClientError):
    """Raised when the submission endpoint declines the cart."""

    def __init__(
        self,
        *,
        code: str,
        message: str,
        detail: dict[str, Any] | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.detail = detail or {}
        self.status_code = status_code


__all__ = [
    "AuthRejectedError",
    "CartError",
    "CartValidationError",
    "ChannelError",
    "ConnectivityError",
    "InsufficientBalanceError",
    "MalformedEventError",
    "RoundClientError",
    "StaleRoundError",
    "SubmissionInProgressError",
    "SubmissionRejectedError",
]
