"""Client settings loaded from the environment or explicit kwargs."""

from __future__ import annotations

from pydantic import Field
from pydantic import model_validator
from pydantic_settings import BaseSettings

SUPPORTED_TRANSPORTS = ("websocket", "polling")


class Settings(BaseSettings):
    """Typed settings loaded from environment variables or explicit kwargs."""

    roundclient_api_base_url: str = "http://127.0.0.1:8000/api"
    roundclient_socket_url: str | None = None
    roundclient_transports: str = "websocket,polling"

    roundclient_reconnect_attempts: int = Field(default=5, ge=1)
    roundclient_reconnect_delay_seconds: float = Field(default=2.0, ge=0)
    roundclient_request_timeout_seconds: float = Field(default=10.0, gt=0)
    roundclient_heartbeat_timeout_seconds: float = Field(default=45.0, gt=0)
    roundclient_poll_timeout_seconds: float = Field(default=25.0, gt=0)

    roundclient_service_charge_rate: float = 0.10
    roundclient_min_service_charge: int = Field(default=5, ge=0)
    roundclient_max_cart_items: int = Field(default=20, ge=1)
    roundclient_max_number_selections: int = Field(default=3, ge=1)

    roundclient_cart_path: str | None = None
    roundclient_credential_path: str | None = None

    @model_validator(mode="after")
    def validate_transports(self) -> "Settings":
        """Require a non-empty, known transport order."""
        names = self.transport_order
        if not names:
            raise ValueError("ROUNDCLIENT_TRANSPORTS must name at least one transport")
        unknown = [name for name in names if name not in SUPPORTED_TRANSPORTS]
        if unknown:
            raise ValueError(f"ROUNDCLIENT_TRANSPORTS has unknown entries: {', '.join(unknown)}")
        return self

    @model_validator(mode="after")
    def validate_service_charge_rate(self) -> "Settings":
        if not 0 <= self.roundclient_service_charge_rate < 1:
            raise ValueError("ROUNDCLIENT_SERVICE_CHARGE_RATE must be in [0, 1)")
        return self

    @property
    def transport_order(self) -> list[str]:
        return [name.strip() for name in self.roundclient_transports.split(",") if name.strip()]

    @property
    def socket_url(self) -> str:
        """Channel endpoint; defaults to the API base without its ``/api`` suffix."""
        if self.roundclient_socket_url:
            return self.roundclient_socket_url.rstrip("/")
        base = self.roundclient_api_base_url.rstrip("/")
        if base.endswith("/api"):
            base = base[: -len("/api")]
        return base


def load_settings() -> Settings:
    """Load settings from process environment."""
    return Settings()
