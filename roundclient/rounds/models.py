"""Pydantic schemas for inbound round payloads."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import AliasChoices
from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import field_validator
from pydantic import model_validator


class GameCategory(str, Enum):
    COLOR = "color"
    NUMBER = "number"

    @classmethod
    def parse(cls, value: "GameCategory | str") -> "GameCategory":
        """Accept enum members, names in any case, and the ``colour`` spelling."""
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        if text == "colour":
            text = cls.COLOR.value
        return cls(text)

    @property
    def trade_type(self) -> str:
        """Spelling used by the submission endpoint."""
        return "colour" if self is GameCategory.COLOR else self.value


class RoundStatus(str, Enum):
    UPCOMING = "upcoming"
    OPEN = "open"
    CLOSED = "closed"
    SETTLED = "settled"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({RoundStatus.SETTLED, RoundStatus.CANCELLED})


class Round(BaseModel):
    """The client's copy of one authority-owned round."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str = Field(min_length=1, validation_alias=AliasChoices("id", "roundId", "_id"))
    sequence_number: int = Field(ge=0, validation_alias=AliasChoices("sequence_number", "roundNumber"))
    game_category: GameCategory = Field(
        validation_alias=AliasChoices("game_category", "gameType", "roundType")
    )
    status: RoundStatus
    opens_until: datetime = Field(validation_alias=AliasChoices("opens_until", "endsAt"))
    result_time: datetime | None = Field(
        default=None, validation_alias=AliasChoices("result_time", "resultDeclarationTime")
    )
    options: tuple[str, ...] = Field(min_length=1)
    multipliers: dict[str, float]
    winning_option: str | None = Field(
        default=None, validation_alias=AliasChoices("winning_option", "winningOption")
    )
    total_pool: float | None = Field(default=None, validation_alias=AliasChoices("total_pool", "totalPool"))

    @field_validator("game_category", mode="before")
    @classmethod
    def normalize_category(cls, value: Any) -> Any:
        if isinstance(value, str):
            return GameCategory.parse(value)
        return value

    @field_validator("options", mode="before")
    @classmethod
    def stringify_options(cls, value: Any) -> Any:
        if isinstance(value, (list, tuple)):
            return tuple(str(option) for option in value)
        return value

    @field_validator("winning_option", mode="before")
    @classmethod
    def blank_winner_is_none(cls, value: Any) -> Any:
        if value is None or value == "":
            return None
        return str(value)

    @model_validator(mode="after")
    def validate_round_shape(self) -> "Round":
        if len(set(self.options)) != len(self.options):
            raise ValueError("options must be unique")
        unknown = set(self.multipliers) - set(self.options)
        if unknown:
            raise ValueError(f"multipliers reference unknown options: {sorted(unknown)}")
        if (self.winning_option is not None) != (self.status is RoundStatus.SETTLED):
            raise ValueError("winningOption must be set if and only if status is settled")
        if self.winning_option is not None and self.winning_option not in self.options:
            raise ValueError("winningOption is not one of the round options")
        return self

    def multiplier_for(self, option: str) -> float | None:
        return self.multipliers.get(option)


class TimerTick(BaseModel):
    """Advisory countdown tick; never drives a status change."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    round_id: str = Field(min_length=1, validation_alias=AliasChoices("round_id", "roundId"))
    time_left: float = Field(ge=0, validation_alias=AliasChoices("time_left", "timeLeft", "timeRemaining"))
    game_category: GameCategory | None = Field(
        default=None, validation_alias=AliasChoices("game_category", "gameType")
    )

    @field_validator("game_category", mode="before")
    @classmethod
    def normalize_category(cls, value: Any) -> Any:
        if isinstance(value, str):
            return GameCategory.parse(value)
        return value


class OrderPlaced(BaseModel):
    """Another participant's stake, informational only."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    order: dict[str, Any]
    round: Round


__all__ = [
    "GameCategory",
    "OrderPlaced",
    "Round",
    "RoundStatus",
    "TERMINAL_STATUSES",
    "TimerTick",
]
