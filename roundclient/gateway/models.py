"""Response envelopes used by the authority's REST endpoints."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field


class ApiEnvelope(BaseModel):
    """``{success, message, data, errors}`` wrapper around REST responses."""

    model_config = ConfigDict(extra="ignore")

    success: bool
    message: str | None = None
    data: Any = None
    errors: list[Any] | None = None


class ApiErrorBody(BaseModel):
    """Structured ``{code, message, detail}`` rejection body."""

    model_config = ConfigDict(extra="ignore")

    code: str
    message: str
    detail: dict[str, Any] = {}


class BalancePayload(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    balance: float
    formatted_balance: str | None = Field(default=None, alias="formattedBalance")


class AcceptedSubmission(BaseModel):
    model_config = ConfigDict(extra="ignore")

    message: str | None = None
    data: Any = None
