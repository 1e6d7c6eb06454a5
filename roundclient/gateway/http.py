"""Shared HTTP plumbing for calls to the authority's REST surface."""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from roundclient.core.credentials import CredentialProvider
from roundclient.errors import AuthRejectedError
from roundclient.errors import ConnectivityError
from roundclient.errors import SubmissionRejectedError

from .models import ApiEnvelope
from .models import ApiErrorBody

logger = logging.getLogger(__name__)


def rejection_from_response(response: httpx.Response) -> SubmissionRejectedError:
    """Map an error response to a unified ``{code, message, detail}`` rejection."""
    try:
        body: Any = response.json()
    except ValueError:
        body = None

    candidates: list[Any] = [body]
    if isinstance(body, dict):
        candidates.append(body.get("detail"))
    for candidate in candidates:
        if not isinstance(candidate, dict):
            continue
        try:
            error = ApiErrorBody.model_validate(candidate)
        except ValidationError:
            continue
        return SubmissionRejectedError(
            code=error.code,
            message=error.message,
            detail=error.detail,
            status_code=response.status_code,
        )

    message = None
    if isinstance(body, dict):
        message = body.get("message") or (body.get("detail") if isinstance(body.get("detail"), str) else None)
    return SubmissionRejectedError(
        code="HTTP_ERROR",
        message=str(message or f"request failed with status {response.status_code}"),
        detail={"errors": body.get("errors")} if isinstance(body, dict) and body.get("errors") else {},
        status_code=response.status_code,
    )


class AuthorityClient:
    """Thin ``httpx.AsyncClient`` wrapper with bearer auth and error mapping."""

    def __init__(
        self,
        *,
        base_url: str,
        credentials: CredentialProvider,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._credentials = credentials
        self._client = client or httpx.AsyncClient(timeout=timeout, trust_env=False)
        self._owns_client = client is None

    def auth_headers(self) -> dict[str, str]:
        token = self._credentials.get_token()
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def request_envelope(self, method: str, path: str, **kwargs: Any) -> ApiEnvelope:
        """Perform one request and return the success envelope, or raise."""
        url = f"{self._base_url}{path}"
        try:
            response = await self._client.request(method, url, headers=self.auth_headers(), **kwargs)
        except httpx.HTTPError as exc:
            logger.error("%s %s failed: %s", method, path, exc)
            raise ConnectivityError(f"{method} {path} failed: {exc}") from exc

        if response.status_code == 401:
            raise AuthRejectedError(f"{method} {path} rejected the session credential")
        if response.status_code >= 400:
            rejection = rejection_from_response(response)
            logger.warning(
                "%s %s rejected: status=%s code=%s message=%s",
                method,
                path,
                response.status_code,
                rejection.code,
                rejection.message,
            )
            raise rejection

        try:
            envelope = ApiEnvelope.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise SubmissionRejectedError(
                code="INVALID_RESPONSE",
                message=f"{method} {path} returned an unreadable body",
                status_code=response.status_code,
            ) from exc
        if not envelope.success:
            raise SubmissionRejectedError(
                code="REJECTED",
                message=envelope.message or f"{method} {path} was declined",
                detail={"errors": envelope.errors} if envelope.errors else {},
                status_code=response.status_code,
            )
        return envelope

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
