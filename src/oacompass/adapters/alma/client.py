"""HTTP client for the Alma users REST API."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from oacompass.adapters.http_resilience import default_client_factory
from oacompass.domain.model.patron import PatronRecord, PatronSummary
from oacompass.domain.ports.records import SearchPage

from .schema import AlmaErrorResponse, UserSearchResponse

if TYPE_CHECKING:
    from collections.abc import Callable

    from oacompass.adapters.http_resilience import ResilientClient
    from oacompass.config.alma import AlmaConfig
    from oacompass.config.http_resilience import ResilienceConfig
    from oacompass.domain.ports.records import PatronRecordStore

log = getLogger(__name__)

USERS_PATH = "/almaws/v1/users"


class AlmaAPIError(RuntimeError):
    """Raised when Alma answers with a non-success status or an unusable payload."""

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        code: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.code = code


def _user_path(primary_id: str) -> str:
    return f"{USERS_PATH}/{quote(primary_id, safe='')}"


def _raise_for_status(response: httpx.Response, action: str) -> None:
    if response.is_success:
        return
    code: str | None = None
    message = f"Alma {action} failed ({response.status_code})"
    try:
        error = AlmaErrorResponse.model_validate(response.json()).first_error()
    except (ValueError, ValidationError):
        error = None
    if error is not None:
        code = error.error_code
        if error.error_message:
            message = f"{message}: {error.error_message}"
    log.error(message)
    raise AlmaAPIError(message, status=response.status_code, code=code)


def _json_object(response: httpx.Response, action: str) -> dict[str, Any]:
    try:
        payload = response.json()
    except ValueError as exc:
        raise AlmaAPIError(f"Alma {action} returned invalid JSON") from exc
    if not isinstance(payload, dict):
        raise AlmaAPIError(f"Unexpected Alma {action} payload")
    return payload


@dataclass(slots=True)
class AlmaClient:
    """Alma users API implementation of :class:`PatronRecordStore`."""

    config: AlmaConfig
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=default_client_factory
    )

    def _headers(self) -> dict[str, str]:
        return {"Accept": "application/json", **self.config.auth_header}

    def get_user(self, primary_id: str) -> PatronRecord:
        return asyncio.run(self._get_user_async(primary_id))

    async def _get_user_async(self, primary_id: str) -> PatronRecord:
        async with self.client_factory(self.config.resilience) as client:
            response = await client.get(
                _user_path(primary_id),
                params={"view": "full", "expand": "none", "format": "json"},
                headers=self._headers(),
            )
        _raise_for_status(response, "user lookup")
        return PatronRecord.from_payload(_json_object(response, "user lookup"))

    def update_user(self, record: PatronRecord) -> PatronRecord:
        return asyncio.run(self._update_user_async(record))

    async def _update_user_async(self, record: PatronRecord) -> PatronRecord:
        if not record.primary_id:
            raise AlmaAPIError("Cannot update an Alma user without a primary id")
        async with self.client_factory(self.config.resilience) as client:
            response = await client.put(
                _user_path(record.primary_id),
                params={"format": "json"},
                json=record.to_payload(),
                headers=self._headers(),
            )
        _raise_for_status(response, "user update")
        return PatronRecord.from_payload(_json_object(response, "user update"))

    def search_users(self, query: str, *, offset: int = 0, limit: int = 10) -> SearchPage:
        return asyncio.run(self._search_users_async(query, offset=offset, limit=limit))

    async def _search_users_async(self, query: str, *, offset: int, limit: int) -> SearchPage:
        async with self.client_factory(self.config.resilience) as client:
            response = await client.get(
                USERS_PATH,
                params={"q": query, "offset": offset, "limit": limit, "format": "json"},
                headers=self._headers(),
            )
        _raise_for_status(response, "user search")
        payload = _json_object(response, "user search")
        try:
            parsed = UserSearchResponse.model_validate(payload)
        except ValidationError as exc:
            raise AlmaAPIError(f"Unexpected Alma user search payload: {exc}") from exc
        return SearchPage(
            items=tuple(PatronSummary.from_payload(user) for user in parsed.users),
            total_record_count=parsed.total_record_count,
            has_next_link=parsed.has_next_link,
            raw=payload,
        )


if TYPE_CHECKING:
    _store_check: PatronRecordStore = AlmaClient(config=AlmaConfig(api_key=""))
