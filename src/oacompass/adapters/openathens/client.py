"""Low-level HTTP calls against the OpenAthens admin API."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Any

import httpx

from oacompass.config.openathens import ACCOUNT_REQUEST_MEDIA_TYPE
from oacompass.domain.errors import ProviderError

if TYPE_CHECKING:
    from types import TracebackType

    from oacompass.adapters.http_resilience import ResilientClient
    from oacompass.config.openathens import OpenAthensConfig

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class OpenAthensResponse:
    """Status plus body; the body is parsed JSON, or the raw text when not JSON."""

    status: int
    body: Any
    text: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @classmethod
    def from_httpx(cls, response: httpx.Response) -> OpenAthensResponse:
        text = response.text
        if not text:
            return cls(status=response.status_code, body={}, text=text)
        try:
            body = response.json()
        except ValueError:
            body = text
        return cls(status=response.status_code, body=body, text=text)


class OpenAthensClient:
    """Async session over one :class:`ResilientClient`."""

    def __init__(self, config: OpenAthensConfig, http: ResilientClient) -> None:
        self._config = config
        self._http = http

    async def __aenter__(self) -> OpenAthensClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self._http.aclose()

    def _headers(self, content_type: str | None = None) -> dict[str, str]:
        headers = {"Accept": "application/json", **self._config.auth_header}
        if content_type:
            headers["Content-Type"] = content_type
        return headers

    async def query(self, *, username: str | None, email: str | None) -> OpenAthensResponse:
        """``GET .../account/query`` by username when given, else by email."""

        params = {"username": username} if username else {"email": (email or "").strip()}
        try:
            response = await self._http.get(
                self._config.query_url(), params=params, headers=self._headers()
            )
        except httpx.HTTPError as exc:
            raise _transport_error("OA query failed", exc) from exc
        return OpenAthensResponse.from_httpx(response)

    async def post_account_request(
        self,
        url: str,
        body: dict[str, Any],
        *,
        params: dict[str, str] | None = None,
    ) -> OpenAthensResponse:
        try:
            response = await self._http.post(
                url,
                json=body,
                params=params,
                headers=self._headers(ACCOUNT_REQUEST_MEDIA_TYPE),
            )
        except httpx.HTTPError as exc:
            raise _transport_error("OA request failed", exc) from exc
        return OpenAthensResponse.from_httpx(response)


def _transport_error(label: str, exc: httpx.HTTPError) -> ProviderError:
    log.error("%s: %s", label, exc)
    return ProviderError(str(exc) or label, code="OA_TRANSPORT_ERROR", label=label)
