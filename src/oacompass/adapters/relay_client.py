"""Identity-provider gateway that talks to the relay service over HTTP."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Any

import httpx
from pydantic import BaseModel, ValidationError

from oacompass.adapters.http_resilience import default_client_factory
from oacompass.config.http_resilience import ResilienceConfig
from oacompass.domain.errors import InvalidInputError, NotFound, ProviderError, ProviderInputError

from .relay.schema import (
    CreateBody,
    CreateResponse,
    ErrorResponse,
    GetResponse,
    LookupBody,
    ModifyBody,
    ModifyResponse,
    ResendBody,
    ResendResponse,
    VerifyResponse,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from oacompass.adapters.http_resilience import ResilientClient
    from oacompass.domain.model.account import (
        AccountSelector,
        CreateRequest,
        CreateResult,
        LookupResult,
        ModifyRequest,
        ModifyResult,
        ResendResult,
        VerifyResult,
    )
    from oacompass.domain.ports.identity import IdentityProviderGateway

log = getLogger(__name__)

RELAY_TIMEOUT_SECONDS = 30.0


def relay_resilience(base_url: str) -> ResilienceConfig:
    return ResilienceConfig(
        name="relay",
        base_url=base_url.rstrip("/"),
        timeout_seconds=RELAY_TIMEOUT_SECONDS,
    )


def _error_body(response: httpx.Response) -> tuple[ErrorResponse | None, Any]:
    try:
        payload = response.json()
    except ValueError:
        return None, response.text
    if not isinstance(payload, dict):
        return None, payload
    try:
        return ErrorResponse.model_validate(payload), payload
    except ValidationError:
        return None, payload


def _raise_for_error(response: httpx.Response) -> None:
    if response.is_success:
        return
    error, payload = _error_body(response)
    status = response.status_code
    if error is not None:
        if status == 404:
            raise NotFound(
                error.error,
                code=error.code or "OA_NOT_FOUND",
                normalized_username=error.normalized_username,
            )
        if status == 400 and error.invalid is not None:
            raise InvalidInputError(error.invalid)
        if status == 400 and error.code == ProviderInputError.code:
            raise ProviderInputError(error.error)
        message = error.message or error.error
        log.warning("Relay call failed: status %s code %s: %s", status, error.code, message)
        raise ProviderError(
            message,
            status=error.status or status,
            code=error.code,
            details=payload,
            label=error.error,
        )
    log.warning("Relay call failed: status %s", status)
    raise ProviderError(f"relay request failed ({status})", status=status, details=payload)


@dataclass(slots=True)
class RelayGateway:
    """Client-side gateway posting JSON to the relay's ``/v1/oa/users`` endpoints."""

    base_url: str
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=default_client_factory
    )
    resilience: ResilienceConfig | None = None

    def _resilience(self) -> ResilienceConfig:
        return self.resilience or relay_resilience(self.base_url)

    def _post[ResponseT: BaseModel](
        self,
        path: str,
        body: BaseModel,
        response_model: type[ResponseT],
    ) -> ResponseT:
        return asyncio.run(self._post_async(path, body, response_model))

    async def _post_async[ResponseT: BaseModel](
        self,
        path: str,
        body: BaseModel,
        response_model: type[ResponseT],
    ) -> ResponseT:
        payload = body.model_dump(mode="json", by_alias=True, exclude_none=True)
        try:
            async with self.client_factory(self._resilience()) as client:
                response = await client.post(path, json=payload)
        except httpx.HTTPError as exc:
            log.error("Relay unreachable at %s: %s", self.base_url, exc)
            raise ProviderError(
                str(exc) or "relay unreachable", code="RELAY_TRANSPORT_ERROR"
            ) from exc
        _raise_for_error(response)
        try:
            return response_model.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise ProviderError(
                f"Unexpected relay response from {path}",
                status=response.status_code,
                details=response.text,
            ) from exc

    def verify(self, *, username: str | None = None, email: str | None = None) -> VerifyResult:
        body = LookupBody(username=username, email=email)
        return self._post("/v1/oa/users/verify", body, VerifyResponse).to_result()

    def get(self, *, username: str | None = None, email: str | None = None) -> LookupResult:
        body = LookupBody(username=username, email=email)
        return self._post("/v1/oa/users/get", body, GetResponse).to_result()

    def create(self, request: CreateRequest) -> CreateResult:
        body = CreateBody.from_request(request)
        return self._post("/v1/oa/users/create", body, CreateResponse).to_result()

    def modify(self, request: ModifyRequest) -> ModifyResult:
        body = ModifyBody.from_request(request)
        return self._post("/v1/oa/users/modify", body, ModifyResponse).to_result()

    def resend_activation(self, selector: AccountSelector) -> ResendResult:
        body = ResendBody.from_selector(selector)
        return self._post("/v1/oa/users/resend-activation", body, ResendResponse).to_result()


if TYPE_CHECKING:
    _gateway_check: IdentityProviderGateway = RelayGateway(base_url="https://relay.invalid")
