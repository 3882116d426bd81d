from __future__ import annotations

from typing import TYPE_CHECKING, Any

import httpx
import pytest

from oacompass.adapters.http_resilience import ResilientClient
from oacompass.adapters.relay import create_app
from oacompass.adapters.relay_client import RelayGateway
from oacompass.config.relay import RelayConfig
from oacompass.domain.errors import InvalidInputError, NotFound, ProviderError, ProviderInputError
from oacompass.domain.model.account import (
    AccountSelector,
    AccountSummary,
    CreateRequest,
    CreateResult,
    ModifyRequest,
)
from oacompass.domain.model.policy import GroupPolicy
from tests.helpers.http import make_client_factory
from tests.helpers.identity import FakeGateway, account_payload

if TYPE_CHECKING:
    from collections.abc import Callable

    from oacompass.config.http_resilience import ResilienceConfig

RELAY_URL = "https://relay.example.edu"


def _asgi_factory(gateway: FakeGateway) -> Callable[[ResilienceConfig], ResilientClient]:
    app = create_app(RelayConfig(), gateway=gateway)

    def factory(resilience: ResilienceConfig) -> ResilientClient:
        client = ResilientClient(resilience)
        client._client = httpx.AsyncClient(  # noqa: SLF001  # type: ignore[reportPrivateUsage]
            transport=httpx.ASGITransport(app=app),
            base_url=resilience.base_url or RELAY_URL,
        )
        return client

    return factory


def _relay(gateway: FakeGateway) -> RelayGateway:
    return RelayGateway(base_url=RELAY_URL, client_factory=_asgi_factory(gateway))


def _request() -> CreateRequest:
    return CreateRequest(
        email="jane.doe@example.edu",
        first_name="Jane",
        last_name="Doe",
        expires="2030-06-30",
        group_code="05",
    )


def test_get_round_trips_through_relay() -> None:
    gateway = FakeGateway()
    gateway.add_account(account_payload("iast-jdoe"))

    result = _relay(gateway).get(email="jane.doe@example.edu")

    assert result.username == "iast-jdoe"
    assert result.account.id == "id-iast-jdoe"
    assert gateway.calls == [("get", {"username": None, "email": "jane.doe@example.edu"})]


def test_get_miss_raises_not_found() -> None:
    with pytest.raises(NotFound):
        _relay(FakeGateway()).get(username="ghost")


def test_create_forwards_request_fields() -> None:
    gateway = FakeGateway(
        create_result=CreateResult(
            created=True,
            raw={"id": "9"},
            summary=AccountSummary(id="9", username="iast-new"),
            applied_policy=GroupPolicy(key="retiree", groups=("retiree",), permission_sets=("p",)),
        )
    )

    result = _relay(gateway).create(_request())

    assert result.created
    assert result.username == "iast-new"
    assert result.applied_policy is not None
    assert result.applied_policy.permission_sets == ("p",)
    _, forwarded = gateway.calls[0]
    assert forwarded == _request()


def test_create_already_exists_is_not_an_error() -> None:
    gateway = FakeGateway(
        create_result=CreateResult(created=False, already_exists=True, reason="exists")
    )

    result = _relay(gateway).create(_request())

    assert not result.created
    assert result.already_exists
    assert result.reason == "exists"


def test_modify_and_resend_round_trip() -> None:
    gateway = FakeGateway()
    relay = _relay(gateway)

    modified = relay.modify(ModifyRequest(username="jdoe", expires="2031-01-01"))
    resent = relay.resend_activation(AccountSelector(email="jane.doe@example.edu"))

    assert modified.id == "modified-id"
    assert resent.resent
    assert gateway.call_names() == ["modify", "resend"]
    _, selector = gateway.calls[1]
    assert selector == AccountSelector(email="jane.doe@example.edu")


def test_modify_not_found_raises_not_found() -> None:
    gateway = FakeGateway(modify_error=NotFound())

    with pytest.raises(NotFound) as excinfo:
        _relay(gateway).modify(ModifyRequest(username="ghost"))

    assert excinfo.value.code == "OA_NOT_FOUND"


def _relay_returning(status: int, payload: Any) -> RelayGateway:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, json=payload)

    return RelayGateway(base_url=RELAY_URL, client_factory=make_client_factory(handler))


def test_invalid_input_error_is_rebuilt() -> None:
    relay = _relay_returning(400, {"error": "invalid input", "invalid": {"email": "invalid"}})

    with pytest.raises(InvalidInputError) as excinfo:
        relay.create(_request())

    assert excinfo.value.invalid == {"email": "invalid"}


def test_input_missing_error_is_rebuilt() -> None:
    relay = _relay_returning(400, {"error": "username or email required", "code": "OA_INPUT_MISSING"})

    with pytest.raises(ProviderInputError):
        relay.verify()


def test_provider_error_keeps_status_and_code() -> None:
    relay = _relay_returning(
        403,
        {"error": "OA query failed", "code": "FORBIDDEN", "message": "bad key", "status": 403},
    )

    with pytest.raises(ProviderError) as excinfo:
        relay.verify(username="jdoe")

    assert excinfo.value.status == 403
    assert excinfo.value.code == "FORBIDDEN"
    assert excinfo.value.message == "bad key"
    assert excinfo.value.label == "OA query failed"


def test_404_without_error_body_is_provider_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, text="<html>gone</html>")

    relay = RelayGateway(base_url=RELAY_URL, client_factory=make_client_factory(handler))

    with pytest.raises(ProviderError) as excinfo:
        relay.get(username="jdoe")

    assert excinfo.value.status == 404


def test_transport_failure_is_provider_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    relay = RelayGateway(base_url=RELAY_URL, client_factory=make_client_factory(handler))

    with pytest.raises(ProviderError) as excinfo:
        relay.verify(username="jdoe")

    assert excinfo.value.code == "RELAY_TRANSPORT_ERROR"


def test_requests_target_relay_paths() -> None:
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(str(request.url))
        return httpx.Response(200, json={"found": False, "normalizedUsername": None, "raw": None})

    relay = RelayGateway(base_url=f"{RELAY_URL}/", client_factory=make_client_factory(handler))
    relay.verify(email="jane@example.edu")

    assert seen == [f"{RELAY_URL}/v1/oa/users/verify"]
