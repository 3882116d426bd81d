"""Scriptable fake of the identity-provider gateway port."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from oacompass.domain.errors import NotFound
from oacompass.domain.model.account import (
    AccountSelector,
    AccountSummary,
    CreateRequest,
    CreateResult,
    IdentityAccount,
    LookupResult,
    ModifyRequest,
    ModifyResult,
    ResendResult,
    VerifyResult,
)
from oacompass.domain.ports.identity import IdentityProviderGateway


def account_payload(username: str, *, email: str = "jane.doe@example.edu") -> dict[str, Any]:
    return {
        "id": f"id-{username}",
        "username": username,
        "status": "active",
        "attributes": {"emailAddress": email, "uniqueEmailAddress": email},
    }


@dataclass
class FakeGateway:
    """Accounts keyed by username and by email; errors can be injected per call."""

    by_username: dict[str, dict[str, Any]] = field(default_factory=dict)
    by_email: dict[str, dict[str, Any]] = field(default_factory=dict)
    create_result: CreateResult | None = None
    create_error: Exception | None = None
    lookup_error: Exception | None = None
    failing_lookups: dict[str, Exception] = field(default_factory=dict)
    modify_error: Exception | None = None
    resend_error: Exception | None = None
    on_modify: dict[str, Any] | None = None
    calls: list[tuple[str, Any]] = field(default_factory=list)

    def add_account(self, payload: dict[str, Any]) -> None:
        self.by_username[payload["username"]] = payload
        email = payload.get("attributes", {}).get("emailAddress")
        if email:
            self.by_email[email] = payload

    def verify(self, *, username: str | None = None, email: str | None = None) -> VerifyResult:
        self.calls.append(("verify", username or email))
        found = (username in self.by_username) if username else (email in self.by_email)
        return VerifyResult(found=found, normalized_username=username)

    def get(self, *, username: str | None = None, email: str | None = None) -> LookupResult:
        self.calls.append(("get", {"username": username, "email": email}))
        if self.lookup_error is not None:
            raise self.lookup_error
        if (username or email or "") in self.failing_lookups:
            raise self.failing_lookups[username or email or ""]
        payload = self.by_username.get(username or "") if username else self.by_email.get(email or "")
        if payload is None:
            raise NotFound("not found", normalized_username=username)
        return LookupResult(IdentityAccount.from_payload(payload), normalized_username=username)

    def create(self, request: CreateRequest) -> CreateResult:
        self.calls.append(("create", request))
        if self.create_error is not None:
            raise self.create_error
        if self.create_result is not None:
            return self.create_result
        summary = AccountSummary(id="new-id", username="iast-generated", status="pending")
        return CreateResult(created=True, raw={"id": "new-id"}, summary=summary)

    def modify(self, request: ModifyRequest) -> ModifyResult:
        self.calls.append(("modify", request))
        if self.modify_error is not None:
            raise self.modify_error
        if self.on_modify is not None:
            self.add_account(self.on_modify)
        return ModifyResult(modified=True, id="modified-id", raw={})

    def resend_activation(self, selector: AccountSelector) -> ResendResult:
        self.calls.append(("resend", selector))
        if self.resend_error is not None:
            raise self.resend_error
        return ResendResult(resent=True, id="resent-id", raw={})

    def call_names(self) -> list[str]:
        return [name for name, _ in self.calls]


_gateway_check: IdentityProviderGateway = FakeGateway()
