"""Wire models of the relay HTTP surface.

Request bodies use the snake_case keys sent by the staff client; responses use
the relay's camelCase keys. Both sides of the relay (the FastAPI app and
:mod:`oacompass.adapters.relay_client`) share these models.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from oacompass.config.relay import SERVICE_NAME
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
from oacompass.domain.model.policy import GroupPolicy


def _optional_text(value: object) -> object:
    if value is None or isinstance(value, str):
        return value
    return str(value)


def _blank_to_none(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip() or None


class RelayModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


# Requests


class LookupBody(RelayModel):
    username: str | None = None
    email: str | None = None

    _text = field_validator("username", "email", mode="before")(_optional_text)


class CreateBody(RelayModel):
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    expires: str | None = None
    alma_group_key: str | None = None
    alma_group_code: str | None = None
    password: str | None = None
    status: str | None = None
    groups: list[str] = Field(default_factory=list)
    permission_sets: list[str] = Field(default_factory=list, alias="permissionSets")

    _text = field_validator(
        "email",
        "first_name",
        "last_name",
        "expires",
        "alma_group_key",
        "alma_group_code",
        "password",
        "status",
        mode="before",
    )(_optional_text)

    @classmethod
    def from_request(cls, request: CreateRequest) -> CreateBody:
        return cls(
            email=request.email,
            first_name=request.first_name,
            last_name=request.last_name,
            expires=request.expires,
            alma_group_key=request.group_key,
            alma_group_code=request.group_code,
            password=request.password,
            status=request.status,
            groups=list(request.groups),
            permission_sets=list(request.permission_sets),
        )

    def to_request(self) -> CreateRequest:
        return CreateRequest(
            email=self.email or "",
            first_name=self.first_name or "",
            last_name=self.last_name or "",
            expires=self.expires or "",
            group_key=_blank_to_none(self.alma_group_key),
            group_code=_blank_to_none(self.alma_group_code),
            password=self.password or None,
            status=self.status,
            groups=tuple(self.groups),
            permission_sets=tuple(self.permission_sets),
        )


class ModifyBody(RelayModel):
    openathens_id: str | None = None
    username: str | None = None
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    expires: str | None = None
    status: str | None = None
    alma_group_key: str | None = None
    alma_group_code: str | None = None
    groups: list[str] = Field(default_factory=list)
    permission_sets: list[str] = Field(default_factory=list, alias="permissionSets")

    _text = field_validator(
        "openathens_id",
        "username",
        "email",
        "first_name",
        "last_name",
        "expires",
        "status",
        "alma_group_key",
        "alma_group_code",
        mode="before",
    )(_optional_text)

    @classmethod
    def from_request(cls, request: ModifyRequest) -> ModifyBody:
        return cls(
            openathens_id=request.openathens_id,
            username=request.username,
            email=request.email,
            first_name=request.first_name,
            last_name=request.last_name,
            expires=request.expires,
            status=request.status,
            alma_group_key=request.group_key,
            alma_group_code=request.group_code,
            groups=list(request.groups),
            permission_sets=list(request.permission_sets),
        )

    def to_request(self) -> ModifyRequest:
        return ModifyRequest(
            openathens_id=_blank_to_none(self.openathens_id),
            username=_blank_to_none(self.username),
            email=_blank_to_none(self.email),
            first_name=_blank_to_none(self.first_name),
            last_name=_blank_to_none(self.last_name),
            expires=_blank_to_none(self.expires),
            status=self.status,
            group_key=_blank_to_none(self.alma_group_key),
            group_code=_blank_to_none(self.alma_group_code),
            groups=tuple(self.groups),
            permission_sets=tuple(self.permission_sets),
        )


class ResendBody(RelayModel):
    openathens_id: str | None = None
    username: str | None = None
    email: str | None = None

    _text = field_validator("openathens_id", "username", "email", mode="before")(_optional_text)

    @classmethod
    def from_selector(cls, selector: AccountSelector) -> ResendBody:
        return cls(
            openathens_id=selector.openathens_id,
            username=selector.username,
            email=selector.email,
        )

    def to_selector(self) -> AccountSelector:
        return AccountSelector(
            openathens_id=_blank_to_none(self.openathens_id),
            username=_blank_to_none(self.username),
            email=_blank_to_none(self.email),
        )


# Responses


class AppliedPolicy(RelayModel):
    groups: list[str] = Field(default_factory=list)
    permission_sets: list[str] = Field(default_factory=list, alias="permissionSets")

    @classmethod
    def from_policy(cls, policy: GroupPolicy | None) -> AppliedPolicy | None:
        if policy is None:
            return None
        return cls(groups=list(policy.groups), permission_sets=list(policy.permission_sets))

    def to_policy(self, key: str = "") -> GroupPolicy:
        return GroupPolicy(
            key=key, groups=tuple(self.groups), permission_sets=tuple(self.permission_sets)
        )


class HealthResponse(RelayModel):
    ok: bool = True
    service: str = SERVICE_NAME
    time: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())


class VerifyResponse(RelayModel):
    found: bool
    normalized_username: str | None = Field(default=None, alias="normalizedUsername")
    raw: Any = None

    @classmethod
    def from_result(cls, result: VerifyResult) -> VerifyResponse:
        return cls(found=result.found, normalized_username=result.normalized_username, raw=result.raw)

    def to_result(self) -> VerifyResult:
        return VerifyResult(
            found=self.found, normalized_username=self.normalized_username, raw=self.raw
        )


class GetResponse(RelayModel):
    account: dict[str, Any]
    normalized_username: str | None = Field(default=None, alias="normalizedUsername")

    @classmethod
    def from_result(cls, result: LookupResult) -> GetResponse:
        return cls(account=dict(result.account.raw), normalized_username=result.normalized_username)

    def to_result(self) -> LookupResult:
        return LookupResult(
            account=IdentityAccount.from_payload(self.account),
            normalized_username=self.normalized_username,
        )


class SummaryPayload(RelayModel):
    id: str | None = None
    username: str | None = None
    status: str | None = None
    expiry: str | None = None
    activation_code: str | None = Field(default=None, alias="activationCode")
    activation_expires: str | None = Field(default=None, alias="activationExpires")
    groups: list[str] = Field(default_factory=list)
    permission_sets: list[str] = Field(default_factory=list, alias="permissionSets")

    _text = field_validator(
        "id", "username", "status", "expiry", "activation_code", "activation_expires", mode="before"
    )(_optional_text)

    @classmethod
    def from_summary(cls, summary: AccountSummary) -> SummaryPayload:
        return cls(
            id=summary.id,
            username=summary.username,
            status=summary.status,
            expiry=summary.expiry,
            activation_code=summary.activation_code,
            activation_expires=summary.activation_expires,
            groups=list(summary.groups),
            permission_sets=list(summary.permission_sets),
        )

    def to_summary(self) -> AccountSummary:
        return AccountSummary(
            id=self.id,
            username=self.username,
            status=self.status,
            expiry=self.expiry,
            activation_code=self.activation_code,
            activation_expires=self.activation_expires,
            groups=tuple(self.groups),
            permission_sets=tuple(self.permission_sets),
        )


class CreateResponse(RelayModel):
    created: bool
    already_exists: bool | None = Field(default=None, alias="alreadyExists")
    raw: Any = None
    summary: SummaryPayload | None = None
    applied_policy: AppliedPolicy | None = Field(default=None, alias="appliedPolicy")
    reason: str | None = None

    @classmethod
    def from_result(cls, result: CreateResult) -> CreateResponse:
        return cls(
            created=result.created,
            already_exists=True if result.already_exists else None,
            raw=result.raw,
            summary=SummaryPayload.from_summary(result.summary) if result.summary else None,
            applied_policy=AppliedPolicy.from_policy(result.applied_policy),
            reason=result.reason,
        )

    def to_result(self) -> CreateResult:
        return CreateResult(
            created=self.created,
            already_exists=bool(self.already_exists),
            raw=self.raw,
            summary=self.summary.to_summary() if self.summary else None,
            applied_policy=self.applied_policy.to_policy() if self.applied_policy else None,
            reason=self.reason,
        )


class ModifyResponse(RelayModel):
    modified: bool
    id: str
    raw: Any = None
    applied_policy: AppliedPolicy | None = Field(default=None, alias="appliedPolicy")

    @classmethod
    def from_result(cls, result: ModifyResult) -> ModifyResponse:
        return cls(
            modified=result.modified,
            id=result.id,
            raw=result.raw,
            applied_policy=AppliedPolicy.from_policy(result.applied_policy),
        )

    def to_result(self) -> ModifyResult:
        return ModifyResult(
            modified=self.modified,
            id=self.id,
            raw=self.raw,
            applied_policy=self.applied_policy.to_policy() if self.applied_policy else None,
        )


class ResendResponse(RelayModel):
    resent: bool
    id: str
    raw: Any = None

    @classmethod
    def from_result(cls, result: ResendResult) -> ResendResponse:
        return cls(resent=result.resent, id=result.id, raw=result.raw)

    def to_result(self) -> ResendResult:
        return ResendResult(resent=self.resent, id=self.id, raw=self.raw)


class ErrorResponse(RelayModel):
    error: str
    code: str | None = None
    message: str | None = None
    status: int | None = None
    normalized_username: str | None = Field(default=None, alias="normalizedUsername")
    invalid: dict[str, str] | None = None


def dump(model: BaseModel, *, exclude_none: bool = False) -> dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True, exclude_none=exclude_none)
