"""OpenAthens account values and the request/result shapes of the gateway."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Mapping

    from .policy import GroupPolicy


class AccountStatus(StrEnum):
    ACTIVE = "active"
    PENDING = "pending"
    SUSPENDED = "suspended"


MODIFIABLE_STATUSES = frozenset(status.value for status in AccountStatus)


def _text(value: object) -> str | None:
    if value is None or isinstance(value, str):
        return value
    return str(value)


def _names(items: object) -> tuple[str, ...]:
    if not isinstance(items, list):
        return ()
    names: list[str] = []
    for item in items:
        if isinstance(item, dict):
            name = item.get("name")
            if name:
                names.append(str(name))
        elif isinstance(item, str):
            names.append(item)
    return tuple(names)


@dataclass(frozen=True, slots=True)
class IdentityAccount:
    """Read-only view of an OpenAthens account returned by a query."""

    id: str
    username: str | None = None
    status: str | None = None
    expiry: str | None = None
    forenames: str | None = None
    surname: str | None = None
    email_address: str | None = None
    unique_email_address: str | None = None
    groups: tuple[str, ...] = ()
    permission_sets: tuple[str, ...] = ()
    raw: Mapping[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> IdentityAccount:
        attributes = payload.get("attributes")
        attrs: Mapping[str, Any] = attributes if isinstance(attributes, dict) else {}
        groups = payload.get("groups") or payload.get("memberOf")
        return cls(
            id=str(payload.get("id") or ""),
            username=_text(payload.get("username")),
            status=_text(payload.get("status")),
            expiry=_text(payload.get("expiry") or payload.get("expiryDate")),
            forenames=attrs.get("forenames"),
            surname=attrs.get("surname"),
            email_address=attrs.get("emailAddress"),
            unique_email_address=attrs.get("uniqueEmailAddress"),
            groups=_names(groups),
            permission_sets=_names(payload.get("permissionSets")),
            raw=dict(payload),
        )


@dataclass(frozen=True, slots=True)
class AccountSummary:
    """Condensed view of a freshly created account."""

    id: str | None = None
    username: str | None = None
    status: str | None = None
    expiry: str | None = None
    activation_code: str | None = None
    activation_expires: str | None = None
    groups: tuple[str, ...] = ()
    permission_sets: tuple[str, ...] = ()

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> AccountSummary:
        activation = payload.get("activationCode")
        activation_map: Mapping[str, Any] = activation if isinstance(activation, dict) else {}
        return cls(
            id=_text(payload.get("id")),
            username=_text(payload.get("username")),
            status=_text(payload.get("status")),
            expiry=_text(payload.get("expiry")),
            activation_code=_text(activation_map.get("code")),
            activation_expires=_text(activation_map.get("expires")),
            groups=_names(payload.get("memberOf")),
            permission_sets=_names(payload.get("permissionSets")),
        )


@dataclass(frozen=True, slots=True)
class CreateRequest:
    email: str
    first_name: str
    last_name: str
    expires: str
    group_key: str | None = None
    group_code: str | None = None
    password: str | None = None
    status: str | None = None
    groups: tuple[str, ...] = ()
    permission_sets: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class ModifyRequest:
    """Partial update; only the populated fields are sent to OpenAthens."""

    openathens_id: str | None = None
    username: str | None = None
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    expires: str | None = None
    status: str | None = None
    group_key: str | None = None
    group_code: str | None = None
    groups: tuple[str, ...] = ()
    permission_sets: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class AccountSelector:
    """Identifies one account by id, username or email, in that priority."""

    openathens_id: str | None = None
    username: str | None = None
    email: str | None = None


@dataclass(frozen=True, slots=True)
class VerifyResult:
    found: bool
    normalized_username: str | None = None
    raw: Any = None


@dataclass(frozen=True, slots=True)
class LookupResult:
    account: IdentityAccount
    normalized_username: str | None = None

    @property
    def username(self) -> str | None:
        return self.account.username or self.normalized_username


@dataclass(frozen=True, slots=True)
class CreateResult:
    created: bool
    already_exists: bool = False
    raw: Any = None
    summary: AccountSummary | None = None
    applied_policy: GroupPolicy | None = None
    reason: str | None = None

    @property
    def username(self) -> str | None:
        if self.summary is not None and self.summary.username:
            return self.summary.username
        if isinstance(self.raw, dict):
            username = self.raw.get("username")
            return str(username) if username else None
        return None


@dataclass(frozen=True, slots=True)
class ModifyResult:
    modified: bool
    id: str
    raw: Any = None
    applied_policy: GroupPolicy | None = None


@dataclass(frozen=True, slots=True)
class ResendResult:
    resent: bool
    id: str
    raw: Any = None
