"""Alma patron records as seen by the reconciliation workflows."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Mapping

type JsonObject = dict[str, Any]


def _as_list(value: object) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def _code_and_description(value: object) -> tuple[str | None, str | None]:
    if not value:
        return None, None
    if isinstance(value, str):
        return value, None
    if isinstance(value, dict):
        code = value.get("value") or value.get("code")
        desc = value.get("@desc") or value.get("desc")
        return (str(code) if code else None), (str(desc) if desc else None)
    return str(value), None


def identifier_type_code(identifier: Mapping[str, Any]) -> str | None:
    """Return the type code of an identifier whose ``id_type`` is a string or ``{"value": ...}``."""

    id_type = identifier.get("id_type")
    if isinstance(id_type, dict):
        value = id_type.get("value")
        return str(value) if value is not None else None
    if id_type is None:
        return None
    return str(id_type)


def _self_link(value: object) -> str | None:
    for link in _as_list(value):
        if isinstance(link, dict) and link.get("@rel") == "self":
            href = link.get("@href")
            return str(href) if href else None
    if isinstance(value, str) and value:
        return value
    return None


@dataclass(slots=True)
class PatronRecord:
    """Full Alma user record.

    The wrapped payload keeps every field Alma returned so a whole-record PUT
    round-trips fields this package never reads. Identifier, note and email
    collections are coerced to lists once, in :meth:`from_payload`.
    """

    data: JsonObject = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> PatronRecord:
        data: JsonObject = copy.deepcopy(dict(payload))

        wrapped = data.pop("user_identifiers", None)
        identifiers = data.get("user_identifier")
        if identifiers is None and isinstance(wrapped, dict):
            identifiers = wrapped.get("user_identifier")
        data["user_identifier"] = [item for item in _as_list(identifiers) if item]

        data["user_note"] = [item for item in _as_list(data.get("user_note")) if item]

        contact = data.get("contact_info")
        if isinstance(contact, dict) and "email" in contact:
            contact["email"] = [item for item in _as_list(contact.get("email")) if item]

        return cls(data=data)

    def to_payload(self) -> JsonObject:
        return copy.deepcopy(self.data)

    @property
    def primary_id(self) -> str:
        return str(self.data.get("primary_id") or "")

    @property
    def first_name(self) -> str:
        return str(self.data.get("first_name") or "").strip()

    @property
    def last_name(self) -> str:
        return str(self.data.get("last_name") or "").strip()

    @property
    def display_name(self) -> str:
        if self.first_name and self.last_name:
            return f"{self.first_name} {self.last_name}"
        return self.first_name or self.last_name

    @property
    def emails(self) -> list[JsonObject]:
        contact = self.data.get("contact_info")
        if not isinstance(contact, dict):
            return []
        return [item for item in _as_list(contact.get("email")) if isinstance(item, dict)]

    @property
    def email(self) -> str | None:
        """Preferred email address, else the first one listed."""

        emails = self.emails
        preferred = next((item for item in emails if item.get("preferred")), None)
        chosen = preferred or (emails[0] if emails else None)
        if chosen is None:
            return None
        address = str(chosen.get("email_address") or "").strip()
        return address or None

    @property
    def group_code(self) -> str | None:
        return _code_and_description(self.data.get("user_group"))[0]

    @property
    def group_description(self) -> str | None:
        return _code_and_description(self.data.get("user_group"))[1]

    @property
    def expiry_raw(self) -> str:
        value = self.data.get("expiry_date") or self.data.get("expiration_date") or ""
        return str(value)

    @property
    def job_description(self) -> str:
        return str(self.data.get("job_description") or "")

    @job_description.setter
    def job_description(self, value: str) -> None:
        self.data["job_description"] = value

    @property
    def identifiers(self) -> list[JsonObject]:
        return self.data.setdefault("user_identifier", [])

    @property
    def notes(self) -> list[JsonObject]:
        return self.data.setdefault("user_note", [])

    def find_identifier(self, type_code: str) -> JsonObject | None:
        for identifier in self.identifiers:
            if identifier_type_code(identifier) == type_code:
                return identifier
        return None


@dataclass(frozen=True, slots=True)
class PatronSummary:
    """Search-result shape of an Alma user."""

    primary_id: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    group_code: str | None = None
    group_description: str | None = None
    expiry: str | None = None
    link: str | None = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> PatronSummary:
        code, desc = _code_and_description(payload.get("user_group"))
        expiry = payload.get("expiry_date") or payload.get("expiration_date")
        return cls(
            primary_id=payload.get("primary_id"),
            first_name=payload.get("first_name"),
            last_name=payload.get("last_name"),
            group_code=code,
            group_description=desc,
            expiry=str(expiry).removesuffix("Z") if expiry else None,
            link=_self_link(payload.get("link")),
        )

    @property
    def display_name(self) -> str:
        parts = [part for part in (self.first_name, self.last_name) if part]
        return " ".join(parts)
