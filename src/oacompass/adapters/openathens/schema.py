"""Pydantic models describing the OpenAthens admin API payloads."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, cast

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


class OpenAthensBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class AccountAttributes(OpenAthensBaseModel):
    forenames: str | None = None
    surname: str | None = None
    email_address: str | None = Field(default=None, alias="emailAddress")
    unique_email_address: str | None = Field(default=None, alias="uniqueEmailAddress")

    _normalize = field_validator(
        "forenames", "surname", "email_address", "unique_email_address", mode="before"
    )(_blank_to_none)

    @classmethod
    def for_email(
        cls,
        email: str | None,
        *,
        forenames: str | None = None,
        surname: str | None = None,
    ) -> AccountAttributes:
        return cls(
            forenames=forenames,
            surname=surname,
            email_address=email,
            unique_email_address=email,
        )

    def is_empty(self) -> bool:
        return not self.model_dump(exclude_none=True)


class AccountRequestBody(OpenAthensBaseModel):
    """Body of a create or modify call (``accountRequest-v1`` media type)."""

    status: str | None = None
    expiry_date: str | None = Field(default=None, alias="expiryDate")
    attributes: AccountAttributes | None = None
    password: str | None = None
    groups: list[str] | None = None
    permission_sets: list[str] | None = Field(default=None, alias="permissionSets")

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class ErrorBody(OpenAthensBaseModel):
    code: str | None = None
    message: str | None = None

    @field_validator("code", "message", mode="before")
    @classmethod
    def _stringify(cls, value: object) -> object:
        if value is None or isinstance(value, str):
            return value
        return str(value)

    @classmethod
    def parse(cls, body: object) -> ErrorBody:
        if isinstance(body, Mapping):
            return cls.model_validate(dict(cast(Mapping[str, Any], body)))
        return cls()


def match_count(body: object) -> int:
    """Number of accounts a query matched: ``total``, else ``count``, else list length."""

    if isinstance(body, list):
        return len(cast(list[Any], body))
    if isinstance(body, Mapping):
        mapping = cast(Mapping[str, Any], body)
        for key in ("total", "count"):
            value = mapping.get(key)
            if value is not None:
                try:
                    return int(value)
                except (TypeError, ValueError):
                    return 0
    return 0


def first_account(body: object) -> dict[str, Any] | None:
    """Pick the first account out of a query response, or ``None`` if it is empty."""

    if isinstance(body, list):
        items = cast(list[Any], body)
        return items[0] if items and isinstance(items[0], dict) else None
    if not isinstance(body, Mapping):
        return None
    mapping = cast(Mapping[str, Any], body)
    results = mapping.get("results")
    if isinstance(results, list):
        items = cast(list[Any], results)
        return items[0] if items and isinstance(items[0], dict) else None
    if mapping.get("id"):
        return dict(mapping)
    return None
