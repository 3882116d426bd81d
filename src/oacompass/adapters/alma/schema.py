"""Pydantic models describing the Alma users API payloads."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, cast

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _as_list(value: object) -> object:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


class AlmaBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class LinkPayload(AlmaBaseModel):
    rel: str | None = Field(default=None, alias="@rel")
    href: str | None = Field(default=None, alias="@href")


class UserSearchResponse(AlmaBaseModel):
    """``GET /almaws/v1/users`` result; ``user`` may arrive as one object or a list."""

    users: list[dict[str, Any]] = Field(default_factory=list, alias="user")
    total_record_count: int | None = None
    links: list[LinkPayload] = Field(default_factory=list, alias="link")

    _normalize_users = field_validator("users", mode="before")(_as_list)

    @field_validator("links", mode="before")
    @classmethod
    def _normalize_links(cls, value: object) -> object:
        return [item for item in cast(list[Any], _as_list(value)) if isinstance(item, Mapping)]

    @property
    def has_next_link(self) -> bool:
        return any(link.rel == "next" for link in self.links)


class AlmaErrorDetail(AlmaBaseModel):
    error_code: str | None = Field(default=None, alias="errorCode")
    error_message: str | None = Field(default=None, alias="errorMessage")


class AlmaErrorList(AlmaBaseModel):
    error: list[AlmaErrorDetail] = Field(default_factory=list)

    _normalize_error = field_validator("error", mode="before")(_as_list)


class AlmaErrorResponse(AlmaBaseModel):
    errors_exist: bool = Field(default=False, alias="errorsExist")
    error_list: AlmaErrorList = Field(default_factory=AlmaErrorList, alias="errorList")

    def first_error(self) -> AlmaErrorDetail | None:
        return self.error_list.error[0] if self.error_list.error else None
