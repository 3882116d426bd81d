"""Patron record locations that can hold the OpenAthens username."""

from __future__ import annotations

from enum import StrEnum


class UsernameField(StrEnum):
    JOB_DESCRIPTION = "job_description"
    IDENTIFIER_SLOT = "identifier_slot"
    USER_NOTE = "user_note"


NO_SECONDARY_FIELD = "none"

_ALIASES = {"identifier02": UsernameField.IDENTIFIER_SLOT}


def parse_username_field(value: str) -> UsernameField:
    """Parse a configured field name, accepting the legacy ``identifier02`` spelling."""

    normalized = value.strip().lower()
    if normalized in _ALIASES:
        return _ALIASES[normalized]
    try:
        return UsernameField(normalized)
    except ValueError:
        choices = ", ".join(field.value for field in UsernameField)
        raise ValueError(f"Unknown username field {value!r} (expected one of: {choices})") from None


def parse_secondary_field(value: str | None) -> UsernameField | None:
    if value is None or not value.strip() or value.strip().lower() == NO_SECONDARY_FIELD:
        return None
    return parse_username_field(value)
