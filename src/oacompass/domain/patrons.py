"""Patron record checks and the username write-back cycle."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from oacompass.domain.errors import ValidationFailure, WriteBackFailure
from oacompass.domain.model.fields import UsernameField

from .username_storage import apply_username, read_username

if TYPE_CHECKING:
    from oacompass.domain.model.patron import PatronRecord
    from oacompass.domain.ports.records import PatronRecordStore

log = getLogger(__name__)

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

MISSING_USER = "user"
MISSING_EMAIL = "email"
MISSING_FIRST_NAME = "first name"
MISSING_LAST_NAME = "last name"
MISSING_EXPIRY = "expiry (YYYY-MM-DD)"
DISALLOWED_EMAIL = "email (disallowed domain)"


@dataclass(frozen=True, slots=True)
class ProvisioningCheck:
    ok: bool
    missing: tuple[str, ...] = field(default_factory=tuple)
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    expires: str | None = None
    group_code: str | None = None


def _email_domain(email: str) -> str:
    return email.rpartition("@")[2].strip().lower()


def validate_for_provisioning(
    record: PatronRecord | None,
    *,
    disallowed_domain: str | None = None,
) -> ProvisioningCheck:
    """Check that a record carries what OpenAthens needs to create or sync an account.

    ``missing`` lists human-readable labels in a fixed order: email, first name,
    last name, expiry. A ``None`` record reports only ``"user"``.
    """

    if record is None:
        return ProvisioningCheck(ok=False, missing=(MISSING_USER,))

    email = record.email or ""
    expires = record.expiry_raw[:10]
    expires_valid = bool(_ISO_DATE.match(expires))

    missing: list[str] = []
    if not email:
        missing.append(MISSING_EMAIL)
    elif disallowed_domain and _email_domain(email) == disallowed_domain.strip().lower():
        missing.append(DISALLOWED_EMAIL)
    if not record.first_name:
        missing.append(MISSING_FIRST_NAME)
    if not record.last_name:
        missing.append(MISSING_LAST_NAME)
    if not expires_valid:
        missing.append(MISSING_EXPIRY)

    return ProvisioningCheck(
        ok=not missing,
        missing=tuple(missing),
        email=email or None,
        first_name=record.first_name or None,
        last_name=record.last_name or None,
        expires=expires if expires_valid else None,
        group_code=record.group_code,
    )


def require_provisionable(
    record: PatronRecord | None,
    *,
    disallowed_domain: str | None = None,
) -> ProvisioningCheck:
    check = validate_for_provisioning(record, disallowed_domain=disallowed_domain)
    if not check.ok:
        raise ValidationFailure(check.missing)
    return check


def find_external_username(record: PatronRecord | None, id_type_code: str) -> str | None:
    if record is None:
        return None
    return read_username(record, UsernameField.IDENTIFIER_SLOT, id_type_code)


def write_back_both(
    store: PatronRecordStore,
    primary_id: str,
    username: str,
    *,
    id_type_code: str,
    primary: UsernameField,
    secondary: UsernameField | None,
) -> PatronRecord:
    """Fetch the record once, store the username in both fields, save it once."""

    try:
        record = store.get_user(primary_id)
        apply_username(
            record,
            username,
            id_type_code=id_type_code,
            primary=primary,
            secondary=secondary,
        )
        return store.update_user(record)
    except Exception as exc:
        log.error(
            "Failed to save OpenAthens username for %s (id type %s, fields %s/%s, status %s): %s",
            primary_id,
            id_type_code,
            primary.value,
            secondary.value if secondary else "none",
            getattr(exc, "status", None),
            exc,
        )
        raise WriteBackFailure(exc) from exc
