"""Read and write the OpenAthens username in one of several patron record fields."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Any

from oacompass.domain.model.fields import UsernameField

if TYPE_CHECKING:
    from oacompass.domain.model.patron import PatronRecord

log = getLogger(__name__)

MARKER = "openathens"
JOB_DESCRIPTION_PREFIX = "OpenAthens: "
USER_NOTE_PREFIX = "OpenAthens username: "


def _after_last_colon(text: str) -> str | None:
    """Text after the last colon; the whole text when there is no colon."""
    return text.rpartition(":")[2].strip() or None


def _find_marked_note(record: PatronRecord) -> dict[str, Any] | None:
    for note in record.notes:
        text = note.get("note_text")
        if isinstance(text, str) and MARKER in text.lower():
            return note
    return None


def read_username(record: PatronRecord, field: UsernameField, id_type_code: str) -> str | None:
    """Return the username stored in ``field``, or ``None`` when absent."""

    match field:
        case UsernameField.JOB_DESCRIPTION:
            text = record.job_description
            if MARKER not in text.lower():
                return None
            return _after_last_colon(text)
        case UsernameField.IDENTIFIER_SLOT:
            identifier = record.find_identifier(id_type_code)
            if identifier is None:
                return None
            value = str(identifier.get("value") or "").strip()
            return value or None
        case UsernameField.USER_NOTE:
            note = _find_marked_note(record)
            if note is None:
                return None
            return _after_last_colon(str(note.get("note_text")))


def _write_identifier(record: PatronRecord, id_type_code: str, value: str) -> None:
    existing = record.find_identifier(id_type_code)
    if existing is None:
        record.identifiers.append(
            {
                "segment_type": "Internal",
                "id_type": {"value": id_type_code},
                "value": value,
                "status": "",
            }
        )
        return
    existing["value"] = value
    id_type = existing.get("id_type")
    if isinstance(id_type, dict):
        existing["id_type"] = {**id_type, "value": id_type_code}
    else:
        existing["id_type"] = {"value": id_type_code}
    if not existing.get("segment_type"):
        existing["segment_type"] = "Internal"
    if existing.get("status") is None:
        existing["status"] = ""


def _write_note(record: PatronRecord, value: str) -> None:
    notes = record.notes
    text = f"{USER_NOTE_PREFIX}{value}"
    template_type = next((note["note_type"] for note in notes if note.get("note_type")), None)

    existing = _find_marked_note(record)
    if existing is not None:
        existing["note_text"] = text
        if existing.get("user_viewable") is None:
            existing["user_viewable"] = True
        if existing.get("popup_note") is None:
            existing["popup_note"] = False
        if not existing.get("note_type") and template_type is not None:
            existing["note_type"] = template_type
        return

    note: dict[str, Any] = {"note_text": text, "user_viewable": True, "popup_note": False}
    if template_type is not None:
        note["note_type"] = template_type
    notes.append(note)


def write_username(
    record: PatronRecord,
    field: UsernameField,
    id_type_code: str,
    value: str,
) -> None:
    """Store ``value`` in ``field`` on the in-memory record.

    Writing the job description replaces whatever text was there before.
    """

    match field:
        case UsernameField.JOB_DESCRIPTION:
            record.job_description = f"{JOB_DESCRIPTION_PREFIX}{value}"
        case UsernameField.IDENTIFIER_SLOT:
            _write_identifier(record, id_type_code, value)
        case UsernameField.USER_NOTE:
            _write_note(record, value)


def apply_username(
    record: PatronRecord,
    value: str,
    *,
    id_type_code: str,
    primary: UsernameField,
    secondary: UsernameField | None,
) -> None:
    """Write the primary field, then the secondary one when configured."""

    write_username(record, primary, id_type_code, value)
    if secondary is not None and secondary is not primary:
        write_username(record, secondary, id_type_code, value)


def resolve_stored_username(
    record: PatronRecord,
    *,
    primary: UsernameField,
    secondary: UsernameField | None,
    id_type_code: str,
) -> str | None:
    """Primary field, then secondary, then the identifier slot as a last resort."""

    candidates = [primary]
    if secondary is not None:
        candidates.append(secondary)
    candidates.append(UsernameField.IDENTIFIER_SLOT)

    seen: set[UsernameField] = set()
    for field in candidates:
        if field in seen:
            continue
        seen.add(field)
        value = read_username(record, field, id_type_code)
        if value:
            log.debug("Found stored username in %s for %s", field.value, record.primary_id)
            return value
    return None
