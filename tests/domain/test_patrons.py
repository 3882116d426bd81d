from __future__ import annotations

import pytest

from oacompass.domain.errors import ValidationFailure, WriteBackFailure
from oacompass.domain.model.fields import UsernameField
from oacompass.domain.patrons import (
    find_external_username,
    require_provisionable,
    validate_for_provisioning,
    write_back_both,
)
from oacompass.domain.username_storage import read_username
from tests.helpers.patrons import InMemoryRecordStore, make_patron, make_patron_payload


def test_validate_for_provisioning_accepts_complete_record() -> None:
    check = validate_for_provisioning(make_patron())

    assert check.ok
    assert check.missing == ()
    assert check.email == "jane.doe@example.edu"
    assert check.expires == "2030-06-30"
    assert check.group_code == "05"


def test_validate_for_provisioning_lists_every_missing_field() -> None:
    record = make_patron(first_name="  ", last_name="", emails=[], expiry_date="06/30/2030")

    check = validate_for_provisioning(record)

    assert not check.ok
    assert check.missing == ("email", "first name", "last name", "expiry (YYYY-MM-DD)")


def test_validate_for_provisioning_without_record() -> None:
    check = validate_for_provisioning(None)

    assert check.missing == ("user",)


def test_validate_for_provisioning_reads_expiration_date_alias() -> None:
    record = make_patron(expiry_date=None, expiration_date="2031-01-15T00:00:00Z")

    assert validate_for_provisioning(record).expires == "2031-01-15"


def test_validate_for_provisioning_prefers_preferred_email() -> None:
    record = make_patron(
        emails=[
            {"email_address": "first@example.edu", "preferred": False},
            {"email_address": "preferred@example.edu", "preferred": True},
        ]
    )

    assert validate_for_provisioning(record).email == "preferred@example.edu"


def test_validate_for_provisioning_flags_disallowed_domain() -> None:
    record = make_patron(emails=[{"email_address": "jane@Gmail.com"}])

    check = validate_for_provisioning(record, disallowed_domain="gmail.com")

    assert check.missing == ("email (disallowed domain)",)


def test_require_provisionable_raises_with_missing_labels() -> None:
    record = make_patron(last_name="")

    with pytest.raises(ValidationFailure) as excinfo:
        require_provisionable(record)

    assert excinfo.value.missing == ("last name",)


def test_require_provisionable_returns_check_for_complete_record() -> None:
    assert require_provisionable(make_patron()).first_name == "Jane"


def test_find_external_username_reads_identifier_slot_only() -> None:
    record = make_patron(
        job_description="OpenAthens: from-job",
        user_identifier=[{"id_type": {"value": "02"}, "value": "iast-slot"}],
    )

    assert find_external_username(record, "02") == "iast-slot"
    assert find_external_username(None, "02") is None


def test_write_back_both_saves_once_with_both_fields() -> None:
    store = InMemoryRecordStore()
    store.add(make_patron_payload("jdoe", job_description="Visiting"))

    write_back_both(
        store,
        "jdoe",
        "iast-jdoe",
        id_type_code="02",
        primary=UsernameField.JOB_DESCRIPTION,
        secondary=UsernameField.IDENTIFIER_SLOT,
    )

    assert store.get_calls == ["jdoe"]
    assert len(store.updates) == 1
    saved = store.stored("jdoe")
    assert saved.job_description == "OpenAthens: iast-jdoe"
    assert read_username(saved, UsernameField.IDENTIFIER_SLOT, "02") == "iast-jdoe"
    assert saved.data["contact_info"]["email"][0]["email_address"] == "jane.doe@example.edu"


def test_write_back_both_wraps_store_errors() -> None:
    store = InMemoryRecordStore(fail_update=True)
    store.add(make_patron_payload("jdoe"))

    with pytest.raises(WriteBackFailure) as excinfo:
        write_back_both(
            store,
            "jdoe",
            "iast-jdoe",
            id_type_code="02",
            primary=UsernameField.JOB_DESCRIPTION,
            secondary=None,
        )

    assert "Alma rejected the update" in str(excinfo.value.cause)
