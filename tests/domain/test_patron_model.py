from __future__ import annotations

from oacompass.domain.model.patron import PatronRecord, PatronSummary


def test_from_payload_coerces_single_entries_to_lists() -> None:
    payload = {
        "primary_id": "jdoe",
        "contact_info": {"email": {"email_address": "jane@example.edu"}},
        "user_note": {"note_text": "hello"},
        "user_identifier": {"id_type": "02", "value": "x"},
    }

    record = PatronRecord.from_payload(payload)

    assert record.email == "jane@example.edu"
    assert record.notes == [{"note_text": "hello"}]
    assert record.find_identifier("02") == {"id_type": "02", "value": "x"}
    assert payload["user_note"] == {"note_text": "hello"}


def test_record_without_contact_info() -> None:
    record = PatronRecord.from_payload({"primary_id": "jdoe", "first_name": " Jane "})

    assert record.email is None
    assert record.emails == []
    assert record.display_name == "Jane"
    assert record.group_code is None


def test_summary_reads_group_and_self_link() -> None:
    summary = PatronSummary.from_payload(
        {
            "primary_id": "jdoe",
            "first_name": "Jane",
            "user_group": {"value": "52", "desc": "Foundation"},
            "expiration_date": "2029-12-31Z",
            "link": [{"@rel": "self", "@href": "https://alma/users/jdoe"}],
        }
    )

    assert summary.group_code == "52"
    assert summary.group_description == "Foundation"
    assert summary.expiry == "2029-12-31"
    assert summary.link == "https://alma/users/jdoe"
