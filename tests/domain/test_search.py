from __future__ import annotations

from oacompass.domain.search import build_search_attempts, search_patrons
from tests.helpers.patrons import InMemoryRecordStore, summaries


def test_build_search_attempts_for_email() -> None:
    assert build_search_attempts("jane@example.edu") == [
        "email~jane@example.edu",
        'all~"jane@example.edu"',
    ]


def test_build_search_attempts_for_single_token() -> None:
    assert build_search_attempts("A123") == ["primary_id~A123", 'all~"A123"']


def test_build_search_attempts_for_comma_name() -> None:
    assert build_search_attempts("Doe, Jane") == [
        "last_name~Doe AND first_name~Jane",
        'all~"Doe, Jane"',
        "all~Doe, AND all~Jane",
    ]


def test_build_search_attempts_for_last_name_only_comma() -> None:
    assert build_search_attempts("Doe,") == ["last_name~Doe", 'all~"Doe,"', "all~Doe,"]


def test_build_search_attempts_for_first_last() -> None:
    assert build_search_attempts("Jane van Doe") == [
        "last_name~van Doe AND first_name~Jane",
        'all~"Jane van Doe"',
        "all~Jane AND all~van AND all~Doe",
    ]


def test_search_patrons_uses_first_attempt_with_results() -> None:
    store = InMemoryRecordStore(search_results={'all~"A123"': summaries("A123")})

    session = search_patrons(store, " A123 ")

    assert session.query == 'all~"A123"'
    assert [item.primary_id for item in session.items] == ["A123"]
    assert [query for query, _, _ in store.searches] == ["primary_id~A123", 'all~"A123"']


def test_search_patrons_without_hits_returns_first_attempt() -> None:
    store = InMemoryRecordStore()

    session = search_patrons(store, "nobody")

    assert session.query == "primary_id~nobody"
    assert session.items == []
    assert not session.has_more


def test_search_session_load_more_pages_same_query() -> None:
    store = InMemoryRecordStore(
        search_results={"last_name~Doe AND first_name~Jane": summaries("a", "b", "c")}
    )

    session = search_patrons(store, "Jane Doe", limit=2)

    assert session.has_more
    added = session.load_more()

    assert [item.primary_id for item in added] == ["c"]
    assert [item.primary_id for item in session.items] == ["a", "b", "c"]
    assert store.searches[-1] == ("last_name~Doe AND first_name~Jane", 2, 2)
    assert not session.has_more
    assert session.load_more() == []
