"""Heuristic Alma user search with paging."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from oacompass.domain.model.patron import PatronSummary
    from oacompass.domain.ports.records import PatronRecordStore, SearchPage

log = getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


def build_search_attempts(term: str) -> list[str]:
    """Return Alma ``q`` expressions to try for ``term``, most specific first.

    >>> build_search_attempts("Smith, Jane")
    ['last_name~Smith AND first_name~Jane', 'all~"Smith, Jane"', 'all~Smith, AND all~Jane']
    """

    has_at = "@" in term
    has_comma = "," in term
    tokens = [token for token in _WHITESPACE.split(term) if token]
    looks_like_id = not has_at and not has_comma and len(tokens) == 1

    attempts: list[str] = []
    if has_at:
        attempts.append(f"email~{term}")
    if looks_like_id:
        attempts.append(f"primary_id~{term}")
    if has_comma:
        parts = [part.strip() for part in term.split(",") if part.strip()]
        if parts:
            last = parts[0]
            first = parts[1] if len(parts) > 1 else None
            attempts.append(
                f"last_name~{last} AND first_name~{first}" if first else f"last_name~{last}"
            )
    elif len(tokens) >= 2:
        first, rest = tokens[0], " ".join(tokens[1:])
        attempts.append(f"last_name~{rest} AND first_name~{first}")

    attempts.append(f'all~"{term}"')
    if len(tokens) > 1:
        attempts.append(" AND ".join(f"all~{token}" for token in tokens))
    elif not has_at and not looks_like_id:
        attempts.append(f"all~{term}")
    return attempts


@dataclass(slots=True)
class SearchSession:
    """Winning query of a search plus the results gathered so far."""

    store: PatronRecordStore
    query: str
    limit: int
    items: list[PatronSummary] = field(default_factory=list)
    offset: int = 0
    total_record_count: int | None = None
    has_next_link: bool = False

    def _absorb(self, page: SearchPage) -> None:
        self.items.extend(page.items)
        self.offset += len(page.items)
        if page.total_record_count is not None:
            self.total_record_count = page.total_record_count
        self.has_next_link = page.has_next_link

    @property
    def has_more(self) -> bool:
        if self.total_record_count is not None:
            return self.offset < self.total_record_count
        return self.has_next_link

    def load_more(self) -> list[PatronSummary]:
        """Fetch the next page of the same query and append it."""

        if not self.has_more:
            return []
        page = self.store.search_users(self.query, offset=self.offset, limit=self.limit)
        self._absorb(page)
        if not page.items:
            # Guard against a count that overstates what Alma will return.
            self.total_record_count = self.offset
            self.has_next_link = False
        return list(page.items)


def search_patrons(
    store: PatronRecordStore,
    term: str,
    *,
    offset: int = 0,
    limit: int = 10,
) -> SearchSession:
    """Run the attempts in order until one yields items or a ``next`` link."""

    term = term.strip()
    attempts = build_search_attempts(term)
    for query in attempts:
        page = store.search_users(query, offset=offset, limit=limit)
        if page.items or page.has_next_link:
            log.debug("Search %r matched with %s", term, query)
            session = SearchSession(store=store, query=query, limit=limit, offset=offset)
            session._absorb(page)  # noqa: SLF001
            return session

    query = attempts[0]
    page = store.search_users(query, offset=offset, limit=limit)
    session = SearchSession(store=store, query=query, limit=limit, offset=offset)
    session._absorb(page)  # noqa: SLF001
    return session
