"""Port for reading and saving Alma patron records."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from oacompass.domain.model.patron import PatronRecord, PatronSummary


@dataclass(frozen=True, slots=True)
class SearchPage:
    """One page of an Alma user search."""

    items: tuple[PatronSummary, ...] = ()
    total_record_count: int | None = None
    has_next_link: bool = False
    raw: Any = field(default=None, compare=False, repr=False)


@runtime_checkable
class PatronRecordStore(Protocol):
    def get_user(self, primary_id: str) -> PatronRecord:
        """Fetch the full record (``view=full``)."""
        ...

    def update_user(self, record: PatronRecord) -> PatronRecord:
        """Replace the whole record with ``record`` and return what was saved."""
        ...

    def search_users(self, query: str, *, offset: int = 0, limit: int = 10) -> SearchPage: ...


__all__ = ["PatronRecordStore", "SearchPage"]
