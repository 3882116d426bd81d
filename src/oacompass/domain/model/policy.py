"""Group policy value objects."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class GroupPolicy:
    """OpenAthens group and permission-set bundle assigned for a patron class."""

    key: str
    groups: tuple[str, ...]
    permission_sets: tuple[str, ...]

    def to_payload(self) -> dict[str, list[str]]:
        return {"groups": list(self.groups), "permissionSets": list(self.permission_sets)}
