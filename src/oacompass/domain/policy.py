"""Map Alma patron groups onto OpenAthens groups and permission sets."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from oacompass.config.policies import PolicyTable
    from oacompass.domain.model.policy import GroupPolicy


@dataclass(frozen=True, slots=True)
class PolicyAssignment:
    """Groups and permission sets to send, plus the table entry they came from."""

    groups: tuple[str, ...] = ()
    permission_sets: tuple[str, ...] = ()
    applied_policy: GroupPolicy | None = None

    def to_payload(self) -> dict[str, list[str]]:
        payload: dict[str, list[str]] = {}
        if self.groups:
            payload["groups"] = list(self.groups)
        if self.permission_sets:
            payload["permissionSets"] = list(self.permission_sets)
        return payload


def _clean(value: str | None) -> str:
    return value.strip() if value else ""


def derive_policy(
    table: PolicyTable,
    *,
    key: str | None = None,
    code: str | None = None,
) -> GroupPolicy | None:
    """Look up a policy by symbolic key first, then by Alma group code."""

    key = _clean(key)
    if key and key in table.policies:
        return table.policies[key]
    code = _clean(code)
    if code:
        mapped = table.code_to_key.get(code)
        if mapped:
            return table.policies.get(mapped)
    return None


def assign_policy(
    table: PolicyTable,
    *,
    key: str | None = None,
    code: str | None = None,
    groups: Sequence[str] = (),
    permission_sets: Sequence[str] = (),
) -> PolicyAssignment:
    """Combine the derived policy with caller overrides.

    Non-empty ``groups`` or ``permission_sets`` replace the derived values for that
    list only; an empty override leaves the derived value in place.
    """

    derived = derive_policy(table, key=key, code=code)
    chosen_groups = tuple(groups) or (derived.groups if derived else ())
    chosen_sets = tuple(permission_sets) or (derived.permission_sets if derived else ())
    return PolicyAssignment(
        groups=chosen_groups,
        permission_sets=chosen_sets,
        applied_policy=derived,
    )
