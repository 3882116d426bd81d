"""Alma patron group to OpenAthens policy tables."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from oacompass.domain.model.policy import GroupPolicy

from .errors import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Mapping

_LIBRARY_CARD_ILL = "iast#mylibrarycardil"
_LIBRARY_CARD = "iast#mylibrarycard"

DEFAULT_GROUP_POLICIES: Mapping[str, GroupPolicy] = MappingProxyType(
    {
        key: GroupPolicy(key=key, groups=(key,), permission_sets=(permission_set,))
        for key, permission_set in (
            ("retiree", _LIBRARY_CARD_ILL),
            ("foundation", _LIBRARY_CARD_ILL),
            ("emeritus", _LIBRARY_CARD_ILL),
            ("affiliate", _LIBRARY_CARD_ILL),
            ("visitscholar", _LIBRARY_CARD_ILL),
            ("paid_vc", _LIBRARY_CARD_ILL),
            ("free_vc", _LIBRARY_CARD),
            ("spouse", _LIBRARY_CARD_ILL),
            ("alumniassoc", _LIBRARY_CARD_ILL),
            ("xmur", _LIBRARY_CARD_ILL),
        )
    }
)

DEFAULT_CODE_TO_KEY: Mapping[str, str] = MappingProxyType(
    {
        "05": "retiree",
        "52": "foundation",
        "53": "emeritus",
        "56": "affiliate",
        "57": "xmur",
        "58": "visitscholar",
        "61": "free_vc",
        "62": "paid_vc",
        "63": "spouse",
    }
)


@dataclass(frozen=True, slots=True)
class PolicyTable:
    """Immutable lookup tables used by the group policy mapper."""

    policies: Mapping[str, GroupPolicy] = field(default_factory=lambda: DEFAULT_GROUP_POLICIES)
    code_to_key: Mapping[str, str] = field(default_factory=lambda: DEFAULT_CODE_TO_KEY)


class _PolicyEntry(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    groups: list[str] = Field(default_factory=list)
    permission_sets: list[str] = Field(default_factory=list, alias="permissionSets")


class _PolicyFile(BaseModel):
    model_config = ConfigDict(extra="forbid")

    groups: dict[str, _PolicyEntry]
    codes: dict[str, str] = Field(default_factory=dict)


def load_policy_table(path: Path) -> PolicyTable:
    """Load a policy table from a JSON file shaped like ``{"groups": ..., "codes": ...}``."""

    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
        parsed = _PolicyFile.model_validate(payload)
    except (OSError, json.JSONDecodeError, ValidationError) as exc:
        raise ConfigurationError(f"Invalid group policy file {path}: {exc}") from exc

    unknown = sorted(key for key in parsed.codes.values() if key not in parsed.groups)
    if unknown:
        raise ConfigurationError(
            f"Group policy file {path} maps codes to unknown keys: {', '.join(unknown)}"
        )

    policies = {
        key: GroupPolicy(
            key=key,
            groups=tuple(entry.groups),
            permission_sets=tuple(entry.permission_sets),
        )
        for key, entry in parsed.groups.items()
    }
    return PolicyTable(
        policies=MappingProxyType(policies),
        code_to_key=MappingProxyType(dict(parsed.codes)),
    )


def get_policy_table() -> PolicyTable:
    path = os.getenv("OA_GROUP_POLICY_FILE")
    if path and path.strip():
        return load_policy_table(Path(path.strip()).expanduser())
    return PolicyTable()
