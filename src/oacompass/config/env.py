"""Environment variable readers. Blank values count as unset."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

from .errors import MissingConfigurationError

if TYPE_CHECKING:
    from collections.abc import Sequence


def _read(name: str) -> str | None:
    value = (os.getenv(name) or "").strip()
    return value or None


def require_env_vars(names: Sequence[str]) -> dict[str, str]:
    """Read every variable in ``names``; one error lists all that are missing."""

    values = {name: _read(name) for name in names}
    missing = sorted(name for name, value in values.items() if value is None)
    if missing:
        raise MissingConfigurationError(f"{', '.join(missing)} not set")
    return {name: value for name, value in values.items() if value is not None}


def optional_env_var(name: str, default: str = "") -> str:
    return _read(name) or default


def split_env_list(name: str) -> tuple[str, ...]:
    """``ALLOWED_ORIGINS``-style comma lists; empty entries are dropped."""

    return tuple(part.strip() for part in (_read(name) or "").split(",") if part.strip())
