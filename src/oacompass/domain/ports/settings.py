"""Port for the host's key-value settings storage."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping


class SettingsStoreError(RuntimeError):
    """Raised when stored settings cannot be read or written."""


@runtime_checkable
class SettingsStore(Protocol):
    """Whole-document get/set access to one settings namespace."""

    def get(self) -> Mapping[str, object]: ...

    def set(self, values: Mapping[str, object]) -> None: ...
