"""JSON-file implementation of the settings store port."""

from __future__ import annotations

import json
import os
import tempfile
from dataclasses import dataclass
from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING, Any

from oacompass.domain.ports.settings import SettingsStoreError

if TYPE_CHECKING:
    from collections.abc import Mapping

    from oacompass.domain.ports.settings import SettingsStore

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class JsonFileSettingsStore:
    """One JSON object per file; a missing file reads as an empty document."""

    path: Path

    def get(self) -> Mapping[str, Any]:
        if not self.path.exists():
            return {}
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except (OSError, json.JSONDecodeError) as exc:
            raise SettingsStoreError(f"Cannot read settings from {self.path}: {exc}") from exc
        if not isinstance(payload, dict):
            raise SettingsStoreError(f"Settings file {self.path} does not hold a JSON object")
        return payload

    def set(self, values: Mapping[str, Any]) -> None:
        """Replace the document atomically; a failed write leaves no temporary file behind."""

        try:
            text = json.dumps(dict(values), indent=2, sort_keys=True) + "\n"
        except (TypeError, ValueError) as exc:
            raise SettingsStoreError(f"Settings for {self.path} are not valid JSON: {exc}") from exc

        temp_path: Path | None = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self.path.parent,
                prefix=f".{self.path.name}.",
                delete=False,
            ) as handle:
                temp_path = Path(handle.name)
                handle.write(text)
            os.replace(temp_path, self.path)
        except OSError as exc:
            if temp_path is not None:
                temp_path.unlink(missing_ok=True)
            raise SettingsStoreError(f"Cannot write settings to {self.path}: {exc}") from exc
        log.debug("Saved settings to %s", self.path)


if TYPE_CHECKING:
    _store_check: SettingsStore = JsonFileSettingsStore(Path("settings.json"))
