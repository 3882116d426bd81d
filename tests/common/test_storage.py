from __future__ import annotations

from pathlib import Path  # noqa: TC003

import pytest  # noqa: TC002

from oacompass.app import build_settings_stores, load_settings
from oacompass.config import InstitutionConfig, UserPreferences, save_user_preferences
from oacompass.config.storage import get_storage_config


def test_storage_config_prefers_explicit_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    custom = tmp_path / "custom-data"
    monkeypatch.setenv("OACOMPASS_DATA_DIR", str(custom))

    storage = get_storage_config()

    assert storage.resolve_data_dir() == custom.resolve()
    assert storage.institution_path() == custom.resolve() / "institution.json"
    assert custom.exists()


def test_load_settings_round_trip(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("OACOMPASS_DATA_DIR", str(tmp_path))
    monkeypatch.delenv("OA_RELAY_BASE_URL", raising=False)
    stores = build_settings_stores()

    assert load_settings(stores) == (InstitutionConfig(), UserPreferences())

    stores.institution.set({"oaIdTypeCode": "09"})
    save_user_preferences(stores.preferences, UserPreferences(show_debug_panel=False))
    institution, preferences = load_settings(stores)

    assert institution.id_type_code == "09"
    assert preferences.show_debug_panel is False
