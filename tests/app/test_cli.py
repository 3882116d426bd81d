from __future__ import annotations

import json
from pathlib import Path  # noqa: TC003
from typing import Any

import pytest

from oacompass.config import InstitutionConfig, RelayConfig
from oacompass.domain.errors import ProviderError
from oacompass.domain.workflow import ReconciliationWorkflow
from oacompass.ui import cli as cli_module
from tests.helpers.identity import FakeGateway
from tests.helpers.patrons import InMemoryRecordStore, make_patron_payload, summaries


@pytest.fixture(autouse=True)
def data_dir(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    monkeypatch.setenv("OACOMPASS_DATA_DIR", str(tmp_path))
    monkeypatch.delenv("OA_RELAY_BASE_URL", raising=False)
    return tmp_path


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def store() -> InMemoryRecordStore:
    store = InMemoryRecordStore()
    store.add(make_patron_payload("jdoe"))
    return store


@pytest.fixture
def wired(
    monkeypatch: pytest.MonkeyPatch,
    gateway: FakeGateway,
    store: InMemoryRecordStore,
) -> dict[str, Any]:
    captured: dict[str, Any] = {}

    def fake_build_workflow(**kwargs: Any) -> ReconciliationWorkflow:
        captured.update(kwargs)
        return ReconciliationWorkflow(gateway=gateway, records=store, config=kwargs["institution"])

    monkeypatch.setattr(cli_module, "build_workflow", fake_build_workflow)
    return captured


def test_serve_applies_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, RelayConfig] = {}

    def fake_run_relay(config: RelayConfig) -> None:
        captured["config"] = config

    monkeypatch.delenv("PORT", raising=False)
    monkeypatch.setattr(cli_module, "run_relay", fake_run_relay)

    cli_module.main(["serve", "--host", "0.0.0.0", "--port", "9000"])  # noqa: S104

    assert captured["config"].host == "0.0.0.0"  # noqa: S104
    assert captured["config"].port == 9000


def test_serve_with_invalid_port_env_exits_2(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PORT", "not-a-port")

    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["serve"])

    assert excinfo.value.code == 2


def test_create_prints_outcome(
    wired: dict[str, Any],
    store: InMemoryRecordStore,
    capsys: pytest.CaptureFixture[str],
) -> None:
    cli_module.main(["create", "jdoe"])

    out = capsys.readouterr().out
    assert "OpenAthens account created: iast-generated. Saved to Alma." in out
    assert isinstance(wired["institution"], InstitutionConfig)
    assert store.stored("jdoe").job_description == "OpenAthens: iast-generated"


def test_debug_output_follows_user_preference(
    wired: dict[str, Any],
    capsys: pytest.CaptureFixture[str],
) -> None:
    cli_module.main(["prefs", "set", "--show-debug-panel", "off"])
    cli_module.main(["create", "jdoe"])

    out = capsys.readouterr().out
    assert out.strip() == "OpenAthens account created: iast-generated. Saved to Alma."


def test_failed_outcome_exits_1(
    wired: dict[str, Any],
    gateway: FakeGateway,
) -> None:
    gateway.create_error = ProviderError("upstream down", status=503)

    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["create", "jdoe"])

    assert excinfo.value.code == 1


def test_unknown_patron_is_fatal(wired: dict[str, Any]) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["sync", "ghost"])

    assert excinfo.value.code == 1


def test_search_lists_matches(
    wired: dict[str, Any],
    store: InMemoryRecordStore,
    capsys: pytest.CaptureFixture[str],
) -> None:
    store.search_results["email~jane@example.edu"] = summaries("a1", "a2", "a3")

    cli_module.main(["search", "jane@example.edu", "--limit", "2", "--pages", "2"])

    out = capsys.readouterr().out
    assert "a3\tJane a3" in out
    assert "Showing 3 of 3 (email~jane@example.edu)" in out


def test_search_rejects_non_positive_limit() -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["search", "doe", "--limit", "0"])

    assert excinfo.value.code == 2


def test_config_set_and_show(data_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
    cli_module.main(
        [
            "config",
            "set",
            "oaIdTypeCode=07",
            "oaPrimaryField=user_note",
            "oaSecondaryField=none",
            "showDebugPanel=no",
        ]
    )
    cli_module.main(["config", "show"])

    stored = json.loads((data_dir / "institution.json").read_text(encoding="utf-8"))
    assert stored == {
        "oaIdTypeCode": "07",
        "oaPrimaryField": "user_note",
        "oaSecondaryField": "none",
        "showDebugPanel": False,
    }
    out = capsys.readouterr().out
    assert "oaIdTypeCode=07" in out
    assert "oaSecondaryField=none" in out
    assert "effectiveShowDebugPanel=False" in out


@pytest.mark.parametrize(
    "assignment",
    ["unknownKey=1", "oaPrimaryField=fax", "proxyBaseUrl=http://relay", "showDebugPanel=maybe"],
)
def test_config_set_rejects_invalid_values(assignment: str, data_dir: Path) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["config", "set", assignment])

    assert excinfo.value.code == 2
    assert not (data_dir / "institution.json").exists()
