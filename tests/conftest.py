from __future__ import annotations

import pytest

_ENVIRONMENT = (
    "OA_BASE_URL",
    "OA_TENANT",
    "OA_API_KEY",
    "OA_USERNAME_PREFIX",
    "OA_CREATE_URL",
    "OA_GROUP_POLICY_FILE",
    "OA_RELAY_BASE_URL",
    "ALMA_API_KEY",
    "ALMA_API_URL",
    "ALLOWED_ORIGINS",
    "HOST",
    "PORT",
)


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep a developer's ``.env`` values out of the tests."""
    for name in _ENVIRONMENT:
        monkeypatch.delenv(name, raising=False)
