from __future__ import annotations

import pytest

from oacompass.domain.errors import ProviderError, looks_like_already_exists


@pytest.mark.parametrize(
    ("status", "text", "expected"),
    [
        (409, None, True),
        (400, "Account ALREADY EXISTS", True),
        (400, '{"message": "duplicate entry"}', True),
        (400, "uniqueEmail must be unique", True),
        (400, "the unique email is taken", True),
        (400, "expiry date invalid", False),
        (500, "already exists", False),
        (None, "duplicate", False),
    ],
)
def test_looks_like_already_exists(status: int | None, text: str | None, expected: bool) -> None:
    assert looks_like_already_exists(status, text) is expected


def test_provider_error_checks_details_for_duplicate_markers() -> None:
    error = ProviderError("OA create failed", status=400, details={"message": "Duplicate"})

    assert error.looks_like_already_exists()
    assert error.label == "OA create failed"
