"""Tagged errors raised by the gateway, the record adapter and the workflows."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

_ALREADY_EXISTS_MARKERS = ("already exist", "duplicate", "uniqueemail", "unique email")


def looks_like_already_exists(status: int | None, text: str | None) -> bool:
    """Classify an OpenAthens failure as a duplicate-account conflict.

    409 always counts. A 400 counts only when its body mentions one of the known
    duplicate markers, compared case-insensitively.
    """

    if status == 409:
        return True
    if status != 400 or not text:
        return False
    lowered = text.lower()
    return any(marker in lowered for marker in _ALREADY_EXISTS_MARKERS)


class OACompassError(RuntimeError):
    """Base class for the closed set of reconciliation errors."""


class ValidationFailure(OACompassError):
    """The patron record lacks attributes required for provisioning."""

    def __init__(self, missing: Sequence[str]) -> None:
        self.missing = tuple(missing)
        super().__init__(f"Missing: {', '.join(self.missing)}")


class NotFound(OACompassError):
    """No OpenAthens account matched the lookup."""

    def __init__(
        self,
        message: str = "account not found",
        *,
        code: str = "OA_NOT_FOUND",
        normalized_username: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.normalized_username = normalized_username


class AlreadyExists(OACompassError):
    def __init__(self, reason: str, *, raw: object = None) -> None:
        super().__init__(reason)
        self.reason = reason
        self.raw = raw


class ProviderError(OACompassError):
    """Non-success response from OpenAthens or the relay.

    ``label`` names the failed operation (``"OA create failed"``); ``message`` is
    the provider's own message when it sent one, else the label.
    """

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        code: str | None = None,
        details: object = None,
        label: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code
        self.details = details
        self.label = label or message

    def detail_text(self) -> str:
        if self.details is None:
            return ""
        return self.details if isinstance(self.details, str) else repr(self.details)

    def looks_like_already_exists(self) -> bool:
        return looks_like_already_exists(self.status, f"{self.message} {self.detail_text()}")


class ProviderInputError(OACompassError):
    """The request carried none of the identifiers needed to resolve an account."""

    code = "OA_INPUT_MISSING"

    def __init__(self, message: str = "Provide id, username, or email") -> None:
        super().__init__(message)


class InvalidInputError(OACompassError):
    """A create payload failed field validation; ``invalid`` maps field to reason."""

    def __init__(self, invalid: Mapping[str, str]) -> None:
        self.invalid = dict(invalid)
        super().__init__(f"invalid input: {', '.join(sorted(self.invalid))}")


class WriteBackFailure(OACompassError):
    """Saving the username into the patron record failed."""

    def __init__(self, cause: BaseException) -> None:
        super().__init__(f"write-back failed: {cause}")
        self.cause = cause
