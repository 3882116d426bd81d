"""Create, sync, verify and resend-activation workflows.

Each public method is one sequential unit of work: validate the patron record,
call the identity provider, and on success store the OpenAthens username back in
Alma. Expected conditions (missing fields, duplicate or unknown accounts) become
outcomes; unexpected provider failures are caught here once and reported as
``failed`` outcomes carrying the error detail.
"""

from __future__ import annotations

import dataclasses
import json
from dataclasses import dataclass
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING, Any

from oacompass.domain.errors import (
    NotFound,
    OACompassError,
    ProviderError,
    ValidationFailure,
    WriteBackFailure,
)
from oacompass.domain.model.account import AccountSelector, CreateRequest, ModifyRequest

from .patrons import require_provisionable, write_back_both
from .username_storage import resolve_stored_username

if TYPE_CHECKING:
    from oacompass.config.institution import InstitutionConfig
    from oacompass.domain.model.account import LookupResult
    from oacompass.domain.model.patron import PatronRecord
    from oacompass.domain.ports.identity import IdentityProviderGateway
    from oacompass.domain.ports.records import PatronRecordStore

log = getLogger(__name__)

SAVED_TO_ALMA = "Saved to Alma."
ALMA_UPDATE_FAILED = "(Succeeded at OpenAthens, but Alma update failed.)"
NO_ACCOUNT_FOUND = "No OpenAthens account found."
ALREADY_EXISTS_TEXT = "An OpenAthens account already exists for this user."


class OutcomeKind(StrEnum):
    BLOCKED = "blocked"
    CREATED = "created"
    ALREADY_EXISTS = "already_exists"
    SYNCED = "synced"
    FOUND = "found"
    NOT_FOUND = "not_found"
    RESENT = "resent"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class ReconciliationOutcome:
    kind: OutcomeKind
    status_text: str
    debug_text: str | None = None
    username: str | None = None
    needs_reload: bool = False


_IDLE = ReconciliationOutcome(kind=OutcomeKind.BLOCKED, status_text="")


def _to_jsonable(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, dict):
        return {key: _to_jsonable(item) for key, item in value.items()}
    return value


def debug_dump(value: Any) -> str:
    return json.dumps(_to_jsonable(value), indent=2, default=str)


def _blocked(prefix: str, failure: ValidationFailure, debug_text: str) -> ReconciliationOutcome:
    return ReconciliationOutcome(
        kind=OutcomeKind.BLOCKED,
        status_text=f"{prefix} Missing in Alma: {', '.join(failure.missing)}.",
        debug_text=debug_text,
    )


def _error_debug(exc: BaseException) -> str:
    if isinstance(exc, ProviderError):
        body = {"error": exc.message, "code": exc.code, "status": exc.status}
        if exc.details is not None:
            body["details"] = exc.details
        return debug_dump(body)
    return str(exc)


@dataclass(slots=True)
class ReconciliationWorkflow:
    gateway: IdentityProviderGateway
    records: PatronRecordStore
    config: InstitutionConfig

    # Find chain

    def find_account(
        self,
        record: PatronRecord | None,
        *,
        username: str | None = None,
    ) -> LookupResult | None:
        """Look the patron up by explicit username, stored username, email, then primary id.

        The first hit wins. A miss or a provider failure on one candidate moves on to
        the next; the last failure is raised only when no candidate could be checked.
        """

        candidates: list[tuple[str, str]] = []
        if username:
            candidates.append(("username", username))
        if record is not None:
            stored = resolve_stored_username(
                record,
                primary=self.config.primary_field,
                secondary=self.config.secondary_field,
                id_type_code=self.config.id_type_code,
            )
            if stored:
                candidates.append(("username", stored))
            if record.email:
                candidates.append(("email", record.email))
            if record.primary_id:
                candidates.append(("username", record.primary_id))

        tried: set[tuple[str, str]] = set()
        checked = 0
        last_error: OACompassError | None = None
        for kind, value in candidates:
            if (kind, value) in tried:
                continue
            tried.add((kind, value))
            try:
                if kind == "email":
                    result = self.gateway.get(email=value)
                else:
                    result = self.gateway.get(username=value)
            except NotFound:
                log.debug("No OpenAthens account for %s=%s", kind, value)
                checked += 1
                continue
            except OACompassError as exc:
                log.warning("OpenAthens lookup by %s=%s failed: %s", kind, value, exc)
                last_error = exc
                continue
            checked += 1
            if result.username:
                return result
        if last_error is not None and not checked:
            raise last_error
        return None

    # Workflows

    def create(
        self,
        record: PatronRecord | None,
        selected_id: str | None = None,
    ) -> ReconciliationOutcome:
        if record is None and not selected_id:
            return _IDLE
        primary_id = (record.primary_id if record else "") or selected_id or ""

        try:
            check = require_provisionable(
                record, disallowed_domain=self.config.disallowed_email_domain
            )
        except ValidationFailure as exc:
            return _blocked(
                "Cannot create OpenAthens account.",
                exc,
                "The Alma record lacks fields required to create an account.",
            )

        request = CreateRequest(
            email=check.email or "",
            first_name=check.first_name or "",
            last_name=check.last_name or "",
            expires=check.expires or "",
            group_code=check.group_code,
        )
        try:
            result = self.gateway.create(request)
        except OACompassError as exc:
            return self._provider_failure(exc, "OpenAthens account creation failed.")
        except Exception as exc:  # noqa: BLE001
            return self._unexpected_failure(exc, "OpenAthens account creation failed.")

        debug = debug_dump(result)
        if result.created:
            username = result.username
            if not username:
                return ReconciliationOutcome(
                    kind=OutcomeKind.CREATED,
                    status_text="OpenAthens account created.",
                    debug_text=debug,
                )
            return self._write_back(
                OutcomeKind.CREATED,
                f"OpenAthens account created: {username}.",
                debug,
                primary_id,
                username,
            )

        reason = result.reason or "An account already exists for this user."
        if not result.already_exists:
            return ReconciliationOutcome(
                kind=OutcomeKind.FAILED,
                status_text=f"OpenAthens account not created: {reason}",
                debug_text=debug,
            )

        try:
            existing = self.find_account(record)
        except Exception as exc:  # noqa: BLE001
            log.warning("Could not look up existing OpenAthens account for %s: %s", primary_id, exc)
            existing = None
            debug += f"\n\n[OpenAthens lookup error]\n{_error_debug(exc)}"
        if existing is None or not existing.username:
            return ReconciliationOutcome(
                kind=OutcomeKind.ALREADY_EXISTS,
                status_text=f"OpenAthens account already exists. {reason}",
                debug_text=debug,
            )
        return self._write_back(
            OutcomeKind.ALREADY_EXISTS,
            f"OpenAthens account already exists: {existing.username}. {reason}",
            debug,
            primary_id,
            existing.username,
        )

    def sync(
        self,
        record: PatronRecord | None,
        selected_id: str | None = None,
    ) -> ReconciliationOutcome:
        if record is None and not selected_id:
            return _IDLE
        primary_id = (record.primary_id if record else "") or selected_id or ""

        try:
            found = self.find_account(record)
            if found is None:
                try:
                    check = require_provisionable(
                        record, disallowed_domain=self.config.disallowed_email_domain
                    )
                except ValidationFailure as exc:
                    return _blocked(
                        "Cannot sync OpenAthens account.",
                        exc,
                        "The Alma record lacks fields required to update an account.",
                    )
                request = ModifyRequest(
                    username=primary_id,
                    email=check.email,
                    first_name=check.first_name,
                    last_name=check.last_name,
                    expires=check.expires,
                    group_code=check.group_code,
                )
                try:
                    modified = self.gateway.modify(request)
                except NotFound as exc:
                    return self._not_found(exc)
                found = self.find_account(record)
                if found is None:
                    return ReconciliationOutcome(
                        kind=OutcomeKind.NOT_FOUND,
                        status_text=NO_ACCOUNT_FOUND,
                        debug_text=debug_dump(modified),
                    )
        except OACompassError as exc:
            return self._provider_failure(exc, "OpenAthens sync failed.")
        except Exception as exc:  # noqa: BLE001
            return self._unexpected_failure(exc, "OpenAthens sync failed.")

        username = found.username or ""
        return self._write_back(
            OutcomeKind.SYNCED,
            f"OpenAthens account found: {username}.",
            debug_dump({"account": found.account}),
            primary_id,
            username,
        )

    def verify(self, record: PatronRecord | None) -> ReconciliationOutcome:
        """Report whether the patron has an OpenAthens account without changing anything."""

        if record is None:
            return _IDLE
        try:
            found = self.find_account(record)
        except OACompassError as exc:
            return self._provider_failure(exc, "OpenAthens verification failed.")
        except Exception as exc:  # noqa: BLE001
            return self._unexpected_failure(exc, "OpenAthens verification failed.")
        if found is None:
            return ReconciliationOutcome(kind=OutcomeKind.NOT_FOUND, status_text=NO_ACCOUNT_FOUND)
        return ReconciliationOutcome(
            kind=OutcomeKind.FOUND,
            status_text=f"OpenAthens account found: {found.username}.",
            debug_text=debug_dump({"account": found.account}),
            username=found.username,
        )

    def resend_activation(
        self,
        record: PatronRecord | None,
        selected_id: str | None = None,
    ) -> ReconciliationOutcome:
        if record is None and not selected_id:
            return _IDLE
        email = record.email if record else None
        if not email:
            return ReconciliationOutcome(
                kind=OutcomeKind.BLOCKED,
                status_text="Cannot resend activation: the Alma record has no email address.",
                debug_text="The Alma record lacks fields required to update an account.",
            )
        try:
            result = self.gateway.resend_activation(AccountSelector(email=email))
        except NotFound as exc:
            return self._not_found(exc)
        except OACompassError as exc:
            return self._provider_failure(exc, "Resending the activation email failed.")
        except Exception as exc:  # noqa: BLE001
            return self._unexpected_failure(exc, "Resending the activation email failed.")
        return ReconciliationOutcome(
            kind=OutcomeKind.RESENT,
            status_text="Activation email resent.",
            debug_text=debug_dump(result),
        )

    # Helpers

    def _write_back(
        self,
        kind: OutcomeKind,
        status_text: str,
        debug_text: str,
        primary_id: str,
        username: str,
    ) -> ReconciliationOutcome:
        if not primary_id:
            return ReconciliationOutcome(
                kind=kind, status_text=status_text, debug_text=debug_text, username=username
            )
        try:
            write_back_both(
                self.records,
                primary_id,
                username,
                id_type_code=self.config.id_type_code,
                primary=self.config.primary_field,
                secondary=self.config.secondary_field,
            )
        except WriteBackFailure as exc:
            return ReconciliationOutcome(
                kind=kind,
                status_text=f"{status_text} {ALMA_UPDATE_FAILED}",
                debug_text=f"{debug_text}\n\n[Alma write-back error]\n{exc.cause}",
                username=username,
                needs_reload=False,
            )
        log.info("Saved OpenAthens username %s to Alma user %s", username, primary_id)
        return ReconciliationOutcome(
            kind=kind,
            status_text=f"{status_text} {SAVED_TO_ALMA}",
            debug_text=debug_text,
            username=username,
            needs_reload=True,
        )

    @staticmethod
    def _not_found(exc: NotFound) -> ReconciliationOutcome:
        return ReconciliationOutcome(
            kind=OutcomeKind.NOT_FOUND,
            status_text=NO_ACCOUNT_FOUND,
            debug_text=debug_dump({"error": str(exc), "code": exc.code}),
        )

    @staticmethod
    def _unexpected_failure(exc: Exception, status_text: str) -> ReconciliationOutcome:
        log.error("%s Unexpected %s: %s", status_text, type(exc).__name__, exc, exc_info=exc)
        return ReconciliationOutcome(
            kind=OutcomeKind.FAILED,
            status_text=status_text,
            debug_text=f"{type(exc).__name__}: {exc}",
        )

    @staticmethod
    def _provider_failure(exc: OACompassError, status_text: str) -> ReconciliationOutcome:
        if isinstance(exc, NotFound):
            return ReconciliationWorkflow._not_found(exc)
        if isinstance(exc, ProviderError) and exc.looks_like_already_exists():
            return ReconciliationOutcome(
                kind=OutcomeKind.ALREADY_EXISTS,
                status_text=ALREADY_EXISTS_TEXT,
                debug_text=_error_debug(exc),
            )
        log.warning(
            "OpenAthens call failed (status %s, code %s): %s",
            getattr(exc, "status", None),
            getattr(exc, "code", None),
            exc,
        )
        return ReconciliationOutcome(
            kind=OutcomeKind.FAILED,
            status_text=status_text,
            debug_text=_error_debug(exc),
        )
