"""OpenAthens account operations used by the relay service."""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Any

from oacompass.adapters.http_resilience import default_client_factory
from oacompass.config.policies import PolicyTable
from oacompass.domain.errors import (
    AlreadyExists,
    InvalidInputError,
    NotFound,
    ProviderError,
    ProviderInputError,
    looks_like_already_exists,
)
from oacompass.domain.model.account import (
    MODIFIABLE_STATUSES,
    AccountStatus,
    AccountSummary,
    CreateResult,
    IdentityAccount,
    LookupResult,
    ModifyResult,
    ResendResult,
    VerifyResult,
)
from oacompass.domain.policy import assign_policy

from .client import OpenAthensClient, OpenAthensResponse
from .schema import AccountAttributes, AccountRequestBody, ErrorBody, first_account, match_count

if TYPE_CHECKING:
    from collections.abc import Callable

    from oacompass.adapters.http_resilience import ResilientClient
    from oacompass.config.http_resilience import ResilienceConfig
    from oacompass.config.openathens import OpenAthensConfig
    from oacompass.domain.model.account import AccountSelector, CreateRequest, ModifyRequest
    from oacompass.domain.ports.identity import IdentityProviderGateway

log = getLogger(__name__)

_QUERY_SETTINGS = ("base_url", "tenant", "api_key")
_CREATE_SETTINGS = ("api_key", "create_url")
ALREADY_EXISTS_REASON = "OpenAthens account already exists"


def normalize_username(value: str | None, prefix: str) -> str:
    """Trim ``value`` and prepend ``prefix`` unless it is already there.

    Blank input stays blank, and an empty prefix leaves the value as is.
    """

    username = (value or "").strip()
    if username and prefix and not username.startswith(prefix):
        username = f"{prefix}{username}"
    return username


@dataclass(frozen=True, slots=True)
class ValidatedCreate:
    email: str
    first_name: str
    last_name: str
    expires: str
    status: str
    password: str | None


def validate_create_payload(request: CreateRequest) -> ValidatedCreate:
    """Trim the create fields and pick the initial status.

    Status defaults to ``pending``; ``active`` is only honoured with a password.
    """

    email = (request.email or "").strip()
    first_name = (request.first_name or "").strip()
    last_name = (request.last_name or "").strip()
    expires = (request.expires or "").strip()
    password = request.password or None

    invalid: dict[str, str] = {}
    if "@" not in email:
        invalid["email"] = "invalid"
    if not first_name:
        invalid["first_name"] = "required"
    if not last_name:
        invalid["last_name"] = "required"
    if not expires:
        invalid["expires"] = "required"
    if invalid:
        raise InvalidInputError(invalid)

    status = (request.status or AccountStatus.PENDING).strip().lower()
    if status == AccountStatus.ACTIVE and not password:
        status = AccountStatus.PENDING.value
    return ValidatedCreate(
        email=email,
        first_name=first_name,
        last_name=last_name,
        expires=expires,
        status=status,
        password=password,
    )


def _provider_error(response: OpenAthensResponse, label: str) -> ProviderError:
    error = ErrorBody.parse(response.body)
    log.warning("%s: status %s code %s", label, response.status, error.code)
    return ProviderError(
        error.message or label,
        status=response.status,
        code=error.code,
        details=response.body,
        label=label,
    )


def _raise_for_create(response: OpenAthensResponse) -> None:
    text = response.body if isinstance(response.body, str) else json.dumps(response.body)
    if looks_like_already_exists(response.status, text):
        raise AlreadyExists(ALREADY_EXISTS_REASON, raw=response.body)
    if not response.ok:
        raise _provider_error(response, "OA create failed")


@dataclass(slots=True)
class OpenAthensGateway:
    """Direct OpenAthens implementation of the identity-provider gateway.

    Public methods are synchronous and drive one async HTTP session each.
    """

    config: OpenAthensConfig
    policies: PolicyTable = field(default_factory=PolicyTable)
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=default_client_factory
    )

    def _session(self) -> OpenAthensClient:
        return OpenAthensClient(self.config, self.client_factory(self.config.resilience))

    def normalize(self, username: str | None) -> str:
        return normalize_username(username, self.config.username_prefix)

    # Lookups

    def verify(self, *, username: str | None = None, email: str | None = None) -> VerifyResult:
        self.config.require(*_QUERY_SETTINGS)
        if not username and not email:
            raise ProviderInputError("username or email required")
        return asyncio.run(self._verify_async(username, email))

    async def _verify_async(self, username: str | None, email: str | None) -> VerifyResult:
        normalized = self.normalize(username) or None
        async with self._session() as api:
            response = await api.query(username=normalized, email=email)
        if response.status == 404:
            return VerifyResult(found=False, normalized_username=normalized, raw={"status": 404})
        if not response.ok:
            raise _provider_error(response, "OA query failed")
        return VerifyResult(
            found=match_count(response.body) > 0,
            normalized_username=normalized,
            raw=response.body,
        )

    def get(self, *, username: str | None = None, email: str | None = None) -> LookupResult:
        self.config.require(*_QUERY_SETTINGS)
        if not username and not email:
            raise ProviderInputError("username or email required")
        return asyncio.run(self._get_async(username, email))

    async def _get_async(self, username: str | None, email: str | None) -> LookupResult:
        normalized = self.normalize(username) or None
        async with self._session() as api:
            response = await api.query(username=normalized, email=email)
        if response.status == 404:
            raise NotFound("not found", normalized_username=normalized)
        if not response.ok:
            raise _provider_error(response, "OA query failed")
        account = first_account(response.body)
        if account is None:
            raise NotFound("not found", normalized_username=normalized)
        return LookupResult(
            account=IdentityAccount.from_payload(account),
            normalized_username=normalized,
        )

    # Mutations

    def create(self, request: CreateRequest) -> CreateResult:
        self.config.require(*_CREATE_SETTINGS)
        validated = validate_create_payload(request)
        return asyncio.run(self._create_async(request, validated))

    async def _create_async(self, request: CreateRequest, validated: ValidatedCreate) -> CreateResult:
        assignment = assign_policy(
            self.policies,
            key=request.group_key,
            code=request.group_code,
            groups=request.groups,
            permission_sets=request.permission_sets,
        )
        body = AccountRequestBody(
            status=validated.status,
            expiry_date=validated.expires,
            attributes=AccountAttributes.for_email(
                validated.email,
                forenames=validated.first_name,
                surname=validated.last_name,
            ),
            password=validated.password,
            groups=list(assignment.groups) or None,
            permission_sets=list(assignment.permission_sets) or None,
        )
        async with self._session() as api:
            response = await api.post_account_request(self.config.create_url, body.to_payload())

        try:
            _raise_for_create(response)
        except AlreadyExists as exc:
            log.info("OpenAthens reported an existing account for %s", validated.email)
            return CreateResult(
                created=False,
                already_exists=True,
                raw=exc.raw,
                reason=exc.reason,
            )

        raw = response.body if isinstance(response.body, dict) else {}
        return CreateResult(
            created=True,
            raw=response.body,
            summary=AccountSummary.from_payload(raw),
            applied_policy=assignment.applied_policy,
        )

    def modify(self, request: ModifyRequest) -> ModifyResult:
        self.config.require(*_QUERY_SETTINGS)
        return asyncio.run(self._modify_async(request))

    async def _modify_async(self, request: ModifyRequest) -> ModifyResult:
        assignment = assign_policy(
            self.policies,
            key=request.group_key,
            code=request.group_code,
            groups=request.groups,
            permission_sets=request.permission_sets,
        )
        status = (request.status or "").strip().lower()
        attributes = AccountAttributes.for_email(
            request.email,
            forenames=request.first_name,
            surname=request.last_name,
        )
        body = AccountRequestBody(
            status=status if status in MODIFIABLE_STATUSES else None,
            expiry_date=(request.expires or "").strip() or None,
            attributes=None if attributes.is_empty() else attributes,
            groups=list(assignment.groups) or None,
            permission_sets=list(assignment.permission_sets) or None,
        )
        async with self._session() as api:
            account_id = await self._resolve_account_id(
                api,
                openathens_id=request.openathens_id,
                username=request.username,
                email=request.email,
            )
            response = await api.post_account_request(
                self.config.modify_url(account_id), body.to_payload()
            )
        if not response.ok:
            raise _provider_error(response, "OA modify failed")
        return ModifyResult(
            modified=True,
            id=account_id,
            raw=response.body,
            applied_policy=assignment.applied_policy,
        )

    def resend_activation(self, selector: AccountSelector) -> ResendResult:
        self.config.require(*_QUERY_SETTINGS)
        return asyncio.run(self._resend_async(selector))

    async def _resend_async(self, selector: AccountSelector) -> ResendResult:
        async with self._session() as api:
            account_id = await self._resolve_account_id(
                api,
                openathens_id=selector.openathens_id,
                username=selector.username,
                email=selector.email,
            )
            response = await api.post_account_request(
                self.config.modify_url(account_id),
                {"status": AccountStatus.PENDING.value},
                params={"sendEmail": "true"},
            )
        if not response.ok:
            raise _provider_error(response, "OA resend activation failed")
        return ResendResult(resent=True, id=account_id, raw=response.body)

    async def _resolve_account_id(
        self,
        api: OpenAthensClient,
        *,
        openathens_id: str | None,
        username: str | None,
        email: str | None,
    ) -> str:
        """Explicit id, else the id of the account found by username, else by email."""

        if openathens_id and openathens_id.strip():
            return openathens_id.strip()

        normalized = self.normalize(username)
        email = (email or "").strip()
        if not normalized and not email:
            raise ProviderInputError("openathens_id or (username/email) required")

        response = await api.query(username=normalized or None, email=email)
        if response.status == 404:
            raise NotFound(f"account not found for {'username' if normalized else 'email'}")
        if not response.ok:
            log.warning("OpenAthens lookup failed with status %s", response.status)
            raise ProviderError(
                f"OA lookup error ({response.status})",
                status=response.status,
                code="OA_LOOKUP_ERROR",
                details=response.body,
            )
        account = first_account(response.body)
        if account is None or not account.get("id"):
            raise NotFound("account not found (empty response)")
        return str(account["id"])


if TYPE_CHECKING:
    _gateway_check: IdentityProviderGateway = OpenAthensGateway(config=OpenAthensConfig())
