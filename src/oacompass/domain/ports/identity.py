"""Port for the identity-provider (OpenAthens) gateway."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from oacompass.domain.model.account import (
        AccountSelector,
        CreateRequest,
        CreateResult,
        LookupResult,
        ModifyRequest,
        ModifyResult,
        ResendResult,
        VerifyResult,
    )


@runtime_checkable
class IdentityProviderGateway(Protocol):
    """The four account operations the workflows rely on.

    ``get``, ``modify`` and ``resend_activation`` raise ``NotFound`` when no
    account matches; any other non-success response raises ``ProviderError``.
    ``create`` reports a duplicate account through ``CreateResult.already_exists``
    instead of raising.
    """

    def verify(self, *, username: str | None = None, email: str | None = None) -> VerifyResult:
        ...

    def get(self, *, username: str | None = None, email: str | None = None) -> LookupResult:
        ...

    def create(self, request: CreateRequest) -> CreateResult:
        ...

    def modify(self, request: ModifyRequest) -> ModifyResult:
        ...

    def resend_activation(self, selector: AccountSelector) -> ResendResult:
        ...


__all__ = ["IdentityProviderGateway"]
