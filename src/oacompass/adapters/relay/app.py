"""FastAPI relay between the staff client and the OpenAthens admin API."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Annotated, Any

from fastapi import APIRouter, Body, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from oacompass import __version__
from oacompass.adapters.openathens import OpenAthensGateway
from oacompass.config.errors import ConfigurationError
from oacompass.config.relay import SERVICE_NAME
from oacompass.domain.errors import (
    InvalidInputError,
    NotFound,
    ProviderError,
    ProviderInputError,
)

from .schema import (
    CreateBody,
    CreateResponse,
    GetResponse,
    HealthResponse,
    LookupBody,
    ModifyBody,
    ModifyResponse,
    ResendBody,
    ResendResponse,
    VerifyResponse,
    dump,
)

if TYPE_CHECKING:
    from oacompass.config.relay import RelayConfig
    from oacompass.domain.ports.identity import IdentityProviderGateway

log = getLogger(__name__)

CORS_MAX_AGE_SECONDS = 86400


def _json(status_code: int, content: dict[str, Any]) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=content)


def register_exception_handlers(app: FastAPI) -> None:
    """Translate gateway errors into the relay's JSON error bodies."""

    @app.exception_handler(ConfigurationError)
    async def configuration_error_handler(request: Request, exc: ConfigurationError):  # noqa: ARG001
        log.error("Relay misconfigured: %s", exc)
        return _json(status.HTTP_500_INTERNAL_SERVER_ERROR, {"error": str(exc)})

    @app.exception_handler(ProviderInputError)
    async def input_error_handler(request: Request, exc: ProviderInputError):  # noqa: ARG001
        return _json(status.HTTP_400_BAD_REQUEST, {"error": str(exc), "code": exc.code})

    @app.exception_handler(InvalidInputError)
    async def invalid_input_handler(request: Request, exc: InvalidInputError):  # noqa: ARG001
        return _json(
            status.HTTP_400_BAD_REQUEST, {"error": "invalid input", "invalid": exc.invalid}
        )

    @app.exception_handler(NotFound)
    async def not_found_handler(request: Request, exc: NotFound):  # noqa: ARG001
        return _json(status.HTTP_404_NOT_FOUND, {"error": str(exc), "code": exc.code})

    @app.exception_handler(ProviderError)
    async def provider_error_handler(request: Request, exc: ProviderError):  # noqa: ARG001
        status_code = exc.status or status.HTTP_502_BAD_GATEWAY
        return _json(
            status_code,
            {"error": exc.label, "code": exc.code, "message": exc.message, "status": exc.status},
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):  # noqa: ARG001
        return _json(status.HTTP_400_BAD_REQUEST, {"error": "Invalid JSON"})

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):  # noqa: ARG001
        log.error("Unhandled relay error: %s", exc, exc_info=True)
        return _json(status.HTTP_500_INTERNAL_SERVER_ERROR, {"error": str(exc) or "relay failed"})


def build_router(gateway: IdentityProviderGateway) -> APIRouter:
    # Handlers are plain ``def`` so FastAPI runs them in its threadpool, where the
    # gateway's synchronous methods may start their own event loop.
    router = APIRouter()

    @router.get("/health")
    def health() -> dict[str, Any]:
        return dump(HealthResponse())

    @router.post("/v1/oa/users/verify")
    def verify(body: Annotated[LookupBody | None, Body()] = None) -> dict[str, Any]:
        body = body or LookupBody()
        result = gateway.verify(username=body.username, email=body.email)
        return dump(VerifyResponse.from_result(result))

    @router.post("/v1/oa/users/get")
    def get_account(body: Annotated[LookupBody | None, Body()] = None) -> Any:
        body = body or LookupBody()
        try:
            result = gateway.get(username=body.username, email=body.email)
        except NotFound as exc:
            return _json(
                status.HTTP_404_NOT_FOUND,
                {"error": "not found", "normalizedUsername": exc.normalized_username},
            )
        return dump(GetResponse.from_result(result))

    @router.post("/v1/oa/users/create")
    def create(body: Annotated[CreateBody | None, Body()] = None) -> dict[str, Any]:
        body = body or CreateBody()
        result = gateway.create(body.to_request())
        response = dump(CreateResponse.from_result(result))
        if result.created:
            for key in ("alreadyExists", "reason"):
                response.pop(key, None)
        else:
            for key in ("summary", "appliedPolicy"):
                response.pop(key, None)
        return response

    @router.post("/v1/oa/users/modify")
    def modify(body: Annotated[ModifyBody | None, Body()] = None) -> dict[str, Any]:
        body = body or ModifyBody()
        result = gateway.modify(body.to_request())
        return dump(ModifyResponse.from_result(result))

    @router.post("/v1/oa/users/resend-activation")
    def resend_activation(body: Annotated[ResendBody | None, Body()] = None) -> dict[str, Any]:
        body = body or ResendBody()
        result = gateway.resend_activation(body.to_selector())
        return dump(ResendResponse.from_result(result))

    return router


def create_app(
    config: RelayConfig,
    *,
    gateway: IdentityProviderGateway | None = None,
) -> FastAPI:
    """Build the relay application from a configuration snapshot."""

    app = FastAPI(title=SERVICE_NAME, version=__version__, docs_url=None, redoc_url=None)
    if config.allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(config.allowed_origins),
            allow_methods=["GET", "POST", "OPTIONS"],
            allow_headers=["Content-Type", "Authorization"],
            max_age=CORS_MAX_AGE_SECONDS,
        )
    register_exception_handlers(app)

    gateway = gateway or OpenAthensGateway(config=config.openathens, policies=config.policies)
    app.include_router(build_router(gateway))
    log.info(
        "Relay configured for tenant %s with %d allowed origin(s)",
        config.openathens.tenant or "<unset>",
        len(config.allowed_origins),
    )
    return app
