"""OpenAthens admin API configuration values."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from urllib.parse import quote

from .env import optional_env_var
from .errors import MissingConfigurationError
from .http_resilience import RateLimit, ResilienceConfig

DEFAULT_USERNAME_PREFIX = "iast-"
OPENATHENS_TIMEOUT_SECONDS = 20.0
ACCOUNT_REQUEST_MEDIA_TYPE = "application/vnd.eduserv.iam.admin.accountRequest-v1+json"

_ENV_NAMES = {
    "base_url": "OA_BASE_URL",
    "tenant": "OA_TENANT",
    "api_key": "OA_API_KEY",
    "create_url": "OA_CREATE_URL",
}


def _default_resilience() -> ResilienceConfig:
    return ResilienceConfig(
        name="openathens",
        timeout_seconds=OPENATHENS_TIMEOUT_SECONDS,
        ratelimit=RateLimit(max_calls=10, per_seconds=1.0),
    )


@dataclass(frozen=True, slots=True)
class OpenAthensConfig:
    """Snapshot of the OpenAthens admin API settings.

    Values may be blank: the relay still starts and each request reports which
    setting is missing, so operations call :meth:`require` before touching the API.
    """

    base_url: str = ""
    tenant: str = ""
    api_key: str = ""
    username_prefix: str = DEFAULT_USERNAME_PREFIX
    create_url: str = ""
    resilience: ResilienceConfig = field(default_factory=_default_resilience)

    def require(self, *names: str) -> None:
        """Raise for the first blank setting among ``names`` (attribute names)."""

        for name in names:
            if not getattr(self, name):
                raise MissingConfigurationError(f"{_ENV_NAMES[name]} not set")

    @property
    def auth_header(self) -> dict[str, str]:
        return {"Authorization": f"OAApiKey {self.api_key}"}

    def query_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/v1/{self.tenant}/account/query"

    def modify_url(self, account_id: str) -> str:
        encoded = quote(account_id, safe="")
        return f"{self.base_url.rstrip('/')}/v1/{self.tenant}/account/{encoded}/modify"


def get_openathens_config(*, resilience: ResilienceConfig | None = None) -> OpenAthensConfig:
    # An explicitly empty OA_USERNAME_PREFIX disables prefixing.
    prefix = os.getenv("OA_USERNAME_PREFIX")
    return OpenAthensConfig(
        base_url=optional_env_var("OA_BASE_URL"),
        tenant=optional_env_var("OA_TENANT"),
        api_key=optional_env_var("OA_API_KEY"),
        username_prefix=DEFAULT_USERNAME_PREFIX if prefix is None else prefix.strip(),
        create_url=optional_env_var("OA_CREATE_URL"),
        resilience=resilience or _default_resilience(),
    )
