"""Alma REST API configuration values."""

from __future__ import annotations

from dataclasses import dataclass, field

from .env import optional_env_var, require_env_vars
from .http_resilience import RateLimit, ResilienceConfig

DEFAULT_ALMA_API_URL = "https://api-na.hosted.exlibrisgroup.com"
ALMA_TIMEOUT_SECONDS = 30.0


def _default_resilience(base_url: str = DEFAULT_ALMA_API_URL) -> ResilienceConfig:
    return ResilienceConfig(
        name="alma",
        base_url=base_url,
        timeout_seconds=ALMA_TIMEOUT_SECONDS,
        ratelimit=RateLimit(max_calls=25, per_seconds=1.0),
    )


@dataclass(frozen=True, slots=True)
class AlmaConfig:
    """Holds Alma API configuration values."""

    api_key: str
    resilience: ResilienceConfig = field(default_factory=_default_resilience)

    @property
    def auth_header(self) -> dict[str, str]:
        return {"Authorization": f"apikey {self.api_key}"}


def get_alma_config(*, resilience: ResilienceConfig | None = None) -> AlmaConfig:
    values = require_env_vars(("ALMA_API_KEY",))
    base_url = optional_env_var("ALMA_API_URL", DEFAULT_ALMA_API_URL)
    return AlmaConfig(
        api_key=values["ALMA_API_KEY"],
        resilience=resilience or _default_resilience(base_url),
    )
