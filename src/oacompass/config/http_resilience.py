"""Timeout, retry and rate-limit settings for the outbound API clients."""

from __future__ import annotations

from dataclasses import dataclass, field

import httpx

IDEMPOTENT_METHODS = frozenset({"GET", "HEAD"})
TRANSIENT_STATUSES = frozenset({429, 502, 503, 504})
USER_AGENT = "oacompass/0.1"


@dataclass(slots=True, frozen=True)
class RetryPolicy:
    """Transport retries for lookups and searches.

    Account creation, account modification and Alma record saves are not in
    ``allowed_methods`` and go out exactly once.
    """

    total: int = 2
    backoff_factor: float = 0.5
    backoff_jitter: float = 1.0
    max_backoff_wait: float = 10.0
    respect_retry_after_header: bool = True
    allowed_methods: frozenset[str] = IDEMPOTENT_METHODS
    status_forcelist: frozenset[int] = TRANSIENT_STATUSES
    retry_on_exceptions: tuple[type[httpx.HTTPError], ...] = (
        httpx.ConnectTimeout,
        httpx.ConnectError,
        httpx.RemoteProtocolError,
    )


@dataclass(slots=True, frozen=True)
class RateLimit:
    max_calls: int
    per_seconds: float


@dataclass(slots=True, frozen=True)
class ResilienceConfig:
    """Connection settings for one upstream service; ``name`` tags its log lines."""

    name: str
    base_url: str | None = None
    timeout_seconds: float = 30.0
    connect_timeout_seconds: float = 5.0
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    ratelimit: RateLimit | None = None
    user_agent: str = USER_AGENT

    @property
    def timeout(self) -> httpx.Timeout:
        return httpx.Timeout(self.timeout_seconds, connect=self.connect_timeout_seconds)
