from __future__ import annotations

import asyncio

import httpx

from oacompass.adapters.http_resilience import ResilientClient, build_retry
from oacompass.config.http_resilience import RateLimit, ResilienceConfig, RetryPolicy


def test_default_retry_policy_leaves_writes_alone() -> None:
    retry = build_retry(RetryPolicy())

    assert retry.is_retryable_method("GET")
    assert not retry.is_retryable_method("POST")
    assert not retry.is_retryable_method("PUT")


def test_resilience_timeout_carries_connect_limit() -> None:
    timeout = ResilienceConfig(name="alma", timeout_seconds=12.0, connect_timeout_seconds=3.0).timeout

    assert timeout.read == 12.0
    assert timeout.connect == 3.0


def test_rate_limited_client_sends_requests() -> None:
    seen: list[str] = []

    async def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.path)
        return httpx.Response(200, json={"ok": True})

    config = ResilienceConfig(
        name="relay",
        base_url="https://relay.example.edu",
        ratelimit=RateLimit(max_calls=5, per_seconds=1.0),
    )

    async def exercise() -> list[int]:
        client = ResilientClient(config)
        client._client = httpx.AsyncClient(  # noqa: SLF001  # type: ignore[reportPrivateUsage]
            transport=httpx.MockTransport(handler), base_url=config.base_url or ""
        )
        async with client:
            first = await client.get("/health")
            second = await client.post("/v1/oa/users/verify", json={"username": "jdoe"})
        return [first.status_code, second.status_code]

    assert asyncio.run(exercise()) == [200, 200]
    assert seen == ["/health", "/v1/oa/users/verify"]
