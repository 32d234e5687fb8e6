"""Integration tests for RateLimitMiddleware."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from authsmith_core.ratelimit.limiter import InMemoryWindowStore, SlidingWindowRateLimiter
from authsmith_core.ratelimit.middleware import RateLimitMiddleware
from authsmith_core.ratelimit.policy import RateLimitRules

T0 = datetime(2026, 3, 1, 9, 0, 0, tzinfo=timezone.utc)


def _app(enabled: bool = True, whitelisted_ips=()) -> FastAPI:
    app = FastAPI()
    app.add_middleware(
        RateLimitMiddleware,
        limiter=SlidingWindowRateLimiter(InMemoryWindowStore(), clock=lambda: T0),
        rules=RateLimitRules(
            general_limit=3,
            auth_limit=2,
            registration_limit=1,
            password_reset_limit=1,
            window_seconds=60,
            whitelisted_ips=whitelisted_ips,
            whitelisted_api_keys=[],
        ),
        enabled=enabled,
        audit=MagicMock(),
    )

    @app.get("/ping")
    async def ping():
        return {"message": "ok"}

    @app.post("/auth/login")
    async def login():
        return {"message": "ok"}

    return app


@pytest.mark.asyncio
async def test_headers_on_allowed_response():
    """Allowed responses carry limit, remaining and reset headers."""
    async with AsyncClient(transport=ASGITransport(app=_app()), base_url="http://test") as client:
        response = await client.get("/ping")

    assert response.status_code == 200
    assert response.headers["X-Rate-Limit-Limit"] == "3"
    assert response.headers["X-Rate-Limit-Remaining"] == "2"
    assert response.headers["X-Rate-Limit-Reset"] == (T0 + timedelta(seconds=60)).isoformat()


@pytest.mark.asyncio
async def test_login_rate_limit():
    """The auth bucket rejects the request after its limit with 429."""
    async with AsyncClient(transport=ASGITransport(app=_app()), base_url="http://test") as client:
        for i in range(2):
            response = await client.post("/auth/login")
            assert response.status_code == 200, f"Request {i+1} failed: {response.text}"

        response = await client.post("/auth/login")

    assert response.status_code == 429
    assert response.headers["Retry-After"] == "60"
    assert response.headers["X-Rate-Limit-Remaining"] == "0"
    body = response.json()
    assert body["error"] == "RateLimitExceeded"
    assert body["message"] == "Rate limit exceeded. Maximum 2 requests per 60 seconds allowed."
    assert body["retryAfter"] == 60


@pytest.mark.asyncio
async def test_api_keys_get_separate_budgets():
    """Clients behind one IP with different API keys are counted apart."""
    async with AsyncClient(transport=ASGITransport(app=_app()), base_url="http://test") as client:
        for _ in range(3):
            await client.get("/ping", headers={"X-API-Key": "tenant-a-key"})
        limited = await client.get("/ping", headers={"X-API-Key": "tenant-a-key"})
        other = await client.get("/ping", headers={"X-API-Key": "tenant-b-key"})

    assert limited.status_code == 429
    assert other.status_code == 200


@pytest.mark.asyncio
async def test_disabled_passes_through():
    """With limiting disabled no headers are added and nothing is rejected."""
    async with AsyncClient(transport=ASGITransport(app=_app(enabled=False)), base_url="http://test") as client:
        responses = [await client.get("/ping") for _ in range(5)]

    assert all(r.status_code == 200 for r in responses)
    assert "X-Rate-Limit-Limit" not in responses[-1].headers


@pytest.mark.asyncio
async def test_whitelisted_ip_bypasses():
    """Whitelisted clients are neither counted nor given headers."""
    app = _app(whitelisted_ips=["127.0.0.1"])
    async with AsyncClient(
        transport=ASGITransport(app=app, client=("127.0.0.1", 123)), base_url="http://test"
    ) as client:
        responses = [await client.get("/ping") for _ in range(5)]

    assert all(r.status_code == 200 for r in responses)
    assert "X-Rate-Limit-Limit" not in responses[-1].headers
