"""Middleware tests: request ID, rate limiting, CORS, error envelopes."""

from __future__ import annotations

import pytest
from httpx import ASGITransport, AsyncClient

from synquest.config import get_settings
from synquest.main import create_app
from synquest.middleware.rate_limit import InMemoryCounterStore, RateLimiter


async def test_request_id_generated(client: AsyncClient) -> None:
    response = await client.get("/health")
    assert len(response.headers["x-request-id"]) == 36


async def test_request_id_preserved(client: AsyncClient) -> None:
    response = await client.get("/health", headers={"X-Request-Id": "test-abc-123"})
    assert response.headers["x-request-id"] == "test-abc-123"


async def test_rate_limit_headers(client: AsyncClient) -> None:
    response = await client.get("/api/test")
    assert response.headers["x-ratelimit-limit"] == "10000"
    assert "x-ratelimit-remaining" in response.headers


async def test_cors_preflight(client: AsyncClient) -> None:
    response = await client.options(
        "/api/words",
        headers={"Origin": "http://localhost:5173", "Access-Control-Request-Method": "GET"},
    )
    assert response.headers["access-control-allow-origin"] == "http://localhost:5173"


async def test_unknown_route_uses_error_envelope(client: AsyncClient) -> None:
    response = await client.get("/api/nothing-here")
    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Not Found"}


async def test_unhandled_exception_is_500(app) -> None:
    @app.get("/boom")
    async def boom() -> None:
        msg = "kaboom"
        raise RuntimeError(msg)

    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        response = await ac.get("/boom")
    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "Internal server error"}


class TestGlobalRateLimit:
    @pytest.fixture
    def limited_app(self, database_url, monkeypatch):
        monkeypatch.setenv("RATE_LIMIT_REQUESTS", "3")
        get_settings.cache_clear()
        return create_app()

    async def test_blocks_after_limit(self, limited_app) -> None:
        transport = ASGITransport(app=limited_app)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            for _ in range(3):
                assert (await ac.get("/api/test")).status_code == 200
            response = await ac.get("/api/test")

            assert response.status_code == 429
            assert "retry-after" in response.headers
            assert response.json() == {"success": False, "error": "Rate limit exceeded. Try again later."}

            # Liveness stays reachable
            assert (await ac.get("/health")).status_code == 200


class TestRateLimiter:
    async def test_window_resets(self) -> None:
        now = [1000.0]
        limiter = RateLimiter(InMemoryCounterStore(clock=lambda: now[0]), limit=2, window_seconds=60)

        assert (await limiter.check("1.2.3.4")).allowed
        second = await limiter.check("1.2.3.4")
        assert second.allowed
        assert second.remaining == 0
        blocked = await limiter.check("1.2.3.4")
        assert not blocked.allowed
        assert blocked.retry_after == 60

        # Other keys are independent
        assert (await limiter.check("5.6.7.8")).allowed

        now[0] += 61
        assert (await limiter.check("1.2.3.4")).allowed

    async def test_expired_keys_are_swept(self) -> None:
        now = [0.0]
        store = InMemoryCounterStore(clock=lambda: now[0], sweep_interval=30)
        limiter = RateLimiter(store, limit=5, window_seconds=60)
        for ip in ("10.0.0.1", "10.0.0.2", "10.0.0.3"):
            await limiter.check(ip)
        assert len(store) == 3

        now[0] = 61
        await limiter.check("10.0.0.4")

        assert len(store) == 1

    async def test_store_reset(self) -> None:
        store = InMemoryCounterStore()
        limiter = RateLimiter(store, limit=1, window_seconds=60)
        await limiter.check("k")
        assert not (await limiter.check("k")).allowed
        store.reset()
        assert (await limiter.check("k")).allowed
