"""Fixed-window rate limiting over a pluggable counter store.

`RateLimiter.check(key)` is the single call site contract. The counter store
behind it is either process-local (`InMemoryCounterStore`, the default) or
shared through Redis (`RedisCounterStore`) so limits survive restarts and
apply across workers.
"""

from __future__ import annotations

import math
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

import structlog
from fastapi import HTTPException, Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import JSONResponse, Response

from synquest.schemas import error_body

if TYPE_CHECKING:
    from redis.asyncio import Redis

    from synquest.config import Settings

logger = structlog.get_logger()

# Paths exempt from the global limit
_EXEMPT_PATHS = frozenset({"/health", "/ready"})

AUTH_RATE_LIMIT_MESSAGE = "Too many authentication attempts. Please try again later."


class CounterStore(Protocol):
    """Keyed counters that reset when their window expires."""

    async def hit(self, key: str, window_seconds: int) -> tuple[int, int]:
        """Increment `key` and return (count in current window, seconds until reset)."""
        ...


class InMemoryCounterStore:
    """Process-local counters. Not shared between workers, lost on restart.

    Expired keys are swept at most once per `sweep_interval` seconds, so the
    map only holds clients seen within roughly one window.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic, sweep_interval: float = 60.0) -> None:
        self._clock = clock
        self._counters: dict[str, tuple[int, float]] = {}
        self._sweep_interval = sweep_interval
        self._next_sweep = clock() + sweep_interval

    def __len__(self) -> int:
        return len(self._counters)

    def _sweep(self, now: float) -> None:
        expired = [key for key, (_, reset_at) in self._counters.items() if now >= reset_at]
        for key in expired:
            del self._counters[key]
        self._next_sweep = now + self._sweep_interval

    async def hit(self, key: str, window_seconds: int) -> tuple[int, int]:
        now = self._clock()
        if now >= self._next_sweep:
            self._sweep(now)
        count, reset_at = self._counters.get(key, (0, 0.0))
        if now >= reset_at:
            count, reset_at = 0, now + window_seconds
        count += 1
        self._counters[key] = (count, reset_at)
        return count, max(1, math.ceil(reset_at - now))

    def reset(self) -> None:
        self._counters.clear()


class RedisCounterStore:
    """Counters kept in Redis with INCR + EXPIRE."""

    def __init__(self, client_factory: Callable[[], Redis]) -> None:
        self._client_factory = client_factory

    async def hit(self, key: str, window_seconds: int) -> tuple[int, int]:
        redis = self._client_factory()
        count = int(await redis.incr(key))
        if count == 1:
            await redis.expire(key, window_seconds)
        ttl = int(await redis.ttl(key))
        return count, ttl if ttl > 0 else window_seconds


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    retry_after: int


class RateLimiter:
    """Allow at most `limit` hits per key per `window_seconds`."""

    def __init__(self, store: CounterStore, limit: int, window_seconds: int, prefix: str = "ratelimit") -> None:
        self.store = store
        self.limit = limit
        self.window_seconds = window_seconds
        self.prefix = prefix

    async def check(self, key: str) -> RateLimitDecision:
        count, reset_in = await self.store.hit(f"{self.prefix}:{key}", self.window_seconds)
        return RateLimitDecision(
            allowed=count <= self.limit,
            limit=self.limit,
            remaining=max(0, self.limit - count),
            retry_after=reset_in,
        )


def build_counter_store(settings: Settings) -> CounterStore:
    """Pick the counter backend named by `rate_limit_backend`."""
    if settings.rate_limit_backend == "redis":
        from synquest.redis_client import get_redis

        return RedisCounterStore(get_redis)
    return InMemoryCounterStore()


def client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Global per-IP limit across all non-exempt endpoints."""

    def __init__(self, app: Any, limiter: RateLimiter) -> None:  # noqa: ANN401
        super().__init__(app)
        self.limiter = limiter

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path in _EXEMPT_PATHS or request.method == "OPTIONS":
            return await call_next(request)

        decision = await self.limiter.check(client_ip(request))
        if not decision.allowed:
            logger.warning("rate_limit_exceeded", ip=client_ip(request), path=request.url.path)
            return JSONResponse(
                status_code=429,
                content=error_body("Rate limit exceeded. Try again later."),
                headers={
                    "Retry-After": str(decision.retry_after),
                    "X-RateLimit-Remaining": "0",
                    "X-RateLimit-Limit": str(decision.limit),
                },
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Remaining"] = str(decision.remaining)
        response.headers["X-RateLimit-Limit"] = str(decision.limit)
        return response


async def enforce_auth_rate_limit(request: Request) -> None:
    """FastAPI dependency guarding register/login with the app's auth limiter."""
    limiter: RateLimiter = request.app.state.auth_rate_limiter
    decision = await limiter.check(client_ip(request))
    if not decision.allowed:
        logger.warning("auth_rate_limit_exceeded", ip=client_ip(request), path=request.url.path)
        raise HTTPException(
            status_code=429,
            detail=AUTH_RATE_LIMIT_MESSAGE,
            headers={"Retry-After": str(decision.retry_after)},
        )
