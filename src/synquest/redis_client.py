"""Shared Redis client for the `redis` rate limit backend."""

import redis.asyncio as redis
import structlog
from redis.exceptions import RedisError

logger = structlog.get_logger()

_client: redis.Redis | None = None


async def init_redis(url: str, max_connections: int = 20) -> redis.Redis:
    """Connect and ping once so a bad URL fails at startup, not on the first request."""
    global _client  # noqa: PLW0603
    client = redis.from_url(url, decode_responses=True, max_connections=max_connections)  # type: ignore[no-untyped-call]
    try:
        await client.ping()
    except RedisError:
        await client.aclose()
        logger.error("redis_unavailable", url=url)
        raise
    _client = client
    logger.info("redis_connected", url=url)
    return client


async def close_redis() -> None:
    global _client  # noqa: PLW0603
    if _client is not None:
        await _client.aclose()
        _client = None


def get_redis() -> redis.Redis:
    if _client is None:
        msg = "Redis client is not initialized"
        raise RuntimeError(msg)
    return _client
