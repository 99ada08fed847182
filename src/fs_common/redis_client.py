"""Shared redis.asyncio client for access counters and session lookup.

One lazily created client per process. Socket timeouts are bounded so a
stalled Redis surfaces as a RedisError (and from there StoreUnavailableError)
instead of hanging the request behind the gate.
"""

import logging

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from config.settings import settings

logger = logging.getLogger("fs.redis")

_client: aioredis.Redis | None = None


async def get_redis() -> aioredis.Redis:
    global _client  # noqa: PLW0603
    if _client is None:
        _client = aioredis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_timeout=settings.REDIS_SOCKET_TIMEOUT,
            socket_connect_timeout=settings.REDIS_SOCKET_TIMEOUT,
            max_connections=settings.REDIS_MAX_CONNECTIONS,
        )
    return _client


async def ping_redis() -> bool:
    """Startup check; logs and returns False when Redis does not answer."""
    redis = await get_redis()
    try:
        await redis.ping()
    except RedisError as exc:
        logger.error("Redis ping failed (%s): %s", settings.REDIS_URL, exc)
        return False
    return True


async def close_redis() -> None:
    global _client  # noqa: PLW0603
    if _client is not None:
        await _client.aclose()
        _client = None
