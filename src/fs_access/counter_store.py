"""Counter store for access limiting.

The gate only depends on the CounterStore protocol; RedisCounterStore is the
production implementation. TTL comes from the KeyPrefix: it is set when a
counter is created and never extended, so the window is fixed from the first
hit. A counter found without a TTL gets one, so no key can outlive its window
forever.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Protocol

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from src.fs_common.errors import StoreUnavailableError
from src.fs_common.keys import KeyPrefix

logger = logging.getLogger("fs.access")

# KEYS[1] = counter key
# ARGV[1] = ceiling (max_count)
# ARGV[2] = ttl seconds, applied when the key is created or found without one
# Returns the new count, or -1 when the ceiling is already reached.
INCR_BELOW_LUA = r"""
local current = redis.call('GET', KEYS[1])
if not current then
  redis.call('SET', KEYS[1], 1, 'EX', ARGV[2])
  return 1
end
if redis.call('TTL', KEYS[1]) == -1 then
  redis.call('EXPIRE', KEYS[1], ARGV[2])
end
if tonumber(current) < tonumber(ARGV[1]) then
  return redis.call('INCR', KEYS[1])
end
return -1
"""

# KEYS[1] = counter key
# ARGV[1] = ttl seconds (0 leaves the key without expiry)
# INCR never touches an existing TTL; a key INCR had to create (expired
# between a caller's GET and this INCR) gets the window instead of living forever.
INCR_LUA = r"""
local count = redis.call('INCR', KEYS[1])
if tonumber(ARGV[1]) > 0 and redis.call('TTL', KEYS[1]) == -1 then
  redis.call('EXPIRE', KEYS[1], ARGV[1])
end
return count
"""


class CounterStore(Protocol):
    async def get(self, prefix: KeyPrefix, key: str) -> int | None: ...

    async def set(self, prefix: KeyPrefix, key: str, value: int) -> None: ...

    async def incr(self, prefix: KeyPrefix, key: str) -> int: ...

    async def incr_below(self, prefix: KeyPrefix, key: str, ceiling: int) -> int | None:
        """Create-or-increment in one step; None if the count is already >= ceiling."""
        ...


@contextmanager
def _store_errors(op: str, key: str) -> Iterator[None]:
    try:
        yield
    except RedisError as exc:
        logger.error("Counter store %s failed for key=%s: %s", op, key, exc)
        raise StoreUnavailableError() from exc


class RedisCounterStore:
    """CounterStore backed by redis.asyncio (client must use decode_responses=True)."""

    def __init__(self, redis: aioredis.Redis) -> None:
        self._redis = redis
        self._incr = redis.register_script(INCR_LUA)
        self._incr_below = redis.register_script(INCR_BELOW_LUA)

    async def get(self, prefix: KeyPrefix, key: str) -> int | None:
        real_key = prefix.real_key(key)
        with _store_errors("get", real_key):
            raw = await self._redis.get(real_key)
        return None if raw is None else int(raw)

    async def set(self, prefix: KeyPrefix, key: str, value: int) -> None:
        real_key = prefix.real_key(key)
        with _store_errors("set", real_key):
            if prefix.expire_seconds > 0:
                await self._redis.set(real_key, value, ex=prefix.expire_seconds)
            else:
                await self._redis.set(real_key, value)

    async def incr(self, prefix: KeyPrefix, key: str) -> int:
        real_key = prefix.real_key(key)
        with _store_errors("incr", real_key):
            result = await self._incr(keys=[real_key], args=[prefix.expire_seconds])
        return int(result)

    async def incr_below(self, prefix: KeyPrefix, key: str, ceiling: int) -> int | None:
        real_key = prefix.real_key(key)
        with _store_errors("incr_below", real_key):
            result = await self._incr_below(
                keys=[real_key],
                args=[ceiling, prefix.expire_seconds],
            )
        count = int(result)
        return None if count < 0 else count
