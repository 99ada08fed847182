"""RedisCounterStore against fakeredis, so the Lua scripts actually run."""

from collections.abc import AsyncGenerator

import fakeredis
import pytest

from src.fs_access.counter_store import RedisCounterStore
from src.fs_access.gate import AccessGate
from src.fs_access.policy import AccessLimit
from src.fs_common.keys import AccessKey

PREFIX = AccessKey.with_expire(60)
KEY = "AccessKey:access/vote"


@pytest.fixture
async def redis() -> AsyncGenerator[fakeredis.FakeAsyncRedis, None]:
    client = fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer(), decode_responses=True)
    yield client
    await client.aclose()


@pytest.fixture
def store(redis: fakeredis.FakeAsyncRedis) -> RedisCounterStore:
    return RedisCounterStore(redis)


class TestIncrBelowScript:
    async def test_creates_counter_with_window(
        self, store: RedisCounterStore, redis: fakeredis.FakeAsyncRedis
    ) -> None:
        assert await store.incr_below(PREFIX, "/vote", 3) == 1
        assert await redis.get(KEY) == "1"
        assert 0 < await redis.ttl(KEY) <= 60

    async def test_increments_below_ceiling_without_extending_window(
        self, store: RedisCounterStore, redis: fakeredis.FakeAsyncRedis
    ) -> None:
        await redis.set(KEY, 1, ex=30)
        assert await store.incr_below(PREFIX, "/vote", 3) == 2
        assert await store.incr_below(PREFIX, "/vote", 3) == 3
        assert 0 < await redis.ttl(KEY) <= 30

    async def test_at_ceiling_returns_none_and_keeps_value(
        self, store: RedisCounterStore, redis: fakeredis.FakeAsyncRedis
    ) -> None:
        for _ in range(3):
            assert await store.incr_below(PREFIX, "/vote", 3) is not None
        assert await store.incr_below(PREFIX, "/vote", 3) is None
        assert await redis.get(KEY) == "3"

    async def test_counter_without_ttl_gets_window(
        self, store: RedisCounterStore, redis: fakeredis.FakeAsyncRedis
    ) -> None:
        await redis.set(KEY, 3)
        assert await redis.ttl(KEY) == -1

        assert await store.incr_below(PREFIX, "/vote", 3) is None
        assert 0 < await redis.ttl(KEY) <= 60


class TestIncrScript:
    async def test_existing_window_untouched(
        self, store: RedisCounterStore, redis: fakeredis.FakeAsyncRedis
    ) -> None:
        await redis.set(KEY, 1, ex=30)
        assert await store.incr(PREFIX, "/vote") == 2
        assert 0 < await redis.ttl(KEY) <= 30

    async def test_recreated_key_gets_window(
        self, store: RedisCounterStore, redis: fakeredis.FakeAsyncRedis
    ) -> None:
        assert await store.incr(PREFIX, "/vote") == 1
        assert 0 < await redis.ttl(KEY) <= 60

    async def test_counter_without_ttl_gets_window(
        self, store: RedisCounterStore, redis: fakeredis.FakeAsyncRedis
    ) -> None:
        await redis.set(KEY, 2)
        assert await store.incr(PREFIX, "/vote") == 3
        assert 0 < await redis.ttl(KEY) <= 60

    async def test_zero_expiry_leaves_key_persistent(
        self, store: RedisCounterStore, redis: fakeredis.FakeAsyncRedis
    ) -> None:
        assert await store.incr(AccessKey.with_expire(0), "/vote") == 1
        assert await redis.get("AccessKey:access/vote") == "1"
        assert await redis.ttl("AccessKey:access/vote") == -1


class TestCheckThenIncrExpiryRace:
    async def test_key_expiring_between_get_and_incr_keeps_a_window(
        self,
        store: RedisCounterStore,
        redis: fakeredis.FakeAsyncRedis,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        policy = AccessLimit(seconds=60, max_count=3, need_login=False)
        gate = AccessGate(store, atomic=False)
        await redis.set(KEY, 1, ex=60)

        read = store.get

        async def get_then_expire(prefix: AccessKey, key: str) -> int | None:
            value = await read(prefix, key)
            await redis.delete(prefix.real_key(key))
            return value

        monkeypatch.setattr(store, "get", get_then_expire)

        decision = await gate.evaluate("/vote", policy, None)

        assert decision.allowed
        assert await redis.get(KEY) == "1"
        assert 0 < await redis.ttl(KEY) <= 60
