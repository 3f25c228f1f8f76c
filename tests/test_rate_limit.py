import asyncio

import pytest
from fakeredis import FakeAsyncRedis, FakeServer
from redis.exceptions import ConnectionError as RedisConnectionError

from localize_proxy.cache.keys import quota_key
from localize_proxy.cache.store import MemoryQuotaStore, QuotaStoreUnavailable, RedisQuotaStore
from localize_proxy.errors import QuotaUnavailable
from localize_proxy.security.rate_limit import ANONYMOUS_IDENTITY, RateLimiter, resolve_identity


class _Clock:
    def __init__(self, now: float = 1_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class _FakeRedis:
    """Records EVAL calls and returns a canned script result."""

    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.calls = []

    async def eval(self, script, numkeys, *args):
        self.calls.append((numkeys, args))
        if self.error is not None:
            raise self.error
        return self.result


def test_resolve_identity_defaults_to_anonymous():
    assert resolve_identity(None) == ANONYMOUS_IDENTITY
    assert resolve_identity("   ") == ANONYMOUS_IDENTITY
    assert resolve_identity(" user-1 ") == "user-1"


@pytest.mark.asyncio
async def test_admits_up_to_limit_then_denies():
    store = MemoryQuotaStore()
    limiter = RateLimiter(store, limit=25, window_seconds=86400)

    remaining = []
    for _ in range(25):
        admission = await limiter.admit("user-1")
        assert admission.allowed is True
        remaining.append(admission.remaining)

    assert remaining == list(range(24, -1, -1))

    denied = await limiter.admit("user-1")
    assert denied.allowed is False
    assert denied.remaining == 0

    # A denial never bumps the stored count
    allowed, count = await store.increment_if_under_limit("user-1", 25, 86400)
    assert (allowed, count) == (False, 25)


@pytest.mark.asyncio
async def test_identities_have_separate_buckets():
    limiter = RateLimiter(MemoryQuotaStore(), limit=1, window_seconds=86400)

    assert (await limiter.admit("user-1")).allowed is True
    assert (await limiter.admit("user-1")).allowed is False
    assert (await limiter.admit("user-2")).allowed is True


@pytest.mark.asyncio
async def test_unidentified_callers_share_one_bucket():
    limiter = RateLimiter(MemoryQuotaStore(), limit=2, window_seconds=86400)

    assert (await limiter.admit(None)).allowed is True
    assert (await limiter.admit("")).allowed is True
    assert (await limiter.admit(ANONYMOUS_IDENTITY)).allowed is False


@pytest.mark.asyncio
async def test_concurrent_admissions_never_exceed_limit():
    limiter = RateLimiter(MemoryQuotaStore(), limit=25, window_seconds=86400)

    results = await asyncio.gather(*(limiter.admit("burst") for _ in range(60)))

    assert sum(1 for r in results if r.allowed) == 25
    assert sorted(r.remaining for r in results if r.allowed) == list(range(25))


@pytest.mark.asyncio
async def test_window_is_fixed_from_first_increment():
    clock = _Clock()
    store = MemoryQuotaStore(clock=clock)
    limiter = RateLimiter(store, limit=2, window_seconds=100)

    await limiter.admit("user-1")
    first_expiry = store.window_expires_at("user-1")

    clock.now += 50
    await limiter.admit("user-1")
    assert store.window_expires_at("user-1") == first_expiry
    assert (await limiter.admit("user-1")).allowed is False

    clock.now += 50
    admission = await limiter.admit("user-1")
    assert admission.allowed is True
    assert admission.remaining == 1


@pytest.mark.asyncio
async def test_redis_store_runs_single_script_call():
    client = _FakeRedis(result=[1, 3])
    store = RedisQuotaStore(client)

    allowed, count = await store.increment_if_under_limit("user-1", 25, 86400)

    assert (allowed, count) == (True, 3)
    assert client.calls == [(1, ("localize:quota:user-1", 25, 86400))]


@pytest.mark.asyncio
async def test_redis_store_reports_denial():
    store = RedisQuotaStore(_FakeRedis(result=[0, 25]))

    assert await store.increment_if_under_limit("user-1", 25, 86400) == (False, 25)


@pytest.mark.asyncio
async def test_redis_store_unavailable_raises():
    store = RedisQuotaStore(_FakeRedis(error=RedisConnectionError("down")))

    with pytest.raises(QuotaStoreUnavailable):
        await store.increment_if_under_limit("user-1", 25, 86400)


@pytest.mark.asyncio
async def test_redis_store_rejects_malformed_reply():
    store = RedisQuotaStore(_FakeRedis(result=None))

    with pytest.raises(QuotaStoreUnavailable):
        await store.increment_if_under_limit("user-1", 25, 86400)


@pytest.mark.asyncio
async def test_limiter_fails_closed_when_store_is_down():
    store = RedisQuotaStore(_FakeRedis(error=RedisConnectionError("down")))
    limiter = RateLimiter(store, limit=25, window_seconds=86400)

    with pytest.raises(QuotaUnavailable):
        await limiter.admit("user-1")


@pytest.mark.asyncio
async def test_memory_store_sweeps_expired_windows():
    clock = _Clock()
    store = MemoryQuotaStore(clock=clock, max_entries=10_000)

    for i in range(1000):
        await store.increment_if_under_limit(f"user-{i}", 25, 100)
    assert len(store) == 1000

    clock.now += 100
    assert await store.increment_if_under_limit("newcomer", 25, 100) == (True, 1)

    assert len(store) == 1


@pytest.mark.asyncio
async def test_memory_store_caps_identities():
    clock = _Clock()
    store = MemoryQuotaStore(clock=clock, max_entries=3)

    for i in range(10):
        clock.now += 1
        await store.increment_if_under_limit(f"user-{i}", 25, 100)

    assert len(store) == 3
    # Windows closest to expiry go first
    assert store.window_expires_at("user-9") > 0
    assert store.window_expires_at("user-0") == 0.0


@pytest.mark.asyncio
async def test_memory_store_keeps_returning_identity():
    store = MemoryQuotaStore(max_entries=1)

    for _ in range(3):
        await store.increment_if_under_limit("user-1", 3, 100)

    assert await store.increment_if_under_limit("user-1", 3, 100) == (False, 3)


# =========================================================
# Lua script against an in-process Redis
# =========================================================

@pytest.fixture
def lua_redis():
    return FakeAsyncRedis(server=FakeServer(), decode_responses=True)


@pytest.mark.asyncio
async def test_script_denies_after_limit_without_mutating(lua_redis):
    store = RedisQuotaStore(lua_redis)

    results = [await store.increment_if_under_limit("user-1", 3, 100) for _ in range(4)]

    assert results == [(True, 1), (True, 2), (True, 3), (False, 3)]
    assert await lua_redis.get(quota_key("user-1")) == "3"


@pytest.mark.asyncio
async def test_script_sets_ttl_on_first_increment_only(lua_redis):
    store = RedisQuotaStore(lua_redis)
    key = quota_key("user-1")

    await store.increment_if_under_limit("user-1", 3, 100)
    assert 0 < await lua_redis.ttl(key) <= 100

    await lua_redis.expire(key, 50)
    await store.increment_if_under_limit("user-1", 3, 100)

    assert 0 < await lua_redis.ttl(key) <= 50


@pytest.mark.asyncio
async def test_script_restores_missing_ttl(lua_redis):
    store = RedisQuotaStore(lua_redis)
    key = quota_key("user-1")
    await lua_redis.set(key, 1)

    await store.increment_if_under_limit("user-1", 3, 100)

    assert 0 < await lua_redis.ttl(key) <= 100


@pytest.mark.asyncio
async def test_script_burst_admits_exactly_limit(lua_redis):
    limiter = RateLimiter(RedisQuotaStore(lua_redis), limit=3, window_seconds=100)

    results = await asyncio.gather(*(limiter.admit("burst") for _ in range(10)))

    assert sum(1 for r in results if r.allowed) == 3
    assert all(r.remaining == 0 for r in results if not r.allowed)
    assert await lua_redis.get(quota_key("burst")) == "3"
