import asyncio
import time
from typing import Callable, Dict, Protocol, Tuple

import redis.asyncio as redis
from redis.exceptions import RedisError

from localize_proxy.cache.keys import quota_key
from localize_proxy.logger import get_logger


logger = get_logger("localize.cache.store")


class QuotaStoreUnavailable(Exception):
    """
    Raised when the backing counter service cannot be reached.
    """
    pass


class QuotaStore(Protocol):
    async def increment_if_under_limit(
        self,
        identity: str,
        limit: int,
        window_seconds: int,
    ) -> Tuple[bool, int]:
        """
        Atomically increment the identity's counter unless it already
        reached `limit`.

        Returns (allowed, count) where count is the stored value after
        the call. A denied call never mutates the counter.
        """
        ...


# =========================================================
# Redis-backed store
# =========================================================

# GET, INCR and EXPIRE run inside one EVAL so concurrent requests for the
# same identity cannot double-increment. The TTL is set on the first
# increment only, so the window is fixed rather than sliding.
_INCREMENT_IF_UNDER_LIMIT = """
local current = tonumber(redis.call('GET', KEYS[1]) or '0')
local limit = tonumber(ARGV[1])

if current >= limit then
    return {0, current}
end

local updated = redis.call('INCR', KEYS[1])
if updated == 1 or redis.call('TTL', KEYS[1]) < 0 then
    redis.call('EXPIRE', KEYS[1], tonumber(ARGV[2]))
end

return {1, updated}
"""


class RedisQuotaStore:
    def __init__(self, client: redis.Redis):
        self.client = client

    async def increment_if_under_limit(
        self,
        identity: str,
        limit: int,
        window_seconds: int,
    ) -> Tuple[bool, int]:
        key = quota_key(identity)

        try:
            result = await self.client.eval(
                _INCREMENT_IF_UNDER_LIMIT,
                1,
                key,
                limit,
                window_seconds,
            )
        except RedisError as exc:
            logger.exception("Quota increment failed for %s", key)
            raise QuotaStoreUnavailable(str(exc)) from exc

        try:
            allowed, count = int(result[0]), int(result[1])
        except (TypeError, ValueError, IndexError) as exc:
            logger.error("Unexpected quota script result: %r", result)
            raise QuotaStoreUnavailable("Malformed quota store reply") from exc

        return allowed == 1, count


# =========================================================
# In-process store (local development, tests)
# =========================================================

class MemoryQuotaStore:
    """
    Single-process counter store with the same semantics as the Redis one.

    Counters live in a dict guarded by an asyncio.Lock. Expired windows are
    swept whenever a new identity is added, and the dict never holds more
    than max_entries identities; past that the windows closest to expiry
    are dropped first.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.time,
        max_entries: int = 10_000,
    ):
        self.clock = clock
        self.max_entries = max(1, max_entries)
        # identity -> (count, window_expires_at)
        self._counters: Dict[str, Tuple[int, float]] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._counters)

    def _make_room(self, now: float) -> None:
        expired = [k for k, (_, expires_at) in self._counters.items() if expires_at <= now]
        for key in expired:
            del self._counters[key]

        overflow = len(self._counters) - self.max_entries + 1
        if overflow <= 0:
            return

        logger.warning("Memory quota store full, evicting %d identities", overflow)
        by_expiry = sorted(self._counters.items(), key=lambda item: item[1][1])
        for key, _ in by_expiry[:overflow]:
            del self._counters[key]

    async def increment_if_under_limit(
        self,
        identity: str,
        limit: int,
        window_seconds: int,
    ) -> Tuple[bool, int]:
        async with self._lock:
            now = self.clock()

            if identity not in self._counters:
                self._make_room(now)

            count, expires_at = self._counters.get(identity, (0, 0.0))

            if count and expires_at <= now:
                count = 0

            if count >= limit:
                return False, count

            if count == 0:
                expires_at = now + window_seconds

            count += 1
            self._counters[identity] = (count, expires_at)
            return True, count

    def window_expires_at(self, identity: str) -> float:
        return self._counters.get(identity, (0, 0.0))[1]
