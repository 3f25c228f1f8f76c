from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from localize_proxy.logger import get_logger
from localize_proxy.settings import REDIS_URL


logger = get_logger("localize.redis")

_redis: Optional[redis.Redis] = None


def get_redis() -> redis.Redis:
    """
    Return a singleton async Redis client.

    Lazily initialized and reused across the app.
    """
    global _redis

    if _redis is None:
        try:
            _redis = redis.Redis.from_url(
                REDIS_URL,
                decode_responses=True,
            )
        except RedisError as exc:
            logger.exception("Failed to create Redis client")
            raise exc

    return _redis


async def close_redis() -> None:
    global _redis

    if _redis is not None:
        try:
            await _redis.aclose()
        except RedisError:
            logger.exception("Failed to close Redis client")
        _redis = None
