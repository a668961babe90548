"""Redis client used for the bounded intent analytics buffer.

Usage:
    from errand_fulfillment.infrastructure.redis_client import get_redis, close_redis

    redis = get_redis()
    await redis.lrange("intent_analytics", 0, 9)
"""

from __future__ import annotations

import redis.asyncio as aioredis

from errand_fulfillment.config import get_settings
from errand_fulfillment.logging_config import get_logger

logger = get_logger(__name__)

_redis_client: aioredis.Redis | None = None


async def init_redis() -> aioredis.Redis:
    """Initialize and return the Redis client. Called during app startup."""
    global _redis_client
    settings = get_settings()
    _redis_client = aioredis.from_url(
        settings.redis_url,
        decode_responses=True,
    )
    await _redis_client.ping()
    logger.info("redis.connected", url=settings.redis_url)
    return _redis_client


def get_redis() -> aioredis.Redis:
    """Return the Redis client singleton. Must call init_redis() first."""
    if _redis_client is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _redis_client


async def close_redis() -> None:
    """Close the Redis connection. Called during app shutdown."""
    global _redis_client
    if _redis_client is not None:
        await _redis_client.aclose()
        logger.info("redis.disconnected")
        _redis_client = None


async def push_capped(key: str, value: str, max_length: int) -> int:
    """Prepend `value` to a list and trim it to the newest `max_length` entries.

    Both commands run in one MULTI/EXEC so readers never see an untrimmed list.
    Returns the list length before trimming.
    """
    redis = get_redis()
    async with redis.pipeline(transaction=True) as pipe:
        pipe.lpush(key, value)
        pipe.ltrim(key, 0, max_length - 1)
        length, _ = await pipe.execute()
    return int(length)
