"""Redis configuration for Celery and notification relay."""

import redis.asyncio as aioredis
from typing import Optional
from .settings import settings

_redis_client: Optional[aioredis.Redis] = None


async def get_redis() -> aioredis.Redis:
    """Get or create Redis client."""
    global _redis_client
    if _redis_client is None:
        _redis_client = aioredis.from_url(
            settings.redis_url,
            encoding="utf-8",
            decode_responses=True,
        )
    return _redis_client


def create_redis() -> aioredis.Redis:
    """Create a Redis client bound to the running event loop.

    Celery tasks run each job on a fresh event loop, so they cannot share
    the API process client.
    """
    return aioredis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
    )


async def close_redis() -> None:
    """Close Redis connection."""
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None
