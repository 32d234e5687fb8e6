"""
Redis client helper for AuthSmith.

Uses redis.asyncio for non-blocking operations. Clients are created once at
startup and shared by the permission cache and the rate limiter.
"""

from __future__ import annotations

import redis.asyncio as redis
from loguru import logger

from authsmith_core.config import settings


def get_redis_client(redis_url: str | None = None) -> redis.Redis:
    """
    Create an async Redis client.

    Example:
    ```python
    client = get_redis_client("redis://localhost:6379/0")
    await client.set("key", "value", ex=60)
    ```

    Args:
        redis_url: Redis URL. Defaults to settings.REDIS_URL.

    Returns:
        redis.asyncio.Redis with string responses.
    """
    url = redis_url or settings.REDIS_URL
    logger.debug(f"Creating Redis client for {url.split('@')[-1]}")
    return redis.from_url(url, decode_responses=True)
