"""
Permission cache adapters.

Caches the resolved permission-code set of a (user, tenant) pair. Entries
are never authoritative: a miss always leads to recomputation from the
permission store. Read and write failures degrade to a miss; invalidation
failures propagate to the mutating caller.
"""

from __future__ import annotations

import json
import threading
import time
from collections.abc import Iterable

import redis.asyncio as redis
from loguru import logger
from redis.exceptions import RedisError

from authsmith_core.config import settings
from authsmith_core.infrastructure.redis import get_redis_client


def cache_key(user_id: str, tenant_id: str) -> str:
    """Build the cache key for a (user, tenant) pair."""
    return f"permissions:user:{user_id}:app:{tenant_id}"


class RedisPermissionCache:
    """
    Distributed permission cache backed by Redis.

    Values are JSON arrays of permission codes stored with ``SET ... EX``.
    Cross-cutting invalidations enumerate keys with ``SCAN`` over a pattern.

    Example:
    ```python
    cache = RedisPermissionCache(get_redis_client())
    await cache.set("user-1", "app-1", {"shopflow.catalog.read"})
    codes = await cache.get("user-1", "app-1")
    ```
    """

    def __init__(self, client: redis.Redis, ttl_seconds: int | None = None):
        self.client = client
        self.ttl_seconds = ttl_seconds or settings.PERMISSION_CACHE_TTL_SECONDS

    async def get(self, user_id: str, tenant_id: str) -> set[str] | None:
        key = cache_key(user_id, tenant_id)
        try:
            raw = await self.client.get(key)
        except RedisError as e:
            logger.warning(f"Permission cache read failed for {key}: {e}")
            return None
        if raw is None:
            return None
        try:
            codes = json.loads(raw)
        except (TypeError, ValueError) as e:
            logger.warning(f"Corrupted permission cache entry {key}: {e}")
            return None
        if not isinstance(codes, list):
            logger.warning(f"Corrupted permission cache entry {key}: not a list")
            return None
        return {str(code) for code in codes}

    async def set(self, user_id: str, tenant_id: str, permissions: Iterable[str]) -> None:
        key = cache_key(user_id, tenant_id)
        try:
            await self.client.set(key, json.dumps(sorted(permissions)), ex=self.ttl_seconds)
        except RedisError as e:
            logger.warning(f"Permission cache write failed for {key}: {e}")
            return
        logger.debug(f"Cached permissions for {key}")

    async def _delete_matching(self, pattern: str) -> int:
        keys = [key async for key in self.client.scan_iter(match=pattern)]
        if keys:
            await self.client.delete(*keys)
        return len(keys)

    async def invalidate_user(self, user_id: str, tenant_id: str | None = None) -> None:
        if tenant_id is not None:
            await self.client.delete(cache_key(user_id, tenant_id))
            logger.debug(f"Invalidated permission cache for user {user_id} in app {tenant_id}")
            return
        removed = await self._delete_matching(f"permissions:user:{user_id}:app:*")
        logger.debug(f"Invalidated {removed} permission cache entries for user {user_id}")

    async def invalidate_tenant(self, tenant_id: str) -> None:
        removed = await self._delete_matching(f"permissions:user:*:app:{tenant_id}")
        logger.debug(f"Invalidated {removed} permission cache entries for app {tenant_id}")

    async def close(self) -> None:
        """Close Redis connection."""
        await self.client.aclose()


class InMemoryPermissionCache:
    """
    In-process permission cache.

    Keeps reverse indexes by user and by tenant so every invalidation is
    exact within this process. Other instances are not notified; deployments
    with more than one instance need the Redis backend.
    """

    def __init__(self, ttl_seconds: int | None = None, clock=time.monotonic):
        self.ttl_seconds = ttl_seconds or settings.PERMISSION_CACHE_TTL_SECONDS
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[tuple[str, str], tuple[float, frozenset[str]]] = {}
        self._by_user: dict[str, set[str]] = {}
        self._by_tenant: dict[str, set[str]] = {}
        logger.warning(
            "Using in-process permission cache; invalidations are not shared across instances"
        )

    def _drop(self, user_id: str, tenant_id: str) -> None:
        # caller holds the lock
        self._entries.pop((user_id, tenant_id), None)
        tenants = self._by_user.get(user_id)
        if tenants is not None:
            tenants.discard(tenant_id)
            if not tenants:
                del self._by_user[user_id]
        users = self._by_tenant.get(tenant_id)
        if users is not None:
            users.discard(user_id)
            if not users:
                del self._by_tenant[tenant_id]

    async def get(self, user_id: str, tenant_id: str) -> set[str] | None:
        with self._lock:
            entry = self._entries.get((user_id, tenant_id))
            if entry is None:
                return None
            expires_at, codes = entry
            if self._clock() >= expires_at:
                self._drop(user_id, tenant_id)
                return None
            return set(codes)

    async def set(self, user_id: str, tenant_id: str, permissions: Iterable[str]) -> None:
        with self._lock:
            self._entries[(user_id, tenant_id)] = (
                self._clock() + self.ttl_seconds,
                frozenset(permissions),
            )
            self._by_user.setdefault(user_id, set()).add(tenant_id)
            self._by_tenant.setdefault(tenant_id, set()).add(user_id)

    async def invalidate_user(self, user_id: str, tenant_id: str | None = None) -> None:
        with self._lock:
            if tenant_id is not None:
                self._drop(user_id, tenant_id)
                return
            for tid in list(self._by_user.get(user_id, ())):
                self._drop(user_id, tid)

    async def invalidate_tenant(self, tenant_id: str) -> None:
        with self._lock:
            for uid in list(self._by_tenant.get(tenant_id, ())):
                self._drop(uid, tenant_id)

    def __len__(self) -> int:
        return len(self._entries)


def build_permission_cache(
    redis_client: redis.Redis | None = None,
) -> RedisPermissionCache | InMemoryPermissionCache:
    """Select the cache backend from configuration.

    Args:
        redis_client: Shared Redis client, used when REDIS_ENABLED is set.
            Created from settings.REDIS_URL when omitted.

    Returns:
        RedisPermissionCache when REDIS_ENABLED, InMemoryPermissionCache otherwise.
    """
    if settings.REDIS_ENABLED:
        if redis_client is None:
            redis_client = get_redis_client()
        logger.info("Permission cache backend: redis")
        return RedisPermissionCache(redis_client)
    logger.info("Permission cache backend: in-memory")
    return InMemoryPermissionCache()
