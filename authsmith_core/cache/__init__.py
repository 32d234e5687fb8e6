"""
Permission cache backends for AuthSmith.
"""

from authsmith_core.cache.permission_cache import (
    InMemoryPermissionCache,
    RedisPermissionCache,
    build_permission_cache,
    cache_key,
)

__all__ = [
    "InMemoryPermissionCache",
    "RedisPermissionCache",
    "build_permission_cache",
    "cache_key",
]
