"""
Rate limiting for AuthSmith.

Provides the sliding-window limiter, its window stores, path policies and
the middleware that applies them to HTTP traffic.
"""

from authsmith_core.ratelimit.limiter import (
    InMemoryWindowStore,
    RateLimitDecision,
    RedisWindowStore,
    SlidingWindowRateLimiter,
    build_rate_limiter,
)
from authsmith_core.ratelimit.middleware import RateLimitMiddleware
from authsmith_core.ratelimit.policy import (
    RateLimitPolicy,
    RateLimitRules,
    client_identity,
    client_ip,
)

__all__ = [
    "InMemoryWindowStore",
    "RateLimitDecision",
    "RateLimitMiddleware",
    "RateLimitPolicy",
    "RateLimitRules",
    "RedisWindowStore",
    "SlidingWindowRateLimiter",
    "build_rate_limiter",
    "client_identity",
    "client_ip",
]
