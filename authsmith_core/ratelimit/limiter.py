"""
Sliding-window rate limiter.

Each client identity owns an ordered list of request timestamps. On every
hit, timestamps older than ``now - window`` are dropped (one exactly at the
window start still counts); the hit is rejected when the remaining count
has reached the limit, and recorded otherwise.

Two window stores are provided:
- InMemoryWindowStore: per-process, one lock per client identity.
- RedisWindowStore: shared across instances; fails open on any backend error.
"""

from __future__ import annotations

import json
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Protocol

import redis.asyncio as redis
from loguru import logger

from authsmith_core.config import settings
from authsmith_core.infrastructure.redis import get_redis_client
from authsmith_core.ratelimit.policy import RateLimitPolicy


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of one rate-limit hit."""

    allowed: bool
    limit: int
    remaining: int
    reset_at: datetime

    def retry_after_seconds(self, now: datetime) -> int:
        """Whole seconds until the window frees a slot, truncated and never negative."""
        seconds = (self.reset_at - now).total_seconds()
        return max(0, int(seconds))


def slide_window(
    timestamps: list[datetime], policy: RateLimitPolicy, now: datetime
) -> tuple[RateLimitDecision, list[datetime]]:
    """Apply one hit to a timestamp list.

    Args:
        timestamps: Previously recorded hits, oldest first.
        policy: Limit and window to enforce.
        now: Time of this hit.

    Returns:
        Tuple of (decision, timestamps to store).
    """
    window = timedelta(seconds=policy.window_seconds)
    cutoff = now - window
    recent = [ts for ts in timestamps if ts >= cutoff]

    if len(recent) >= policy.limit:
        reset_at = recent[0] + window if recent else now + window
        return RateLimitDecision(False, policy.limit, 0, reset_at), recent

    remaining = policy.limit - len(recent) - 1
    recent.append(now)
    return RateLimitDecision(True, policy.limit, max(0, remaining), recent[0] + window), recent


class WindowStore(Protocol):
    """Storage for per-client sliding windows."""

    async def hit(self, client_id: str, policy: RateLimitPolicy, now: datetime) -> RateLimitDecision:
        ...


class _ClientWindow:
    __slots__ = ("lock", "timestamps", "expires_at", "evicted")

    def __init__(self):
        self.lock = threading.Lock()
        self.timestamps: list[datetime] = []
        self.expires_at: datetime | None = None
        self.evicted = False


class InMemoryWindowStore:
    """
    Process-local window store.

    Construct one per process and hand it to the limiter. Each client's
    window has its own lock, held only for the read-modify-write of its
    timestamp list, so unrelated clients never contend.

    Windows whose newest hit has aged out are swept at most once per
    ``sweep_interval``, so identities seen once do not accumulate.
    Lock order is registry lock, then window lock.
    """

    def __init__(self, sweep_interval: timedelta = timedelta(seconds=60)):
        self._windows: dict[str, _ClientWindow] = {}
        self._registry_lock = threading.Lock()
        self.sweep_interval = sweep_interval
        self._next_sweep: datetime | None = None

    def _window_for(self, client_id: str) -> _ClientWindow:
        window = self._windows.get(client_id)
        if window is None:
            with self._registry_lock:
                window = self._windows.setdefault(client_id, _ClientWindow())
        return window

    def _sweep(self, now: datetime) -> None:
        with self._registry_lock:
            if self._next_sweep is not None and now < self._next_sweep:
                return
            self._next_sweep = now + self.sweep_interval
            expired = 0
            for client_id, window in list(self._windows.items()):
                with window.lock:
                    if window.expires_at is not None and window.expires_at < now:
                        window.evicted = True
                        del self._windows[client_id]
                        expired += 1
        if expired:
            logger.debug(f"Evicted {expired} expired rate limit windows")

    async def hit(self, client_id: str, policy: RateLimitPolicy, now: datetime) -> RateLimitDecision:
        self._sweep(now)
        while True:
            window = self._window_for(client_id)
            with window.lock:
                if window.evicted:
                    continue
                decision, window.timestamps = slide_window(window.timestamps, policy, now)
                newest = window.timestamps[-1] if window.timestamps else now
                expires_at = newest + timedelta(seconds=policy.window_seconds)
                if window.expires_at is None or expires_at > window.expires_at:
                    window.expires_at = expires_at
            return decision

    def __len__(self) -> int:
        return len(self._windows)


class RedisWindowStore:
    """
    Redis-backed window store shared across instances.

    The window is a JSON array of ISO-8601 timestamps under
    ``rate_limit:{client_id}`` with a TTL of one window. The update is a
    plain GET then SET, so concurrent hits from one client may both be
    admitted on the same stale list; the limit is a soft bound under
    contention. Any backend error fails open.
    """

    KEY_PREFIX = "rate_limit:"

    def __init__(self, client: redis.Redis):
        self.client = client

    async def hit(self, client_id: str, policy: RateLimitPolicy, now: datetime) -> RateLimitDecision:
        key = f"{self.KEY_PREFIX}{client_id}"
        try:
            raw = await self.client.get(key)
            timestamps = [datetime.fromisoformat(ts) for ts in json.loads(raw)] if raw else []
            decision, timestamps = slide_window(timestamps, policy, now)
            if decision.allowed:
                await self.client.set(
                    key,
                    json.dumps([ts.isoformat() for ts in timestamps]),
                    ex=policy.window_seconds,
                )
            return decision
        except Exception as e:
            logger.warning(f"Rate limit store unavailable for {client_id}, allowing request: {e}")
            return RateLimitDecision(
                True, policy.limit, 0, now + timedelta(seconds=policy.window_seconds)
            )

    async def close(self) -> None:
        """Close Redis connection."""
        await self.client.aclose()


class SlidingWindowRateLimiter:
    """Applies a policy to a client identity against a window store."""

    def __init__(self, store: WindowStore, clock: Callable[[], datetime] = _utcnow):
        self.store = store
        self.clock = clock

    def now(self) -> datetime:
        return self.clock()

    async def check(self, client_id: str, policy: RateLimitPolicy) -> RateLimitDecision:
        """Record a hit for client_id and decide whether it is allowed."""
        return await self.store.hit(client_id, policy, self.clock())


def build_rate_limiter(redis_url: str | None = None) -> SlidingWindowRateLimiter:
    """Create the limiter with the store selected by configuration.

    Args:
        redis_url: Redis URL for the shared store. Defaults to
            settings.RATE_LIMIT_REDIS_URL; empty selects the in-process store.

    Returns:
        SlidingWindowRateLimiter.
    """
    url = settings.RATE_LIMIT_REDIS_URL if redis_url is None else redis_url
    if url:
        logger.info("Rate limit store: redis")
        return SlidingWindowRateLimiter(RedisWindowStore(get_redis_client(url)))
    logger.info("Rate limit store: in-memory (single instance only)")
    return SlidingWindowRateLimiter(InMemoryWindowStore())
