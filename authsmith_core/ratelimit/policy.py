"""
Rate-limit policies: who the client is, which bucket a path falls into,
and who bypasses limiting altogether.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from starlette.requests import Request

from authsmith_core.config import settings

HOUR_SECONDS = 3600


@dataclass(frozen=True)
class RateLimitPolicy:
    """A request budget over a trailing window."""

    limit: int
    window_seconds: int


def client_ip(request: Request) -> str:
    """Best-effort client IP.

    First hop of X-Forwarded-For, then X-Real-IP, then the transport peer.
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        first_hop = forwarded_for.split(",")[0].strip()
        if first_hop:
            return first_hop

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    return request.client.host if request.client else "unknown"


def client_identity(request: Request) -> str:
    """Identity the sliding window is keyed by.

    The IP, suffixed with the first 8 characters of the API key when one is
    presented, so tenants behind a shared NAT get separate budgets.
    """
    ip = client_ip(request)
    api_key = request.headers.get("X-API-Key")
    if api_key:
        return f"{ip}:{api_key[:8]}"
    return ip


class RateLimitRules:
    """Path buckets and whitelists."""

    def __init__(
        self,
        general_limit: int | None = None,
        auth_limit: int | None = None,
        registration_limit: int | None = None,
        password_reset_limit: int | None = None,
        window_seconds: int | None = None,
        whitelisted_ips: Iterable[str] | None = None,
        whitelisted_api_keys: Iterable[str] | None = None,
    ):
        """Initialize rules, defaulting every value to settings.

        Args:
            general_limit: Requests per window for ordinary paths.
            auth_limit: Requests per window for login/refresh.
            registration_limit: Registrations per hour.
            password_reset_limit: Password-reset requests per hour.
            window_seconds: Window for the general and auth buckets.
            whitelisted_ips: Client IPs that are never limited.
            whitelisted_api_keys: API keys that are never limited.
        """
        window = window_seconds or settings.RATE_LIMIT_WINDOW_SECONDS
        self.general = RateLimitPolicy(general_limit or settings.RATE_LIMIT_GENERAL, window)
        self.auth = RateLimitPolicy(auth_limit or settings.RATE_LIMIT_AUTH, window)
        self.registration = RateLimitPolicy(
            registration_limit or settings.RATE_LIMIT_REGISTRATION, HOUR_SECONDS
        )
        self.password_reset = RateLimitPolicy(
            password_reset_limit or settings.RATE_LIMIT_PASSWORD_RESET, HOUR_SECONDS
        )
        self.whitelisted_ips = frozenset(
            settings.RATE_LIMIT_WHITELISTED_IPS if whitelisted_ips is None else whitelisted_ips
        )
        self.whitelisted_api_keys = frozenset(
            settings.RATE_LIMIT_WHITELISTED_API_KEYS
            if whitelisted_api_keys is None
            else whitelisted_api_keys
        )

    def policy_for_path(self, path: str) -> RateLimitPolicy:
        """Pick the bucket by case-insensitive substring match on the path."""
        path = path.lower()
        if "/auth/login" in path or "/auth/refresh" in path:
            return self.auth
        if "/auth/register" in path:
            return self.registration
        if "/password-reset" in path:
            return self.password_reset
        return self.general

    def is_whitelisted(self, request: Request) -> bool:
        if client_ip(request) in self.whitelisted_ips:
            return True
        api_key = request.headers.get("X-API-Key")
        return bool(api_key) and api_key in self.whitelisted_api_keys
