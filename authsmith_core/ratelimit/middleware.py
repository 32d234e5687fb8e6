"""
FastAPI rate-limit middleware.

Runs before authentication so abusive traffic is rejected before any key
hashing or database work happens.
"""

from __future__ import annotations

from opentelemetry import metrics
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from authsmith_core.audit import AuditEmitter, AuditEventType, audit_emitter
from authsmith_core.config import settings
from authsmith_core.ratelimit.limiter import (
    RateLimitDecision,
    SlidingWindowRateLimiter,
    build_rate_limiter,
)
from authsmith_core.ratelimit.policy import RateLimitRules, client_identity

_rejections_counter = metrics.get_meter("authsmith.ratelimit").create_counter(
    "authsmith_rate_limit_rejections",
    description="Requests rejected by the rate limiter",
)


def _apply_headers(response: Response, decision: RateLimitDecision) -> None:
    response.headers["X-Rate-Limit-Limit"] = str(decision.limit)
    response.headers["X-Rate-Limit-Remaining"] = str(max(0, decision.remaining))
    response.headers["X-Rate-Limit-Reset"] = decision.reset_at.isoformat()


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Middleware enforcing sliding-window limits per client identity.

    Every limited response carries X-Rate-Limit-Limit, X-Rate-Limit-Remaining
    and X-Rate-Limit-Reset. Rejections are 429 with Retry-After.
    Whitelisted clients pass through untouched.
    """

    def __init__(
        self,
        app,
        limiter: SlidingWindowRateLimiter | None = None,
        rules: RateLimitRules | None = None,
        enabled: bool | None = None,
        audit: AuditEmitter | None = None,
    ):
        """Initialize rate-limit middleware.

        Args:
            app: The FastAPI/Starlette application.
            limiter: Limiter owning the window store. Built from settings when omitted.
            rules: Path buckets and whitelists. Built from settings when omitted.
            enabled: Master switch. Defaults to settings.RATE_LIMIT_ENABLED.
            audit: Audit emitter for rejections.
        """
        super().__init__(app)
        self.enabled = settings.RATE_LIMIT_ENABLED if enabled is None else enabled
        self.limiter = limiter or build_rate_limiter()
        self.rules = rules or RateLimitRules()
        self.audit = audit or audit_emitter

    async def dispatch(self, request: Request, call_next):
        """Apply the path's policy to the caller before handing on."""
        if not self.enabled or self.rules.is_whitelisted(request):
            return await call_next(request)

        client_id = client_identity(request)
        policy = self.rules.policy_for_path(request.url.path)
        decision = await self.limiter.check(client_id, policy)

        if not decision.allowed:
            retry_after = decision.retry_after_seconds(self.limiter.now())
            _rejections_counter.add(1, {"window_seconds": policy.window_seconds})
            self.audit.emit(
                AuditEventType.RATE_LIMIT_EXCEEDED,
                level="WARNING",
                client_id=client_id,
                path=request.url.path,
                limit=policy.limit,
                window_seconds=policy.window_seconds,
            )
            response = JSONResponse(
                status_code=429,
                content={
                    "error": "RateLimitExceeded",
                    "message": (
                        f"Rate limit exceeded. Maximum {policy.limit} requests "
                        f"per {policy.window_seconds} seconds allowed."
                    ),
                    "retryAfter": retry_after,
                },
            )
            response.headers["Retry-After"] = str(retry_after)
            _apply_headers(response, decision)
            return response

        response = await call_next(request)
        _apply_headers(response, decision)
        return response
