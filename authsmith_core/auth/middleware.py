"""
FastAPI auth middleware.

Authenticates requests via X-API-Key header or Authorization Bearer value,
and attaches AuthContext to request.state.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from authsmith_core.auth.api_key_service import ApiKeyService
from authsmith_core.auth.exceptions import SigningKeyError
from authsmith_core.auth.jwt_service import JwtService
from authsmith_core.authorization.repository import PostgresAuthorizationStore
from authsmith_core.config import settings
from authsmith_core.domain.auth import AccessLevel, AuthContext, Principal
from authsmith_core.runtime.errors import ServiceError

# Endpoints that don't require authentication
PUBLIC_PATHS = frozenset(
    {
        "/health",
        "/.well-known/jwks.json",
        "/docs",
        "/openapi.json",
        "/redoc",
        "/metrics",
    }
)


def _looks_like_jwt(value: str) -> bool:
    return value.count(".") == 2


class AuthMiddleware(BaseHTTPMiddleware):
    """Middleware to authenticate requests via API key or JWT.

    Credential sources, in order:
    1. X-API-Key header (admin or tenant API key)
    2. Authorization: Bearer {value}, where value is either an API key or
       an access token issued by this service

    API keys yield an admin or tenant principal. Access tokens yield a user
    principal carrying the token's tenant key, roles and permissions; it has
    no API access level of its own.

    When disabled (require_auth=False), an admin dev context is injected.
    """

    def __init__(
        self,
        app,
        require_auth: bool = True,
        api_key_service: ApiKeyService | None = None,
        jwt_service: JwtService | None = None,
    ):
        """Initialize auth middleware.

        Args:
            app: The FastAPI/Starlette application.
            require_auth: If True, enforce authentication. If False, inject dev context.
            api_key_service: API key classifier. Created lazily when omitted.
            jwt_service: Access token verifier. Created lazily when omitted.
        """
        super().__init__(app)
        self.require_auth = require_auth
        self._api_key_service = api_key_service
        self._jwt_service = jwt_service

    @property
    def api_key_service(self) -> ApiKeyService:
        """Lazily initialize API key service to avoid import-time DB connections."""
        if self._api_key_service is None:
            self._api_key_service = ApiKeyService(PostgresAuthorizationStore())
        return self._api_key_service

    @property
    def jwt_service(self) -> JwtService | None:
        """JWT verifier, or None when no public key is configured."""
        if self._jwt_service is None and settings.JWT_PUBLIC_KEY_PATH:
            self._jwt_service = JwtService()
        return self._jwt_service

    async def _try_api_key_auth(self, api_key: str, request_id: str) -> AuthContext | None:
        result = await self.api_key_service.validate(api_key)
        if not result.is_valid:
            return None

        return AuthContext(
            principal=Principal(access_level=result.access_level, tenant_id=result.tenant_id),
            authenticated_at=datetime.now(timezone.utc),
            request_id=request_id,
        )

    async def _try_token_auth(self, token: str, request_id: str) -> AuthContext | None:
        if not self.jwt_service:
            logger.debug(f"[{request_id}] JWT verification not configured")
            return None

        try:
            payload = await self.jwt_service.verify_access_token(token)
        except SigningKeyError as e:
            logger.error(f"[{request_id}] JWT verification unavailable: {e}")
            return None

        if not payload:
            return None

        return AuthContext(
            principal=Principal(
                access_level=AccessLevel.NONE,
                user_id=payload["sub"],
                tenant_key=payload["app"],
                roles=frozenset(payload["roles"]),
                permissions=frozenset(payload["permissions"]),
            ),
            authenticated_at=datetime.now(timezone.utc),
            request_id=request_id,
        )

    async def dispatch(self, request: Request, call_next):
        """Process incoming request for authentication."""
        # Generate request_id for correlation
        request_id = request.headers.get("X-Request-Id", str(uuid.uuid4()))
        request.state.request_id = request_id

        path = request.url.path.rstrip("/") or "/"

        if path in PUBLIC_PATHS or request.url.path in PUBLIC_PATHS:
            return await call_next(request)

        # Skip auth if disabled (dev mode)
        if not self.require_auth:
            request.state.auth = AuthContext(
                principal=Principal(access_level=AccessLevel.ADMIN),
                authenticated_at=datetime.now(timezone.utc),
                request_id=request_id,
            )
            return await call_next(request)

        api_key = request.headers.get("X-API-Key")
        auth_header = request.headers.get("Authorization", "")
        bearer = auth_header[7:].strip() if auth_header[:7].lower() == "bearer " else ""

        # Middleware sits outside the app's exception handlers
        auth_context = None
        try:
            if api_key:
                auth_context = await self._try_api_key_auth(api_key, request_id)
            elif bearer:
                if _looks_like_jwt(bearer):
                    auth_context = await self._try_token_auth(bearer, request_id)
                else:
                    auth_context = await self._try_api_key_auth(bearer, request_id)
        except ServiceError as e:
            logger.error(f"[{request_id}] Authentication unavailable: {e!r} debug={e.message_debug}")
            return JSONResponse(status_code=e.status_code, content=e.to_dict())

        if not auth_context:
            if api_key or bearer:
                logger.warning(f"[{request_id}] Invalid credentials for {path}")
                return JSONResponse(
                    status_code=401,
                    content={"detail": "Invalid or expired credentials"},
                )
            logger.warning(f"[{request_id}] Missing auth credentials for {path}")
            return JSONResponse(
                status_code=401,
                content={"detail": "Authentication required"},
            )

        request.state.auth = auth_context

        principal = auth_context.principal
        logger.debug(
            f"[{request_id}] Authenticated: level={principal.access_level.value} "
            f"tenant={principal.tenant_id or principal.tenant_key} user={principal.user_id}"
        )

        return await call_next(request)
