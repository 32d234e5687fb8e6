"""
Auth module for AuthSmith.

Provides credential hashing, API key classification, JWT issuance,
middleware, and authorization dependencies.
"""

from authsmith_core.auth.api_key_service import ApiKeyService
from authsmith_core.auth.dependencies import (
    ensure_tenant_access,
    get_auth_context,
    require_admin_access,
    require_tenant_access,
)
from authsmith_core.auth.jwt_service import JwtService
from authsmith_core.auth.middleware import AuthMiddleware
from authsmith_core.auth.password_hasher import Argon2Hasher

__all__ = [
    "ApiKeyService",
    "Argon2Hasher",
    "AuthMiddleware",
    "JwtService",
    "ensure_tenant_access",
    "get_auth_context",
    "require_admin_access",
    "require_tenant_access",
]
