"""
Factory for creating authorization components.

Components are built once per process; the permission cache and the
Postgres store are shared by every request.
"""

from __future__ import annotations

from functools import lru_cache

from authsmith_core.auth.jwt_service import JwtService
from authsmith_core.authorization.repository import PostgresAuthorizationStore
from authsmith_core.authorization.service import AuthorizationService
from authsmith_core.cache.permission_cache import build_permission_cache


@lru_cache(maxsize=1)
def get_authorization_service() -> AuthorizationService:
    """Get the process-wide AuthorizationService."""
    store = PostgresAuthorizationStore()
    return AuthorizationService(
        tenant_store=store,
        permission_store=store,
        cache=build_permission_cache(),
    )


@lru_cache(maxsize=1)
def get_jwt_service() -> JwtService:
    """Get the process-wide JwtService."""
    return JwtService()
