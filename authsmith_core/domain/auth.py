"""
Authentication domain models.

This module defines the core data structures for caller identity:
- AccessLevel: What an API key grants (nothing, one tenant, everything)
- ApiKeyValidationResult: Outcome of classifying a presented API key
- Principal: Authenticated identity (from API key or access token)
- AuthContext: Request-scoped auth context
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class AccessLevel(str, Enum):
    """Access granted by a presented credential."""

    NONE = "None"
    TENANT = "Tenant"
    ADMIN = "Admin"


@dataclass(frozen=True)
class ApiKeyValidationResult:
    """Outcome of API key classification. Computed per call, never persisted."""

    access_level: AccessLevel
    tenant_id: str | None = None

    @property
    def is_valid(self) -> bool:
        return self.access_level is not AccessLevel.NONE

    @classmethod
    def admin(cls) -> ApiKeyValidationResult:
        return cls(AccessLevel.ADMIN)

    @classmethod
    def tenant(cls, tenant_id: str) -> ApiKeyValidationResult:
        return cls(AccessLevel.TENANT, tenant_id)

    @classmethod
    def invalid(cls) -> ApiKeyValidationResult:
        return cls(AccessLevel.NONE)


@dataclass(frozen=True)
class Principal:
    """Authenticated identity.

    API keys yield a principal with an access level (and a tenant id for
    tenant keys); access tokens yield a user principal carrying the
    tenant key, roles and permissions embedded in the token.
    """

    access_level: AccessLevel
    tenant_id: str | None = None
    user_id: str | None = None
    tenant_key: str | None = None
    roles: frozenset[str] = frozenset()
    permissions: frozenset[str] = frozenset()


@dataclass
class AuthContext:
    """Request-scoped authentication context.

    Attached to request.state.auth by the auth middleware.
    """

    principal: Principal
    authenticated_at: datetime
    request_id: str

    @property
    def tenant_id(self) -> str | None:
        """Get tenant_id from principal."""
        return self.principal.tenant_id

    @property
    def is_admin(self) -> bool:
        return self.principal.access_level is AccessLevel.ADMIN

    def can_access_tenant(self, tenant_id: str | None = None) -> bool:
        """Check whether the principal may act on a tenant.

        Args:
            tenant_id: Tenant being accessed. When omitted, any tenant-level
                access is sufficient.

        Returns:
            True for admin principals, or tenant principals scoped to the
            requested tenant.
        """
        if self.is_admin:
            return True
        if self.principal.access_level is not AccessLevel.TENANT:
            return False
        return tenant_id is None or self.principal.tenant_id == tenant_id
