"""
Service interfaces (Protocols) for AuthSmith.

This module defines the abstract interfaces the trust-and-access engine
depends on. These protocols enable:
- Swapping backends by configuration (local vs. distributed cache)
- Dependency Injection
- Easy faking for tests
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol, runtime_checkable

from authsmith_core.domain.entities import Permission, Tenant


@runtime_checkable
class TenantStoreProtocol(Protocol):
    """Read access to tenants (applications)."""

    async def get_tenant_by_key(self, tenant_key: str) -> Tenant | None:
        """
        Get an active tenant by its key, compared case-insensitively.

        Args:
            tenant_key: The tenant key, e.g. "shopflow".

        Returns:
            Tenant if it exists and is active, None otherwise.
        """
        ...

    async def list_active_tenants_with_api_keys(self) -> list[Tenant]:
        """
        List active tenants that have a stored API key hash.
        """
        ...


@runtime_checkable
class PermissionStoreProtocol(Protocol):
    """Read access to the role/permission graph of a tenant."""

    async def get_permission_by_code(self, tenant_id: str, code: str) -> Permission | None:
        """
        Get a permission row by code, scoped to a tenant.
        """
        ...

    async def user_has_role_permission(self, user_id: str, permission_id: str) -> bool:
        """
        Whether any role held by the user grants the permission.
        """
        ...

    async def user_has_direct_permission(self, user_id: str, permission_id: str) -> bool:
        """
        Whether the user holds the permission directly.
        """
        ...

    async def get_role_ids_for_user(self, user_id: str, tenant_id: str) -> list[str]:
        """
        Ids of the roles the user holds within the tenant.
        """
        ...

    async def get_permission_codes_for_roles(self, role_ids: Iterable[str]) -> set[str]:
        """
        Permission codes reachable from the given roles.
        """
        ...

    async def get_direct_permission_codes(self, user_id: str, tenant_id: str) -> set[str]:
        """
        Permission codes granted directly to the user within the tenant.
        """
        ...


@runtime_checkable
class PermissionCacheProtocol(Protocol):
    """Cache of resolved permission-code sets keyed by (user, tenant)."""

    async def get(self, user_id: str, tenant_id: str) -> set[str] | None:
        """
        Get the cached permission set, or None on a miss.
        """
        ...

    async def set(self, user_id: str, tenant_id: str, permissions: set[str]) -> None:
        """
        Cache a permission set with the backend's fixed TTL.
        """
        ...

    async def invalidate_user(self, user_id: str, tenant_id: str | None = None) -> None:
        """
        Remove one (user, tenant) entry, or every entry for the user when
        tenant_id is omitted.
        """
        ...

    async def invalidate_tenant(self, tenant_id: str) -> None:
        """
        Remove every entry for the tenant across all users.
        """
        ...
