"""
Authorization service.

Answers "does user U hold permission M.A in tenant T?" from the cached
permission set when present, and from the role/permission graph otherwise.
A full resolution pass (role-derived codes plus direct codes) is what
populates the cache; single-permission lookups never write partial sets.
"""

from __future__ import annotations

from collections.abc import Sequence

from loguru import logger
from opentelemetry import metrics

from authsmith_core.audit import AuditEmitter, AuditEventType, audit_emitter
from authsmith_core.domain.authorization import (
    PermissionCheck,
    PermissionCheckItemResult,
    PermissionCheckResult,
    PermissionSource,
)
from authsmith_core.domain.entities import Tenant, permission_code
from authsmith_core.domain.interfaces import (
    PermissionCacheProtocol,
    PermissionStoreProtocol,
    TenantStoreProtocol,
)
from authsmith_core.runtime.errors import NotFoundError

_meter = metrics.get_meter("authsmith.authorization")
_checks_counter = _meter.create_counter(
    "authsmith_permission_checks",
    description="Permission checks, by answering source and outcome",
)


class AuthorizationService:
    """Resolves permissions for a user within a tenant."""

    def __init__(
        self,
        tenant_store: TenantStoreProtocol,
        permission_store: PermissionStoreProtocol,
        cache: PermissionCacheProtocol,
        audit: AuditEmitter | None = None,
    ):
        """Initialize the authorization service.

        Args:
            tenant_store: Tenant lookup by key.
            permission_store: Role/permission graph queries.
            cache: Permission-set cache.
            audit: Audit emitter for permission checks.
        """
        self.tenant_store = tenant_store
        self.permission_store = permission_store
        self.cache = cache
        self.audit = audit or audit_emitter

    async def resolve_tenant(self, tenant_key: str) -> Tenant:
        """Get the active tenant for a key, or raise NotFoundError."""
        tenant = await self.tenant_store.get_tenant_by_key(tenant_key)
        if tenant is None:
            raise NotFoundError(f"Application '{tenant_key}' not found.")
        return tenant

    def _record_check(self, user_id: str, tenant: Tenant, code: str, result: PermissionCheckResult) -> None:
        _checks_counter.add(
            1,
            {"source": result.source.value, "granted": str(result.has_permission).lower()},
        )
        self.audit.emit(
            AuditEventType.PERMISSION_CHECKED,
            level="DEBUG",
            tenant_key=tenant.key,
            user_id=user_id,
            permission_code=code,
            source=result.source.value,
        )

    async def check_permission(
        self, user_id: str, tenant_key: str, module: str, action: str
    ) -> PermissionCheckResult:
        """Check a single permission.

        Args:
            user_id: The user being checked.
            tenant_key: Tenant key, matched case-insensitively.
            module: Permission module, e.g. "catalog".
            action: Permission action, e.g. "read".

        Returns:
            PermissionCheckResult with the answer and which evidence produced it.

        Raises:
            NotFoundError: No active tenant with that key.
        """
        tenant = await self.resolve_tenant(tenant_key)
        code = permission_code(tenant_key, module, action)

        cached = await self.cache.get(user_id, tenant.id)
        if cached is not None:
            result = PermissionCheckResult(code in cached, PermissionSource.CACHE)
            self._record_check(user_id, tenant, code, result)
            return result

        permission = await self.permission_store.get_permission_by_code(tenant.id, code)
        if permission is None:
            logger.debug(f"Permission {code} is not defined for application {tenant.key}")
            result = PermissionCheckResult(False, PermissionSource.NONE)
        elif await self.permission_store.user_has_role_permission(user_id, permission.id):
            await self.get_all_permissions(user_id, tenant.id)
            result = PermissionCheckResult(True, PermissionSource.ROLE)
        elif await self.permission_store.user_has_direct_permission(user_id, permission.id):
            await self.get_all_permissions(user_id, tenant.id)
            result = PermissionCheckResult(True, PermissionSource.DIRECT)
        else:
            result = PermissionCheckResult(False, PermissionSource.NONE)

        self._record_check(user_id, tenant, code, result)
        return result

    async def get_all_permissions(self, user_id: str, tenant_id: str) -> set[str]:
        """Resolve every permission code the user holds in a tenant.

        A cache hit is returned verbatim; a miss unions role-derived and
        direct codes and caches the result.

        Args:
            user_id: The user.
            tenant_id: Tenant id (not key).

        Returns:
            Set of lower-cased permission codes.
        """
        cached = await self.cache.get(user_id, tenant_id)
        if cached is not None:
            return cached

        role_ids = await self.permission_store.get_role_ids_for_user(user_id, tenant_id)
        codes = set(await self.permission_store.get_permission_codes_for_roles(role_ids))
        codes |= await self.permission_store.get_direct_permission_codes(user_id, tenant_id)

        await self.cache.set(user_id, tenant_id, codes)
        logger.debug(
            f"Resolved {len(codes)} permissions for user {user_id} in application {tenant_id}"
        )
        return codes

    async def bulk_check(
        self, user_id: str, tenant_key: str, checks: Sequence[PermissionCheck]
    ) -> list[PermissionCheckItemResult]:
        """Check many permissions with one resolution pass.

        Args:
            user_id: The user being checked.
            tenant_key: Tenant key, matched case-insensitively.
            checks: (module, action) pairs.

        Returns:
            One result per check, in request order.

        Raises:
            NotFoundError: No active tenant with that key.
        """
        tenant = await self.resolve_tenant(tenant_key)
        codes = await self.get_all_permissions(user_id, tenant.id)
        return [
            PermissionCheckItemResult(
                module=check.module,
                action=check.action,
                has_permission=permission_code(tenant_key, check.module, check.action) in codes,
            )
            for check in checks
        ]

    async def list_user_permissions(
        self, user_id: str, tenant_key: str, module: str | None = None
    ) -> list[str]:
        """List a user's permission codes in a tenant.

        Args:
            user_id: The user.
            tenant_key: Tenant key, matched case-insensitively.
            module: Optional module filter, matched case-insensitively.

        Returns:
            Sorted permission codes.

        Raises:
            NotFoundError: No active tenant with that key.
        """
        tenant = await self.resolve_tenant(tenant_key)
        codes = await self.get_all_permissions(user_id, tenant.id)
        if module:
            prefix = f"{tenant_key}.{module}.".lower()
            codes = {code for code in codes if code.lower().startswith(prefix)}
        return sorted(codes)

    async def invalidate_user(self, user_id: str, tenant_id: str | None = None) -> None:
        """Drop cached permissions after a user's roles or grants change."""
        await self.cache.invalidate_user(user_id, tenant_id)
        self.audit.emit(
            AuditEventType.PERMISSION_CACHE_INVALIDATED,
            user_id=user_id,
            tenant_id=tenant_id,
        )

    async def invalidate_tenant(self, tenant_id: str) -> None:
        """Drop cached permissions after a tenant's roles or permissions change."""
        await self.cache.invalidate_tenant(tenant_id)
        self.audit.emit(AuditEventType.PERMISSION_CACHE_INVALIDATED, tenant_id=tenant_id)
