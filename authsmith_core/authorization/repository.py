"""
PostgreSQL-backed store for tenants and the role/permission graph.

The engine only reads; writes belong to the management services, which must
invalidate the permission cache after mutating these tables.

Tables used:
    applications(id, key, name, is_active, api_key_hash)
    permissions(id, application_id, module, action, code, description)
    roles(id, application_id, name)
    role_permissions(role_id, permission_id)
    user_roles(user_id, role_id)
    user_permissions(user_id, permission_id)
"""

from __future__ import annotations

from collections.abc import Iterable

from authsmith_core.config import settings
from authsmith_core.domain.entities import Permission, Tenant
from authsmith_core.infrastructure.postgres import get_db_connection

_TENANT_COLUMNS = "id, key, name, is_active, api_key_hash"


def _row_to_tenant(row) -> Tenant:
    return Tenant(
        id=str(row[0]),
        key=row[1],
        name=row[2] or "",
        is_active=row[3],
        api_key_hash=row[4],
    )


class PostgresAuthorizationStore:
    """Tenant and permission-graph queries over PostgreSQL."""

    def __init__(self, dsn: str | None = None):
        """Initialize the store.

        Args:
            dsn: PostgreSQL connection string. Defaults to settings.POSTGRES_DSN.
        """
        self.dsn = dsn or settings.POSTGRES_DSN

    async def _fetchone(self, sql: str, params: tuple):
        async with await get_db_connection(self.dsn) as conn:
            async with conn.cursor() as cur:
                await cur.execute(sql, params)
                return await cur.fetchone()

    async def _fetchall(self, sql: str, params: tuple):
        async with await get_db_connection(self.dsn) as conn:
            async with conn.cursor() as cur:
                await cur.execute(sql, params)
                return await cur.fetchall()

    # -- tenants ---------------------------------------------------------------

    async def get_tenant_by_key(self, tenant_key: str) -> Tenant | None:
        row = await self._fetchone(
            f"""
            SELECT {_TENANT_COLUMNS}
            FROM applications
            WHERE lower(key) = lower(%s) AND is_active
            """,
            (tenant_key,),
        )
        return _row_to_tenant(row) if row else None

    async def list_active_tenants_with_api_keys(self) -> list[Tenant]:
        rows = await self._fetchall(
            f"""
            SELECT {_TENANT_COLUMNS}
            FROM applications
            WHERE is_active AND api_key_hash IS NOT NULL
            """,
            (),
        )
        return [_row_to_tenant(row) for row in rows]

    # -- permissions -------------------------------------------------------------

    async def get_permission_by_code(self, tenant_id: str, code: str) -> Permission | None:
        row = await self._fetchone(
            """
            SELECT id, application_id, module, action, code, description
            FROM permissions
            WHERE code = %s AND application_id = %s
            """,
            (code, tenant_id),
        )
        if not row:
            return None
        return Permission(
            id=str(row[0]),
            tenant_id=str(row[1]),
            module=row[2],
            action=row[3],
            code=row[4],
            description=row[5],
        )

    async def user_has_role_permission(self, user_id: str, permission_id: str) -> bool:
        row = await self._fetchone(
            """
            SELECT EXISTS (
                SELECT 1
                FROM user_roles ur
                JOIN role_permissions rp ON rp.role_id = ur.role_id
                WHERE ur.user_id = %s AND rp.permission_id = %s
            )
            """,
            (user_id, permission_id),
        )
        return bool(row and row[0])

    async def user_has_direct_permission(self, user_id: str, permission_id: str) -> bool:
        row = await self._fetchone(
            """
            SELECT EXISTS (
                SELECT 1 FROM user_permissions
                WHERE user_id = %s AND permission_id = %s
            )
            """,
            (user_id, permission_id),
        )
        return bool(row and row[0])

    async def get_role_ids_for_user(self, user_id: str, tenant_id: str) -> list[str]:
        rows = await self._fetchall(
            """
            SELECT r.id
            FROM user_roles ur
            JOIN roles r ON r.id = ur.role_id
            WHERE ur.user_id = %s AND r.application_id = %s
            """,
            (user_id, tenant_id),
        )
        return [str(row[0]) for row in rows]

    async def get_permission_codes_for_roles(self, role_ids: Iterable[str]) -> set[str]:
        role_ids = list(role_ids)
        if not role_ids:
            return set()
        rows = await self._fetchall(
            """
            SELECT DISTINCT p.code
            FROM role_permissions rp
            JOIN permissions p ON p.id = rp.permission_id
            WHERE rp.role_id::text = ANY(%s)
            """,
            (role_ids,),
        )
        return {row[0] for row in rows}

    async def get_direct_permission_codes(self, user_id: str, tenant_id: str) -> set[str]:
        rows = await self._fetchall(
            """
            SELECT DISTINCT p.code
            FROM user_permissions up
            JOIN permissions p ON p.id = up.permission_id
            WHERE up.user_id = %s AND p.application_id = %s
            """,
            (user_id, tenant_id),
        )
        return {row[0] for row in rows}
