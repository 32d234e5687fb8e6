"""Unit tests for the PostgreSQL helper and authorization store."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import psycopg
import pytest

from authsmith_core.authorization.repository import PostgresAuthorizationStore
from authsmith_core.infrastructure.postgres import get_db_connection
from authsmith_core.runtime.errors import InfrastructureUnavailableError


def _mock_connection(fetchone=None, fetchall=None):
    """Async connection whose cursor returns canned rows."""
    mock_cursor = MagicMock()
    mock_cursor.execute = AsyncMock()
    mock_cursor.fetchone = AsyncMock(return_value=fetchone)
    mock_cursor.fetchall = AsyncMock(return_value=fetchall or [])
    mock_cursor.__aenter__ = AsyncMock(return_value=mock_cursor)
    mock_cursor.__aexit__ = AsyncMock(return_value=False)

    mock_conn = MagicMock()
    mock_conn.cursor.return_value = mock_cursor
    mock_conn.__aenter__ = AsyncMock(return_value=mock_conn)
    mock_conn.__aexit__ = AsyncMock(return_value=False)
    return mock_conn, mock_cursor


class TestGetDbConnection:
    """Tests for get_db_connection."""

    @pytest.mark.asyncio
    async def test_unreachable_database_raises_infrastructure_error(self):
        """Connection failures surface as InfrastructureUnavailableError."""
        with patch(
            "psycopg.AsyncConnection.connect",
            new=AsyncMock(side_effect=psycopg.OperationalError("refused")),
        ):
            with pytest.raises(InfrastructureUnavailableError) as exc_info:
                await get_db_connection("host=nowhere")

        assert exc_info.value.retryable is True
        assert exc_info.value.status_code == 503


class TestPostgresAuthorizationStore:
    """Tests for SQL-backed lookups."""

    @pytest.mark.asyncio
    async def test_get_tenant_by_key_maps_row(self):
        """A tenant row maps onto the Tenant entity."""
        row = ("t1", "shopflow", "Shop Flow", True, "$argon2id$...")
        mock_conn, mock_cursor = _mock_connection(fetchone=row)
        store = PostgresAuthorizationStore(dsn="mock://")

        with patch(
            "authsmith_core.authorization.repository.get_db_connection",
            new=AsyncMock(return_value=mock_conn),
        ):
            tenant = await store.get_tenant_by_key("ShopFlow")

        assert tenant.id == "t1"
        assert tenant.key == "shopflow"
        assert tenant.api_key_hash == "$argon2id$..."
        sql, params = mock_cursor.execute.call_args.args
        assert "lower(key) = lower(%s)" in sql
        assert params == ("ShopFlow",)

    @pytest.mark.asyncio
    async def test_get_tenant_by_key_missing(self):
        """No row yields None."""
        mock_conn, _ = _mock_connection(fetchone=None)
        store = PostgresAuthorizationStore(dsn="mock://")

        with patch(
            "authsmith_core.authorization.repository.get_db_connection",
            new=AsyncMock(return_value=mock_conn),
        ):
            assert await store.get_tenant_by_key("nope") is None

    @pytest.mark.asyncio
    async def test_role_codes_skip_query_without_roles(self):
        """An empty role list returns no codes without touching the database."""
        store = PostgresAuthorizationStore(dsn="mock://")

        with patch("authsmith_core.authorization.repository.get_db_connection") as mock_connect:
            assert await store.get_permission_codes_for_roles([]) == set()

        mock_connect.assert_not_called()

    @pytest.mark.asyncio
    async def test_direct_codes(self):
        """Direct grants are returned as a set of codes."""
        mock_conn, _ = _mock_connection(fetchall=[("shop.a.read",), ("shop.b.write",)])
        store = PostgresAuthorizationStore(dsn="mock://")

        with patch(
            "authsmith_core.authorization.repository.get_db_connection",
            new=AsyncMock(return_value=mock_conn),
        ):
            codes = await store.get_direct_permission_codes("u1", "t1")

        assert codes == {"shop.a.read", "shop.b.write"}
