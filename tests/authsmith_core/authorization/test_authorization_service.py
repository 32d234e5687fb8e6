"""Unit tests for AuthorizationService."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from authsmith_core.authorization.service import AuthorizationService
from authsmith_core.cache.permission_cache import InMemoryPermissionCache
from authsmith_core.domain.authorization import PermissionCheck, PermissionSource
from authsmith_core.domain.entities import Tenant
from authsmith_core.runtime.errors import NotFoundError
from tests.authsmith_core.fakes import FakePermissionStore, FakeTenantStore

SHOP = Tenant(id="t-shop", key="ShopFlow")
BLOG = Tenant(id="t-blog", key="blog")


@pytest.fixture
def graph():
    """Role 'editor' grants catalog.read and catalog.write; orders.read is direct-only."""
    store = FakePermissionStore()
    read = store.add_permission(SHOP, "catalog", "read")
    write = store.add_permission(SHOP, "catalog", "write")
    orders = store.add_permission(SHOP, "orders", "read")
    store.add_permission(SHOP, "orders", "delete")
    editor = store.add_role(SHOP, "editor", [read, write])
    store.assign_role("alice", editor)
    store.grant("bob", orders)

    blog_post = store.add_permission(BLOG, "posts", "write")
    store.grant("alice", blog_post)
    return store


@pytest.fixture
def cache():
    return InMemoryPermissionCache(ttl_seconds=900)


@pytest.fixture
def service(graph, cache):
    return AuthorizationService(
        tenant_store=FakeTenantStore([SHOP, BLOG]),
        permission_store=graph,
        cache=cache,
        audit=MagicMock(),
    )


class TestCheckPermission:
    """Tests for single permission checks."""

    @pytest.mark.asyncio
    async def test_role_grant(self, service):
        """A permission reachable through a role is granted with source Role."""
        result = await service.check_permission("alice", "shopflow", "catalog", "read")

        assert result.has_permission is True
        assert result.source is PermissionSource.ROLE

    @pytest.mark.asyncio
    async def test_direct_grant(self, service):
        """A directly granted permission has source Direct."""
        result = await service.check_permission("bob", "shopflow", "orders", "read")

        assert result.has_permission is True
        assert result.source is PermissionSource.DIRECT

    @pytest.mark.asyncio
    async def test_not_held(self, service):
        """A defined permission the user lacks is denied with source None."""
        result = await service.check_permission("bob", "shopflow", "orders", "delete")

        assert result.has_permission is False
        assert result.source is PermissionSource.NONE

    @pytest.mark.asyncio
    async def test_undefined_permission(self, service):
        """A code the tenant never defined is denied with source None."""
        result = await service.check_permission("alice", "shopflow", "unknown", "thing")

        assert (result.has_permission, result.source) == (False, PermissionSource.NONE)

    @pytest.mark.asyncio
    async def test_unknown_tenant_raises(self, service):
        """An unknown tenant key raises NotFoundError."""
        with pytest.raises(NotFoundError):
            await service.check_permission("alice", "nope", "catalog", "read")

    @pytest.mark.asyncio
    async def test_matching_is_case_insensitive(self, service):
        """Tenant key, module and action are matched case-insensitively."""
        result = await service.check_permission("alice", "SHOPFLOW", "Catalog", "READ")

        assert result.has_permission is True

    @pytest.mark.asyncio
    async def test_grant_populates_cache_then_hits(self, service, cache):
        """A granted check caches the full set; the next check is a cache hit."""
        await service.check_permission("alice", "shopflow", "catalog", "read")

        assert await cache.get("alice", SHOP.id) == {"shopflow.catalog.read", "shopflow.catalog.write"}

        result = await service.check_permission("alice", "shopflow", "catalog", "write")
        assert (result.has_permission, result.source) == (True, PermissionSource.CACHE)

    @pytest.mark.asyncio
    async def test_denial_does_not_populate_cache(self, service, cache):
        """A denied check with no grant leaves the cache untouched."""
        await service.check_permission("carol", "shopflow", "catalog", "read")

        assert await cache.get("carol", SHOP.id) is None

    @pytest.mark.asyncio
    async def test_cache_hit_denial(self, service, cache):
        """A cached set without the code answers False from cache."""
        await cache.set("alice", SHOP.id, {"shopflow.catalog.read"})

        result = await service.check_permission("alice", "shopflow", "orders", "delete")

        assert (result.has_permission, result.source) == (False, PermissionSource.CACHE)


class TestGetAllPermissions:
    """Tests for full resolution."""

    @pytest.mark.asyncio
    async def test_unions_roles_and_direct_grants(self, service, graph):
        """Role-derived and direct codes are unioned per tenant."""
        graph.grant("alice", next(p for p in graph.permissions.values() if p.code == "shopflow.orders.read"))

        codes = await service.get_all_permissions("alice", SHOP.id)

        assert codes == {"shopflow.catalog.read", "shopflow.catalog.write", "shopflow.orders.read"}

    @pytest.mark.asyncio
    async def test_scoped_to_tenant(self, service):
        """Grants in another tenant are not included."""
        codes = await service.get_all_permissions("alice", BLOG.id)

        assert codes == {"blog.posts.write"}

    @pytest.mark.asyncio
    async def test_second_call_served_from_cache(self, service, graph):
        """Only the first call walks the permission graph."""
        await service.get_all_permissions("alice", SHOP.id)
        await service.get_all_permissions("alice", SHOP.id)

        assert graph.resolution_calls == 1


class TestBulkCheck:
    """Tests for bulk checks."""

    @pytest.mark.asyncio
    async def test_results_in_request_order(self, service):
        """Each check is answered in the order given."""
        results = await service.bulk_check(
            "alice",
            "shopflow",
            [
                PermissionCheck("orders", "read"),
                PermissionCheck("catalog", "write"),
                PermissionCheck("Catalog", "Read"),
            ],
        )

        assert [(r.module, r.action, r.has_permission) for r in results] == [
            ("orders", "read", False),
            ("catalog", "write", True),
            ("Catalog", "Read", True),
        ]

    @pytest.mark.asyncio
    async def test_single_tenant_lookup_and_resolution(self, service, graph):
        """A bulk check resolves the tenant and the graph once."""
        await service.bulk_check("alice", "shopflow", [PermissionCheck("a", "b")] * 5)

        assert service.tenant_store.lookups == ["shopflow"]
        assert graph.resolution_calls == 1

    @pytest.mark.asyncio
    async def test_unknown_tenant_raises(self, service):
        """An unknown tenant key raises NotFoundError."""
        with pytest.raises(NotFoundError):
            await service.bulk_check("alice", "nope", [])


class TestListUserPermissions:
    """Tests for listing permissions."""

    @pytest.mark.asyncio
    async def test_lists_sorted(self, service):
        """All codes are listed, sorted."""
        codes = await service.list_user_permissions("alice", "shopflow")

        assert codes == ["shopflow.catalog.read", "shopflow.catalog.write"]

    @pytest.mark.asyncio
    async def test_module_filter(self, service, graph):
        """The module filter keeps only that module's codes."""
        graph.grant("alice", next(p for p in graph.permissions.values() if p.code == "shopflow.orders.read"))

        codes = await service.list_user_permissions("alice", "shopflow", module="ORDERS")

        assert codes == ["shopflow.orders.read"]


class TestInvalidation:
    """Tests for cache invalidation after grant changes."""

    @pytest.mark.asyncio
    async def test_revocation_visible_after_invalidate_user(self, service, graph):
        """A revoked role stops granting once the user is invalidated."""
        await service.check_permission("alice", "shopflow", "catalog", "read")
        graph.user_roles["alice"].clear()

        stale = await service.check_permission("alice", "shopflow", "catalog", "read")
        await service.invalidate_user("alice")
        fresh = await service.check_permission("alice", "shopflow", "catalog", "read")

        assert stale.source is PermissionSource.CACHE and stale.has_permission
        assert (fresh.has_permission, fresh.source) == (False, PermissionSource.NONE)

    @pytest.mark.asyncio
    async def test_invalidate_tenant_clears_all_users(self, service, cache):
        """invalidate_tenant drops every user's entry for the tenant."""
        await service.get_all_permissions("alice", SHOP.id)
        await service.get_all_permissions("bob", SHOP.id)
        await service.get_all_permissions("alice", BLOG.id)

        await service.invalidate_tenant(SHOP.id)

        assert await cache.get("alice", SHOP.id) is None
        assert await cache.get("bob", SHOP.id) is None
        assert await cache.get("alice", BLOG.id) == {"blog.posts.write"}
