"""
Core entities read by the trust-and-access engine.

Only the attributes the engine needs are modelled here; full CRUD
management of these entities lives with the management services.
"""

from __future__ import annotations

from dataclasses import dataclass


def permission_code(tenant_key: str, module: str, action: str) -> str:
    """Build the canonical permission code ``{tenantKey}.{module}.{action}``, lowercased."""
    return f"{tenant_key}.{module}.{action}".lower()


@dataclass(frozen=True)
class Tenant:
    """An application registered with the service."""

    id: str
    key: str
    name: str = ""
    is_active: bool = True
    api_key_hash: str | None = None


@dataclass(frozen=True)
class Permission:
    """A (module, action) pair defined by one tenant."""

    id: str
    tenant_id: str
    module: str
    action: str
    code: str
    description: str | None = None


@dataclass(frozen=True)
class User:
    """A global user; role and permission grants are scoped by tenant."""

    id: str
    user_name: str
    email: str
    is_active: bool = True
