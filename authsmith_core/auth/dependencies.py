"""
FastAPI dependencies for authorization.

Provides dependency injection for:
- Extracting auth context from requests
- Requiring admin or tenant API access for endpoints
"""

from __future__ import annotations

from fastapi import Depends, HTTPException, Request

from authsmith_core.domain.auth import AuthContext


def get_auth_context(request: Request) -> AuthContext:
    """Get auth context from request state.

    Args:
        request: The FastAPI request object.

    Returns:
        AuthContext attached by auth middleware.

    Raises:
        HTTPException: 401 if not authenticated.
    """
    auth = getattr(request.state, "auth", None)
    if not auth:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return auth


def require_admin_access(auth: AuthContext = Depends(get_auth_context)) -> AuthContext:
    """Require an admin API key.

    Raises:
        HTTPException: 403 for any other principal.
    """
    if not auth.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return auth


def require_tenant_access(auth: AuthContext = Depends(get_auth_context)) -> AuthContext:
    """Require an admin or tenant API key.

    Routes acting on a specific tenant must still call
    ``auth.can_access_tenant(tenant_id)`` once the tenant is resolved.

    Raises:
        HTTPException: 403 for principals without API access.
    """
    if not auth.can_access_tenant():
        raise HTTPException(status_code=403, detail="Application access required")
    return auth


def ensure_tenant_access(auth: AuthContext, tenant_id: str) -> None:
    """Raise 403 unless the principal may act on tenant_id."""
    if not auth.can_access_tenant(tenant_id):
        raise HTTPException(status_code=403, detail="Access to this application is not allowed")
