"""
Authorization routes.

Provides endpoints for:
- Single permission checks
- Bulk permission checks
- Listing a user's permissions in an application

Callers authenticate with an admin key or the application's own API key;
an application key only grants access to its own application.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from app.authorization.factory import get_authorization_service
from app.authorization.schemas import (
    BulkCheckResultItem,
    BulkPermissionCheckRequest,
    BulkPermissionCheckResponse,
    PermissionCheckRequest,
    PermissionCheckResponse,
    UserPermissionsResponse,
)
from authsmith_core.auth.dependencies import ensure_tenant_access, require_tenant_access
from authsmith_core.authorization.service import AuthorizationService
from authsmith_core.domain.auth import AuthContext
from authsmith_core.domain.authorization import PermissionCheck

router = APIRouter(prefix="/api/v1", tags=["Authorization"])


async def _authorize_tenant(
    auth: AuthContext, service: AuthorizationService, application_key: str
) -> None:
    if auth.is_admin:
        return
    tenant = await service.resolve_tenant(application_key)
    ensure_tenant_access(auth, tenant.id)


@router.post("/authorization/check", response_model=PermissionCheckResponse)
async def check_permission(
    body: PermissionCheckRequest,
    auth: AuthContext = Depends(require_tenant_access),
    service: AuthorizationService = Depends(get_authorization_service),
):
    """Check whether a user holds one permission."""
    await _authorize_tenant(auth, service, body.application_key)
    result = await service.check_permission(
        body.user_id, body.application_key, body.module, body.action
    )
    return PermissionCheckResponse(
        has_permission=result.has_permission,
        user_id=body.user_id,
        application_key=body.application_key,
        module=body.module,
        action=body.action,
        source=result.source.value,
    )


@router.post("/authorization/bulk-check", response_model=BulkPermissionCheckResponse)
async def bulk_check_permissions(
    body: BulkPermissionCheckRequest,
    auth: AuthContext = Depends(require_tenant_access),
    service: AuthorizationService = Depends(get_authorization_service),
):
    """Check many permissions for one user with a single resolution pass."""
    await _authorize_tenant(auth, service, body.application_key)
    results = await service.bulk_check(
        body.user_id,
        body.application_key,
        [PermissionCheck(item.module, item.action) for item in body.checks],
    )
    return BulkPermissionCheckResponse(
        user_id=body.user_id,
        application_key=body.application_key,
        results=[
            BulkCheckResultItem(
                module=item.module, action=item.action, has_permission=item.has_permission
            )
            for item in results
        ],
    )


@router.get("/users/{user_id}/permissions", response_model=UserPermissionsResponse)
async def list_user_permissions(
    user_id: str,
    application_key: str = Query(..., alias="applicationKey", min_length=1),
    module: str | None = Query(None),
    auth: AuthContext = Depends(require_tenant_access),
    service: AuthorizationService = Depends(get_authorization_service),
):
    """List the permission codes a user holds, optionally for one module."""
    await _authorize_tenant(auth, service, application_key)
    permissions = await service.list_user_permissions(user_id, application_key, module)
    return UserPermissionsResponse(
        user_id=user_id,
        application_key=application_key,
        permissions=permissions,
    )
