"""
Pydantic schemas for the authorization API.

Field names are camelCase on the wire and snake_case in Python.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PermissionCheckRequest(_CamelModel):
    """Single permission check."""

    user_id: str = Field(..., min_length=1)
    application_key: str = Field(..., min_length=1)
    module: str = Field(..., min_length=1)
    action: str = Field(..., min_length=1)


class PermissionCheckResponse(_CamelModel):
    """Single permission check result."""

    has_permission: bool
    user_id: str
    application_key: str
    module: str
    action: str
    source: str


class BulkCheckItem(_CamelModel):
    module: str = Field(..., min_length=1)
    action: str = Field(..., min_length=1)


class BulkPermissionCheckRequest(_CamelModel):
    """Many (module, action) checks for one user in one application."""

    user_id: str = Field(..., min_length=1)
    application_key: str = Field(..., min_length=1)
    checks: list[BulkCheckItem]


class BulkCheckResultItem(_CamelModel):
    module: str
    action: str
    has_permission: bool


class BulkPermissionCheckResponse(_CamelModel):
    user_id: str
    application_key: str
    results: list[BulkCheckResultItem]


class UserPermissionsResponse(_CamelModel):
    user_id: str
    application_key: str
    permissions: list[str]
