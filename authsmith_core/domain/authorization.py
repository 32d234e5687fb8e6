"""
Authorization result models.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class PermissionSource(str, Enum):
    """Which evidence answered a permission check."""

    CACHE = "Cache"
    ROLE = "Role"
    DIRECT = "Direct"
    NONE = "None"


@dataclass(frozen=True)
class PermissionCheckResult:
    has_permission: bool
    source: PermissionSource


@dataclass(frozen=True)
class PermissionCheck:
    """One (module, action) pair requested in a bulk check."""

    module: str
    action: str


@dataclass(frozen=True)
class PermissionCheckItemResult:
    module: str
    action: str
    has_permission: bool
