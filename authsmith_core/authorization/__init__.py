"""
Authorization module for AuthSmith.

Provides permission resolution over the role/permission graph and the
PostgreSQL store backing it.
"""

from authsmith_core.authorization.repository import PostgresAuthorizationStore
from authsmith_core.authorization.service import AuthorizationService

__all__ = [
    "AuthorizationService",
    "PostgresAuthorizationStore",
]
