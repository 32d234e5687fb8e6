"""
API Key service for authentication.

Classifies presented API keys as admin keys (listed in configuration),
tenant keys (Argon2id hashes stored per application) or invalid, and
generates new tenant keys.
"""

from __future__ import annotations

import asyncio
import secrets
from collections.abc import Iterable

from loguru import logger

from authsmith_core.audit import AuditEmitter, AuditEventType, audit_emitter
from authsmith_core.auth.password_hasher import Argon2Hasher
from authsmith_core.config import settings
from authsmith_core.domain.auth import AccessLevel, ApiKeyValidationResult
from authsmith_core.domain.interfaces import TenantStoreProtocol


class ApiKeyService:
    """Service for API key validation and generation.

    Validation is O(active tenants with keys) per call, since tenant keys
    are salted hashes and cannot be looked up directly. The service keeps no
    state between calls; callers needing high request volume cache results.
    """

    KEY_PREFIX = "ask_"

    def __init__(
        self,
        tenant_store: TenantStoreProtocol,
        admin_keys: Iterable[str] | None = None,
        hasher: Argon2Hasher | None = None,
        audit: AuditEmitter | None = None,
    ):
        """Initialize the API key service.

        Args:
            tenant_store: Source of active tenants and their key hashes.
            admin_keys: Admin API keys. Defaults to settings.ADMIN_API_KEYS.
            hasher: Hasher used for tenant keys.
            audit: Audit emitter for validation outcomes.
        """
        self.tenant_store = tenant_store
        self.admin_keys = frozenset(settings.ADMIN_API_KEYS if admin_keys is None else admin_keys)
        self.hasher = hasher or Argon2Hasher()
        self.audit = audit or audit_emitter

    def generate_key(self) -> tuple[str, str]:
        """Generate a new tenant API key.

        Returns:
            Tuple of (raw_key, key_hash). The raw key is only returned once.
        """
        raw_key = f"{self.KEY_PREFIX}{secrets.token_urlsafe(32)}"
        return raw_key, self.hasher.hash(raw_key)

    async def validate(self, raw_key: str | None) -> ApiKeyValidationResult:
        """Classify an API key.

        The admin list is checked first and does not touch the tenant
        store, so admin keys work while the database is unreachable.

        Args:
            raw_key: The raw API key from the request.

        Returns:
            ApiKeyValidationResult with the access level, plus the tenant id
            for tenant keys.
        """
        if not raw_key or not raw_key.strip():
            return ApiKeyValidationResult.invalid()

        if raw_key in self.admin_keys:
            logger.debug("API key validated as admin key")
            self.audit.emit(
                AuditEventType.API_KEY_VALIDATED,
                level="DEBUG",
                access_level=AccessLevel.ADMIN.value,
            )
            return ApiKeyValidationResult.admin()

        tenants = await self.tenant_store.list_active_tenants_with_api_keys()
        for tenant in tenants:
            if not tenant.api_key_hash:
                continue
            # Argon2 is CPU-bound; keep it off the event loop
            matched = await asyncio.to_thread(self.hasher.verify, raw_key, tenant.api_key_hash)
            if matched:
                logger.debug(f"API key validated for application {tenant.id} ({tenant.key})")
                self.audit.emit(
                    AuditEventType.API_KEY_VALIDATED,
                    level="DEBUG",
                    access_level=AccessLevel.TENANT.value,
                    tenant_id=tenant.id,
                    tenant_key=tenant.key,
                )
                return ApiKeyValidationResult.tenant(tenant.id)

        logger.warning("Invalid API key attempted")
        self.audit.emit(AuditEventType.API_KEY_INVALID, level="WARNING")
        return ApiKeyValidationResult.invalid()
