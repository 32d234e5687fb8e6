"""
Audit and diagnostic event emission.

Events are fire-and-forget: they are written as structured loguru records
(bound with ``audit=True``) and counted through the OpenTelemetry metrics
API. Emission never raises into the caller; a failure to emit is logged
and dropped.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from loguru import logger
from opentelemetry import metrics

# Allowlist of permitted event fields (no secrets, no raw keys)
ALLOWED_FIELDS = frozenset({
    "tenant_id",
    "tenant_key",
    "user_id",
    "access_level",
    "permission_code",
    "source",
    "cache_hit",
    "client_id",
    "path",
    "limit",
    "window_seconds",
    "request_id",
    "count",
})


class AuditEventType(str, Enum):
    """Types of auditable events."""

    API_KEY_VALIDATED = "API_KEY_VALIDATED"
    API_KEY_INVALID = "API_KEY_INVALID"
    PERMISSION_CHECKED = "PERMISSION_CHECKED"
    PERMISSION_CACHE_INVALIDATED = "PERMISSION_CACHE_INVALIDATED"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"


class AuditEmitter:
    """
    Emits structured audit events.

    Usage:
        audit = AuditEmitter()
        audit.emit(
            AuditEventType.PERMISSION_CHECKED,
            tenant_key="shopflow",
            user_id="user-123",
            permission_code="shopflow.catalog.read",
            source="Cache",
        )
    """

    def __init__(self):
        self._counter = metrics.get_meter("authsmith.audit").create_counter(
            "authsmith_audit_events",
            description="Audit events emitted, by event type",
        )

    def _filter_fields(self, fields: dict[str, Any]) -> dict[str, Any]:
        filtered = {}
        for key, value in fields.items():
            if key in ALLOWED_FIELDS:
                filtered[key] = value
            else:
                logger.warning(f"Audit field '{key}' not in allowlist, skipping")
        return filtered

    def emit(self, event_type: AuditEventType, level: str = "INFO", **fields: Any) -> None:
        """
        Emit an audit event.

        Args:
            event_type: What happened.
            level: Loguru level for the record.
            **fields: Event details; keys outside ALLOWED_FIELDS are dropped.
        """
        try:
            payload = self._filter_fields(fields)
            logger.bind(audit=True, event=event_type.value, **payload).log(
                level, f"audit {event_type.value}"
            )
            attributes = {"event": event_type.value}
            if "source" in payload:
                attributes["source"] = str(payload["source"])
            self._counter.add(1, attributes)
        except Exception as e:
            logger.debug(f"Failed to emit audit event {event_type.value}: {e}")


# Shared default emitter
audit_emitter = AuditEmitter()
