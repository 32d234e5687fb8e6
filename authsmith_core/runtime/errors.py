"""
Standardized error model with retry semantics.

This module defines the hierarchy of service errors raised for expected
failure paths (unknown tenant, duplicate key, invalid input, unavailable
infrastructure). Each error carries a machine-readable code and the HTTP
status the API layer maps it to, so callers can match on the error type
instead of parsing messages.
"""

from __future__ import annotations

import uuid
from typing import Any


# Common error codes
class ErrorCode:
    """Standard error codes for common failure scenarios."""

    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    INPUT_VALIDATION = "INPUT_VALIDATION"
    INFRASTRUCTURE_UNAVAILABLE = "INFRASTRUCTURE_UNAVAILABLE"

    # Signing keys
    KEY_SOURCE_NOT_CONFIGURED = "KEY_SOURCE_NOT_CONFIGURED"
    KEY_FILE_MISSING = "KEY_FILE_MISSING"


class ServiceError(Exception):
    """Standardized service error with retry classification.

    ServiceError carries structured information about failures:
    - code: Machine-readable error code (e.g., "NOT_FOUND")
    - message_safe: Human-readable message safe for logs/users
    - message_debug: Detailed debug info (not logged in production)
    - retryable: Whether the operation can be retried
    - cause: The underlying exception, if any
    - debug_id: Unique ID for support correlation

    Attributes:
        code: Error code for programmatic handling.
        message_safe: Safe message for logging and user display.
        message_debug: Optional detailed message for debugging.
        retryable: Whether this error can be retried.
        cause: Optional underlying exception.
        debug_id: Unique identifier for support tickets.
        status_code: HTTP status the API layer responds with.
    """

    status_code: int = 500

    def __init__(
        self,
        code: str,
        message_safe: str,
        message_debug: str | None = None,
        retryable: bool = False,
        cause: Exception | None = None,
        debug_id: str | None = None,
    ):
        """Initialize a ServiceError.

        Args:
            code: Machine-readable error code.
            message_safe: Human-readable message safe for logs.
            message_debug: Optional detailed debug message.
            retryable: Whether the operation can be retried.
            cause: Optional underlying exception.
            debug_id: Optional correlation ID (auto-generated if None).
        """
        super().__init__(message_safe)
        self.code = code
        self.message_safe = message_safe
        self.message_debug = message_debug
        self.retryable = retryable
        self.cause = cause
        self.debug_id = debug_id or str(uuid.uuid4())[:8]

    def __str__(self) -> str:
        """Return string representation."""
        return f"[{self.code}] {self.message_safe}"

    def __repr__(self) -> str:
        """Return detailed representation."""
        return (
            f"{type(self).__name__}(code={self.code!r}, "
            f"message_safe={self.message_safe!r}, "
            f"retryable={self.retryable}, "
            f"debug_id={self.debug_id!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API responses.

        Returns:
            Dictionary with error details (excludes debug info).
        """
        return {
            "error": self.code,
            "message": self.message_safe,
            "debug_id": self.debug_id,
        }


class RetryableError(ServiceError):
    """Error that indicates the operation can be retried.

    Use this for transient failures like:
    - Network timeouts
    - Temporary cache or database unavailability
    """

    status_code = 503

    def __init__(
        self,
        code: str,
        message_safe: str,
        message_debug: str | None = None,
        cause: Exception | None = None,
        debug_id: str | None = None,
    ):
        super().__init__(
            code=code,
            message_safe=message_safe,
            message_debug=message_debug,
            retryable=True,
            cause=cause,
            debug_id=debug_id,
        )


class TerminalError(ServiceError):
    """Error that indicates the operation should not be retried.

    Use this for permanent failures like:
    - Invalid input (400)
    - Resource not found (404)
    - Unique key violations (409)
    """

    def __init__(
        self,
        code: str,
        message_safe: str,
        message_debug: str | None = None,
        cause: Exception | None = None,
        debug_id: str | None = None,
    ):
        super().__init__(
            code=code,
            message_safe=message_safe,
            message_debug=message_debug,
            retryable=False,
            cause=cause,
            debug_id=debug_id,
        )


class NotFoundError(TerminalError):
    """A tenant, permission or role does not exist (or is inactive)."""

    status_code = 404

    def __init__(self, message_safe: str, **kwargs):
        super().__init__(ErrorCode.NOT_FOUND, message_safe, **kwargs)


class ConflictError(TerminalError):
    """A unique key already exists."""

    status_code = 409

    def __init__(self, message_safe: str, **kwargs):
        super().__init__(ErrorCode.CONFLICT, message_safe, **kwargs)


class InputValidationError(TerminalError):
    """Caller supplied input that cannot be processed."""

    status_code = 400

    def __init__(self, message_safe: str, **kwargs):
        super().__init__(ErrorCode.INPUT_VALIDATION, message_safe, **kwargs)


class InfrastructureUnavailableError(RetryableError):
    """A backing store (database, cache, key file) cannot be reached."""

    def __init__(self, message_safe: str, **kwargs):
        super().__init__(ErrorCode.INFRASTRUCTURE_UNAVAILABLE, message_safe, **kwargs)
