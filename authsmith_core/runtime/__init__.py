"""
Service runtime layer for AuthSmith.

Provides the standardized error model shared by every component:
- ServiceError: base error with code, safe message and retry semantics
- NotFoundError / ConflictError / InputValidationError: expected failures
- InfrastructureUnavailableError: retryable backing-store failures
"""

from .errors import (
    ConflictError,
    ErrorCode,
    InfrastructureUnavailableError,
    InputValidationError,
    NotFoundError,
    RetryableError,
    ServiceError,
    TerminalError,
)

__all__ = [
    "ErrorCode",
    "ServiceError",
    "RetryableError",
    "TerminalError",
    "NotFoundError",
    "ConflictError",
    "InputValidationError",
    "InfrastructureUnavailableError",
]
