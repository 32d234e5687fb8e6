"""Unit tests for ServiceError hierarchy."""

import pytest

from authsmith_core.auth.exceptions import KeyFileMissingError, KeySourceNotConfiguredError
from authsmith_core.runtime.errors import (
    ConflictError,
    ErrorCode,
    InfrastructureUnavailableError,
    InputValidationError,
    NotFoundError,
    RetryableError,
    ServiceError,
    TerminalError,
)


class TestServiceError:
    """Tests for ServiceError base class."""

    def test_create_with_required_fields(self):
        """Should create error with required fields."""
        error = ServiceError(code="TEST_ERROR", message_safe="Something went wrong")

        assert error.code == "TEST_ERROR"
        assert error.message_debug is None
        assert error.retryable is False
        assert error.debug_id is not None  # Auto-generated
        assert error.status_code == 500

    def test_str_representation(self):
        """Should format as [CODE] message."""
        error = ServiceError(code="MY_CODE", message_safe="My message")

        assert str(error) == "[MY_CODE] My message"

    def test_to_dict_excludes_debug_info(self):
        """to_dict exposes code, safe message and debug id only."""
        error = ServiceError(
            code="X", message_safe="safe", message_debug="secret detail", debug_id="abc"
        )

        assert error.to_dict() == {"error": "X", "message": "safe", "debug_id": "abc"}


class TestTypedErrors:
    """Tests for the expected-failure taxonomy."""

    @pytest.mark.parametrize(
        "error,code,status,retryable",
        [
            (NotFoundError("missing"), ErrorCode.NOT_FOUND, 404, False),
            (ConflictError("duplicate"), ErrorCode.CONFLICT, 409, False),
            (InputValidationError("bad"), ErrorCode.INPUT_VALIDATION, 400, False),
            (InfrastructureUnavailableError("down"), ErrorCode.INFRASTRUCTURE_UNAVAILABLE, 503, True),
            (KeySourceNotConfiguredError(), ErrorCode.KEY_SOURCE_NOT_CONFIGURED, 500, False),
            (KeyFileMissingError("/k.pem"), ErrorCode.KEY_FILE_MISSING, 500, False),
        ],
    )
    def test_codes_and_statuses(self, error, code, status, retryable):
        """Each error carries its code, HTTP status and retry flag."""
        assert error.code == code
        assert error.status_code == status
        assert error.retryable is retryable

    def test_hierarchy(self):
        """Terminal and retryable errors are ServiceErrors."""
        assert isinstance(NotFoundError("x"), TerminalError)
        assert isinstance(InfrastructureUnavailableError("x"), RetryableError)
        assert isinstance(KeyFileMissingError("x"), ServiceError)
