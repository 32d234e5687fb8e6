"""
Auth-specific exceptions.
"""

from authsmith_core.runtime.errors import ErrorCode, TerminalError


class SigningKeyError(TerminalError):
    """Base error for unusable JWT signing material."""

    pass


class KeySourceNotConfiguredError(SigningKeyError):
    """Raised when no key path is configured."""

    def __init__(self, key_kind: str = "private"):
        super().__init__(
            ErrorCode.KEY_SOURCE_NOT_CONFIGURED,
            f"JWT {key_kind} key path is not configured.",
        )
        self.key_kind = key_kind


class KeyFileMissingError(SigningKeyError):
    """Raised when the configured key path does not exist."""

    def __init__(self, path: str):
        super().__init__(
            ErrorCode.KEY_FILE_MISSING,
            "JWT key file not found.",
            message_debug=f"JWT key file not found: {path}",
        )
        self.path = path
