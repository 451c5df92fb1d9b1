"""
Custom Exceptions
=================

Defines the error taxonomy for Barricade.
All exceptions include error codes for programmatic handling, and every
per-operation failure is reported back to callers as a structured result
rather than terminating the engine.
"""

from enum import Enum
from typing import Optional


class ErrorCode(Enum):
    """Error codes for programmatic error handling."""

    # General errors (1000-1099)
    UNKNOWN_ERROR = 1000
    CONFIGURATION_ERROR = 1001
    FILE_NOT_FOUND = 1002
    PERMISSION_DENIED = 1003
    FILE_ACCESS_FAILED = 1004
    SYMLINK_REFUSED = 1005

    # Disposition errors (1100-1199)
    HASH_COMPUTATION_FAILED = 1100
    MOVE_FAILED = 1101
    METADATA_WRITE_FAILED = 1102
    RESTORE_CONFLICT = 1103
    RECORD_NOT_FOUND = 1104

    # Scanning errors (1200-1299)
    SCAN_FAILED = 1200
    FILE_TOO_LARGE = 1201

    # Shredding errors (1300-1399)
    SHRED_FAILED = 1300
    UNLINK_FAILED = 1301


class BarricadeError(Exception):
    """Base exception for all Barricade errors.

    Attributes:
        message: Human-readable error message.
        error_code: Programmatic error code.
        details: Additional error context.
        cause: Original exception that caused this error.
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.UNKNOWN_ERROR,
        details: Optional[dict] = None,
        cause: Optional[Exception] = None
    ):
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Programmatic error code.
            details: Additional context as key-value pairs.
            cause: Original exception if wrapping another error.
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.cause = cause

    def __str__(self) -> str:
        """Return a formatted error string."""
        result = f"[{self.error_code.name}] {self.message}"
        if self.details:
            result += f" | Details: {self.details}"
        if self.cause:
            result += f" | Caused by: {type(self.cause).__name__}: {self.cause}"
        return result

    def to_dict(self) -> dict:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": type(self).__name__,
            "message": self.message,
            "error_code": self.error_code.value,
            "error_name": self.error_code.name,
            "details": self.details,
            "cause": str(self.cause) if self.cause else None,
        }


class ConfigurationError(BarricadeError):
    """Raised when there's a configuration problem.

    Examples:
        - Invalid configuration file format
        - Holding directories cannot be created or written
    """

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        expected_type: Optional[str] = None,
        **kwargs
    ):
        details = kwargs.pop("details", {})
        if config_key:
            details["config_key"] = config_key
        if expected_type:
            details["expected_type"] = expected_type
        super().__init__(
            message,
            error_code=ErrorCode.CONFIGURATION_ERROR,
            details=details,
            **kwargs
        )


class _PathError(BarricadeError):
    """Shared constructor for errors tied to one filesystem path."""

    default_code = ErrorCode.UNKNOWN_ERROR

    def __init__(
        self,
        message: str,
        file_path: Optional[str] = None,
        error_code: Optional[ErrorCode] = None,
        **kwargs
    ):
        details = kwargs.pop("details", {})
        if file_path:
            details["file_path"] = str(file_path)
        super().__init__(
            message,
            error_code=error_code or self.default_code,
            details=details,
            **kwargs
        )
        self.file_path = file_path


class FileAccessError(_PathError):
    """Raised when a path is missing, unreadable or permission is denied.

    Never fatal to the engine; the caller decides whether to retry.
    """

    default_code = ErrorCode.FILE_ACCESS_FAILED

    @classmethod
    def from_os_error(cls, exc: OSError, file_path) -> "FileAccessError":
        """Map an OSError onto the matching error code."""
        if isinstance(exc, FileNotFoundError):
            code = ErrorCode.FILE_NOT_FOUND
        elif isinstance(exc, PermissionError):
            code = ErrorCode.PERMISSION_DENIED
        else:
            code = ErrorCode.FILE_ACCESS_FAILED
        return cls(
            f"Cannot access file: {exc.strerror or exc}",
            file_path=str(file_path),
            error_code=code,
            cause=exc
        )


class HashError(_PathError):
    """Raised when a content digest cannot be computed.

    Aborts a pending disposition before any filesystem mutation.
    """

    default_code = ErrorCode.HASH_COMPUTATION_FAILED


class MoveError(_PathError):
    """Raised when moving content into or out of a holding area fails."""

    default_code = ErrorCode.MOVE_FAILED


class ConflictError(_PathError):
    """Raised when a restore target is already occupied."""

    default_code = ErrorCode.RESTORE_CONFLICT


class ScanError(_PathError):
    """Raised for an unreadable subtree; the walk skips it and continues."""

    default_code = ErrorCode.SCAN_FAILED


class TooLargeError(_PathError):
    """Raised when a forensic scan is refused because of the size cap."""

    default_code = ErrorCode.FILE_TOO_LARGE

    def __init__(self, message: str, file_path=None, size: int = 0, limit: int = 0, **kwargs):
        details = kwargs.pop("details", {})
        details["size"] = size
        details["limit"] = limit
        super().__init__(message, file_path=file_path, details=details, **kwargs)


class UnlinkError(_PathError):
    """Raised when shred overwrote a file but could not remove it.

    The content is already destroyed; removal can be retried on its own.
    """

    default_code = ErrorCode.UNLINK_FAILED
