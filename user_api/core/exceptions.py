"""Structured exception hierarchy for consistent error handling.

This module defines the complete exception system for the user API,
providing a rich error model that supports debugging, monitoring, and
mapping failures onto gateway responses.

Key components:
- **ErrorCode enum**: Standardized error identifiers for programmatic handling
- **Severity enum**: Error classification for monitoring and alerting
- **UserApiError**: Base exception with rich context and fingerprinting
- **Specialized exceptions**: Configuration, argument, database, row mapping,
  validation and not-found errors

Propagation policy:
- The data access layer recovers nothing: driver errors are wrapped in
  DbError (or MappingError for row mapper failures) and re-raised
- The service layer passes failures through unchanged
- Request handlers translate ValidationError to 400, NotFoundError to 404
  and everything else to 500
"""

import hashlib
import traceback
from enum import Enum
from typing import Any


class ErrorCode(Enum):
    """Standardized error codes for the user API."""

    # System errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    """An unexpected internal error occurred in the system."""

    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    """Required environment configuration is missing or malformed."""

    # Programming errors
    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    """A caller passed an argument the operation cannot accept."""

    # Persistence errors
    DATABASE_ERROR = "DATABASE_ERROR"
    """A SQL statement or the database connection failed."""

    MAPPING_ERROR = "MAPPING_ERROR"
    """A row could not be projected onto a domain record."""

    # Request errors
    VALIDATION_ERROR = "VALIDATION_ERROR"
    """Input validation failed due to invalid or malformed data."""

    NOT_FOUND = "NOT_FOUND"
    """The requested resource could not be found."""


class Severity(Enum):
    """Severity levels for errors in the user API.

    These severity levels help categorize the impact and urgency of errors,
    enabling appropriate handling, monitoring, and alerting strategies.
    """

    LOW = "LOW"
    """Low severity errors that don't significantly impact functionality."""

    MEDIUM = "MEDIUM"
    """Medium severity errors that may affect some features but not critical ops."""

    HIGH = "HIGH"
    """High severity errors impacting critical functionality or data integrity."""

    CRITICAL = "CRITICAL"
    """Critical errors requiring immediate attention, may cause system failures."""


class UserApiError(Exception):
    """Base exception class for all user API exceptions.

    Args:
        error_code: Unique identifier for the error type (string or ErrorCode enum)
        message: Human-readable error message
        severity: Severity level of the error (defaults to MEDIUM)
        context: Additional context information about the error
        cause: The original exception that caused this error
    """

    def __init__(
        self,
        error_code: str | ErrorCode,
        message: str,
        severity: Severity = Severity.MEDIUM,
        context: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ) -> None:
        self.error_code = (
            error_code.value if isinstance(error_code, ErrorCode) else error_code
        )
        self.message = message
        self.severity = severity
        self.context = context or {}
        self.cause = cause

        # Capture stack trace at creation time
        self.stack_trace = traceback.format_stack()[:-1]  # Exclude this frame

        self.fingerprint = self._generate_fingerprint()

        super().__init__(message)
        if cause:
            self.__cause__ = cause

    def _generate_fingerprint(self) -> str:
        """Generate a fingerprint for error grouping.

        Creates a hash based on the error type and the location where it was
        raised, allowing similar errors to be grouped together in CloudWatch.

        Returns:
            str: A hash string for error grouping
        """
        max_frames = 5
        relevant_frames = (
            self.stack_trace[-max_frames:]
            if len(self.stack_trace) > max_frames
            else self.stack_trace
        )

        fingerprint_data = f"{self.__class__.__name__}:{self.error_code}"

        for frame in relevant_frames:
            if "site-packages" not in frame and "user_api/" in frame:
                lines = frame.strip().split("\n")
                if lines:
                    fingerprint_data += f":{lines[0]}"

        return hashlib.sha256(fingerprint_data.encode()).hexdigest()[:16]

    def __str__(self) -> str:
        """Return a string representation of the exception.

        Returns:
            str: A formatted string containing the error code and message
        """
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        """Return a detailed representation of the exception.

        Returns:
            str: A string showing the class name, error code, message, severity,
                and context
        """
        class_name = self.__class__.__name__
        context_str = f", context={self.context}" if self.context else ""
        return (
            f"{class_name}(error_code='{self.error_code}', "
            f"message='{self.message}', severity={self.severity.value}{context_str})"
        )


class ConfigurationError(UserApiError):
    """Exception raised when environment configuration is missing or malformed.

    Raised by the pool provider when DB_HOST or DB_NAME is absent, or when
    the DB_* variables fail validation.

    Args:
        message: Description of the configuration problem
        context: Additional context information about the error
        cause: The original exception that caused this error
    """

    def __init__(
        self,
        message: str,
        error_code: str | ErrorCode = ErrorCode.CONFIGURATION_ERROR,
        context: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(error_code, message, Severity.CRITICAL, context, cause)


class ArgumentError(UserApiError):
    """Exception raised when a data access call receives an unusable argument.

    Examples are an empty value mapping for insert or update, or a page size
    or page number below one.
    """

    def __init__(
        self,
        message: str,
        error_code: str | ErrorCode = ErrorCode.INVALID_ARGUMENT,
        context: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(error_code, message, Severity.MEDIUM, context, cause)


class DbError(UserApiError):
    """Exception raised when a SQL statement or the connection fails.

    The message is a short description of the failed operation
    ("Insert failed", "Transaction failed", ...); the driver error is kept
    as the cause.

    Args:
        message: Short description of the failed operation
        error_code: Error code (defaults to DATABASE_ERROR)
        context: Additional context information about the error
        cause: The original exception that caused this error
    """

    def __init__(
        self,
        message: str,
        error_code: str | ErrorCode = ErrorCode.DATABASE_ERROR,
        context: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(error_code, message, Severity.HIGH, context, cause)


class MappingError(DbError):
    """Exception raised when a row mapper cannot project a row."""

    def __init__(
        self,
        message: str,
        error_code: str | ErrorCode = ErrorCode.MAPPING_ERROR,
        context: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, error_code, context, cause)


class ValidationError(UserApiError):
    """Exception raised when request validation fails.

    Used by the request handlers for missing or unparsable query parameters.

    Args:
        message: Description of the validation failure
        error_code: Error code (defaults to VALIDATION_ERROR)
        context: Additional context information about the error
        cause: The original exception that caused this error
    """

    def __init__(
        self,
        message: str,
        error_code: str | ErrorCode = ErrorCode.VALIDATION_ERROR,
        context: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(error_code, message, Severity.LOW, context, cause)


class NotFoundError(UserApiError):
    """Exception raised when a requested resource cannot be found.

    Args:
        message: Description of what resource was not found
        error_code: Error code (defaults to NOT_FOUND)
        context: Additional context information about the error
        cause: The original exception that caused this error
    """

    def __init__(
        self,
        message: str,
        error_code: str | ErrorCode = ErrorCode.NOT_FOUND,
        context: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(error_code, message, Severity.LOW, context, cause)
