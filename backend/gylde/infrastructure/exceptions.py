"""
Custom Exceptions for Gylde

Hierarchical exception classes for proper error handling across layers.
Each class carries the HTTP status it maps to at the API boundary and
whether the client may retry the same call unchanged.
"""

from typing import Optional, Dict, Any


class GyldeError(Exception):
    """Base exception for all Gylde errors."""

    status_code: int = 500
    retryable: bool = False

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.original_error = original_error

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
            "retryable": self.retryable,
        }


class PermissionDeniedError(GyldeError):
    """Raised when tier or ownership is insufficient for the action."""
    status_code = 403

    def __init__(
        self,
        message: str,
        feature: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if feature:
            details["feature"] = feature
        super().__init__(message, details, original_error)


class ValidationError(GyldeError):
    """Raised when input validation fails."""
    status_code = 400


class FailedPreconditionError(GyldeError):
    """Raised when the resource is not in a state that allows the action."""
    status_code = 412


class DatabaseError(GyldeError):
    """Raised when database operations fail."""
    retryable = True

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        table: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if operation:
            details["operation"] = operation
        if table:
            details["table"] = table
        super().__init__(message, details, original_error)


class NotFoundError(DatabaseError):
    """Raised when a requested resource is not found."""
    status_code = 404
    retryable = False


class AlreadyExistsError(DatabaseError):
    """Raised when the action duplicates an existing resource or plan."""
    status_code = 409
    retryable = False


class RateLimitError(GyldeError):
    """Raised when a daily allowance is exhausted."""
    status_code = 429

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        daily_limit: Optional[int] = None,
        used_today: Optional[int] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if daily_limit is not None:
            details["daily_limit"] = daily_limit
        if used_today is not None:
            details["used_today"] = used_today
        super().__init__(message, details=details, original_error=original_error)


class InternalError(GyldeError):
    """Raised when a downstream provider fails."""
    retryable = True

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        operation: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if provider:
            details["provider"] = provider
        if operation:
            details["operation"] = operation
        super().__init__(message, details, original_error)


class ConfigurationError(GyldeError):
    """Raised when configuration is missing or invalid."""

    def __init__(
        self,
        message: str,
        missing_keys: Optional[list] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if missing_keys:
            details["missing_keys"] = missing_keys
        super().__init__(message, details, original_error)
