"""
Exception foundation for Cadence.

``CadenceError`` is the structured root shared by every exception the
engine raises on purpose. It carries what the logging handlers and any
transport layer need without string parsing:

- ``message``: human-readable description
- ``details``: structured context, logged as ``extra`` fields
- ``severity``: ``ErrorSeverity`` used to pick the log level and alerting
- ``is_retryable``: whether repeating the operation can succeed
- ``error_code``: short stable identifier

Two branches hang off it:

- ``CadenceInfrastructureException`` (this module): configuration and
  database faults
- ``CadenceDomainException`` (``src.modules.shared.exceptions``): coaching
  rule violations and write conflicts
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorSeverity(Enum):
    """Severity attached to Cadence exceptions."""

    DEBUG = "debug"
    INFO = "info"  # caller mistakes, e.g. a blank user id
    WARNING = "warning"  # handled and retried
    ERROR = "error"
    CRITICAL = "critical"  # process cannot continue


class CadenceError(Exception):
    """
    Structured root of the Cadence exception tree.

    Subclasses set ``DEFAULT_SEVERITY`` / ``DEFAULT_RETRYABLE`` instead of
    passing them on every raise.
    """

    DEFAULT_SEVERITY: ErrorSeverity = ErrorSeverity.ERROR
    DEFAULT_RETRYABLE: bool = False

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        severity: Optional[ErrorSeverity] = None,
        is_retryable: Optional[bool] = None,
        error_code: Optional[str] = None,
    ) -> None:
        self.message: str = message
        self.details: Dict[str, Any] = dict(details or {})
        self.severity: ErrorSeverity = severity or self.DEFAULT_SEVERITY
        self.is_retryable: bool = (
            self.DEFAULT_RETRYABLE if is_retryable is None else is_retryable
        )
        self.error_code: str = error_code or type(self).__name__
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Flat representation for structured log records."""
        return {
            "error_type": type(self).__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "severity": self.severity.value,
            "is_retryable": self.is_retryable,
        }

    def __str__(self) -> str:
        if not self.details:
            return f"[{self.error_code}] {self.message}"
        return f"[{self.error_code}] {self.message} | Details: {self.details}"

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(message={self.message!r}, "
            f"details={self.details!r}, severity={self.severity.value!r}, "
            f"is_retryable={self.is_retryable!r})"
        )


class CadenceInfrastructureException(CadenceError):
    """Base for configuration and storage faults."""


class ConfigurationError(CadenceInfrastructureException):
    """
    A required configuration key is missing or unusable.

    Args:
        config_key: Offending key, e.g. ``"STREAK_TIMEZONE"``
        message: What is wrong with it
    """

    DEFAULT_SEVERITY = ErrorSeverity.CRITICAL

    def __init__(self, config_key: str, message: str) -> None:
        self.config_key = config_key
        super().__init__(
            f"Configuration error for {config_key}: {message}",
            details={"config_key": config_key, "message": message},
            error_code="CONFIG_ERROR",
        )


class DatabaseError(CadenceInfrastructureException):
    """
    A repository call failed for a reason other than a version conflict.

    Marked retryable: dropped connections and pool timeouts dominate.

    Args:
        operation: Repository operation, e.g. ``"progression.upsert"``
        original_error: The SQLAlchemy / driver exception
    """

    DEFAULT_RETRYABLE = True

    def __init__(self, operation: str, original_error: Exception) -> None:
        self.operation = operation
        self.original_error = original_error
        super().__init__(
            f"Database error during {operation}: {original_error}",
            details={
                "operation": operation,
                "error": str(original_error),
                "error_type": type(original_error).__name__,
            },
            error_code="DATABASE_ERROR",
        )
