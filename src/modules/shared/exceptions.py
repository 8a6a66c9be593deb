"""
Domain exceptions for the Cadence coaching engine.

Raised by the progression, coaching and assessment services when caller
input breaks a hard precondition or a compare-and-swap write loses a race.
Malformed business input (missing questionnaire answers, negative XP) is
normalised by the services and never raises.

All classes derive from ``CadenceDomainException``, itself a
``CadenceError``, so they carry ``message``, ``details``, ``severity``,
``is_retryable`` and ``error_code``. The helper functions at the bottom
classify any exception, Cadence or not, for logging and retry decisions.
"""

from __future__ import annotations

from typing import Any, Optional

from src.core.exceptions import CadenceError, ErrorSeverity


class CadenceDomainException(CadenceError):
    """
    Base for coaching-rule errors.

    Example:
        >>> raise CadenceDomainException(
        ...     "Session could not be recorded",
        ...     {"user_id": "user-1"},
        ... )
    """


class NotFoundError(CadenceDomainException):
    """
    A catalogue entry or resource does not exist.

    Args:
        resource_type: e.g. ``"Technique"``
        identifier: The id that was looked up
    """

    DEFAULT_SEVERITY = ErrorSeverity.INFO

    def __init__(self, resource_type: str, identifier: Optional[Any] = None) -> None:
        self.resource_type = resource_type
        self.identifier = identifier
        suffix = f": {identifier}" if identifier is not None else ""
        super().__init__(
            f"{resource_type} not found{suffix}",
            details={"resource_type": resource_type, "identifier": identifier},
            error_code=f"{resource_type.upper()}_NOT_FOUND",
        )


class ValidationError(CadenceDomainException):
    """
    Caller input fails a hard precondition (blank user id, day 0, ...).

    Args:
        field: Name of the rejected argument
        message: Why it was rejected
    """

    DEFAULT_SEVERITY = ErrorSeverity.INFO

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        self.validation_message = message
        super().__init__(
            f"Validation error for {field}: {message}",
            details={"field": field, "validation_message": message},
            error_code=f"VALIDATION_{field.upper()}",
        )


class InvalidOperationError(CadenceDomainException):
    """
    The request is well formed but not allowed.

    Example:
        >>> raise InvalidOperationError(
        ...     "transfer_freeze_token",
        ...     "cannot transfer a freeze token to the same user",
        ... )
    """

    DEFAULT_SEVERITY = ErrorSeverity.INFO

    def __init__(self, action: str, reason: str) -> None:
        self.action = action
        self.reason = reason
        super().__init__(
            f"Invalid operation '{action}': {reason}",
            details={"action": action, "reason": reason},
            error_code=f"INVALID_{action.upper()}",
        )


class PersistenceConflictError(CadenceDomainException):
    """
    A compare-and-swap write found a different stored version.

    The computed update is stale: callers discard it and recompute from a
    fresh read, never merge.

    Args:
        user_id: Owner of the contended progression record
        expected_version: Version the update was computed from
        actual_version: Version found in storage, None when unknown
    """

    DEFAULT_SEVERITY = ErrorSeverity.WARNING
    DEFAULT_RETRYABLE = True

    def __init__(
        self,
        user_id: str,
        expected_version: int,
        actual_version: Optional[int] = None,
    ) -> None:
        self.user_id = user_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Progression record for {user_id} changed concurrently "
            f"(expected version {expected_version}, found {actual_version})",
            details={
                "user_id": user_id,
                "expected_version": expected_version,
                "actual_version": actual_version,
            },
            error_code="PERSISTENCE_CONFLICT",
        )


# ============================================================================
# CLASSIFICATION HELPERS
# ============================================================================


def is_transient_error(exc: Exception) -> bool:
    """True when repeating the failed operation may succeed."""
    return isinstance(exc, CadenceError) and exc.is_retryable


def get_error_severity(exc: Exception) -> ErrorSeverity:
    """Severity of a Cadence exception; ERROR for anything unexpected."""
    if isinstance(exc, CadenceError):
        return exc.severity
    return ErrorSeverity.ERROR


def should_alert(exc: Exception) -> bool:
    """
    Whether the failure deserves an alert rather than a log line.

    Example:
        >>> should_alert(PersistenceConflictError("user-1", 2, 3))
        False
        >>> should_alert(KeyError("boom"))
        True
    """
    return get_error_severity(exc) in (ErrorSeverity.ERROR, ErrorSeverity.CRITICAL)
