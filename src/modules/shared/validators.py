"""
Cadence Domain Validators

Purpose
-------
Validate service inputs at the boundary and raise structured domain
exceptions (``ValidationError``, ``InvalidOperationError``) so callers get
a consistent error shape regardless of which engine rejected the input.

Design Notes
------------
Validators:
- Accept the data to validate as parameters
- Raise on failure, return the (possibly normalised) value on success
- Never touch persistence

Usage
-----
    from src.modules.shared.validators import validate_user_id

    user_id = validate_user_id(raw_user_id)
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional, Union

from .exceptions import InvalidOperationError, ValidationError


def validate_user_id(user_id: Any) -> str:
    """
    Ensure a user id is a non-blank string.

    Args:
        user_id: Candidate identifier

    Returns:
        The identifier with surrounding whitespace removed

    Raises:
        ValidationError: If the id is missing, not a string or blank
    """
    if not isinstance(user_id, str) or not user_id.strip():
        raise ValidationError("user_id", "user_id must be a non-empty string")
    return user_id.strip()


def validate_positive_amount(amount: Any, field: str = "amount") -> int:
    """
    Ensure an amount is an integer greater than zero.

    Raises:
        ValidationError: If the amount is not a positive int (bools rejected)
    """
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise ValidationError(field, f"{field} must be a positive integer, got {amount!r}")
    return amount


def validate_non_negative_seconds(seconds: Optional[Any], field: str = "duration_seconds") -> int:
    """
    Normalise an optional duration; None counts as zero.

    Raises:
        ValidationError: If the duration is negative or not numeric
    """
    if seconds is None:
        return 0
    if isinstance(seconds, bool) or not isinstance(seconds, (int, float)):
        raise ValidationError(field, f"{field} must be a number, got {seconds!r}")
    if seconds < 0:
        raise ValidationError(field, f"{field} cannot be negative, got {seconds}")
    return int(seconds)


def validate_practice_moment(moment: Any) -> Union[date, datetime]:
    """
    Ensure a practice moment is a date or datetime.

    Raises:
        ValidationError: For any other type
    """
    if not isinstance(moment, (date, datetime)):
        raise ValidationError(
            "practice_date", f"practice_date must be a date or datetime, got {type(moment).__name__}"
        )
    return moment


def validate_program_day(day: Any) -> int:
    """
    Ensure a program day is a 1-based integer.

    Raises:
        ValidationError: If the day is below 1 or not an int
    """
    if isinstance(day, bool) or not isinstance(day, int) or day < 1:
        raise ValidationError("day", f"day must be an integer >= 1, got {day!r}")
    return day


def validate_distinct_users(from_user_id: str, to_user_id: str) -> None:
    """
    Reject a transfer between a user and themselves.

    Raises:
        InvalidOperationError: If both ids are equal
    """
    if from_user_id == to_user_id:
        raise InvalidOperationError(
            "transfer_freeze_token", "cannot transfer a freeze token to the same user"
        )
