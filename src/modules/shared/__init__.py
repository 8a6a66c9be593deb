"""
Cadence Shared Module

Purpose
-------
Domain-level foundations shared by the progression, coaching and
assessment modules:
- Domain exceptions and error classification
- Base service and repository patterns
- Coaching constants and pure numeric helpers
- Input validators

Architecture
------------
- BaseService: Foundation for service classes (logging, config, events)
- BaseRepository: Type-safe SQL access helpers
- Domain exceptions: User-facing errors and business rule violations
- Formulas: Rounding, clamping and hashing helpers
- Validators: Boundary validation with structured error raising
- Constants: Level curve, XP schedule, weight and scoring tables

Usage
-----
    from src.modules.shared import (
        BaseService,
        ValidationError,
        round_half_up,
        validate_user_id,
    )
"""

from __future__ import annotations

# Base patterns
from .base_repository import BaseRepository
from .base_service import BaseService

# Domain exceptions
from .exceptions import (
    CadenceDomainException,
    ErrorSeverity,
    InvalidOperationError,
    NotFoundError,
    PersistenceConflictError,
    ValidationError,
    get_error_severity,
    is_transient_error,
    should_alert,
)

# Domain constants
from .constants import (
    LEVEL_TITLES,
    MAX_LEVEL,
    MIN_SESSIONS_PER_CATEGORY,
    OUTCOME_WINDOW_SIZE,
    WEIGHT_MAX,
    WEIGHT_MIN,
    WEIGHT_NEUTRAL,
    XP_BASE_REWARDS,
)

# Formulas
from .formulas import clamp, knuth_hash_fraction, mean_or_default, round_half_up

# Validators
from .validators import (
    validate_distinct_users,
    validate_non_negative_seconds,
    validate_positive_amount,
    validate_practice_moment,
    validate_program_day,
    validate_user_id,
)

__all__ = [
    # Base patterns
    "BaseService",
    "BaseRepository",
    # Exceptions
    "CadenceDomainException",
    "ErrorSeverity",
    "InvalidOperationError",
    "NotFoundError",
    "PersistenceConflictError",
    "ValidationError",
    "get_error_severity",
    "is_transient_error",
    "should_alert",
    # Constants
    "LEVEL_TITLES",
    "MAX_LEVEL",
    "MIN_SESSIONS_PER_CATEGORY",
    "OUTCOME_WINDOW_SIZE",
    "WEIGHT_MAX",
    "WEIGHT_MIN",
    "WEIGHT_NEUTRAL",
    "XP_BASE_REWARDS",
    # Formulas
    "clamp",
    "knuth_hash_fraction",
    "mean_or_default",
    "round_half_up",
    # Validators
    "validate_distinct_users",
    "validate_non_negative_seconds",
    "validate_positive_amount",
    "validate_practice_moment",
    "validate_program_day",
    "validate_user_id",
]
