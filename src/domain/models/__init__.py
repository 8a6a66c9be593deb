"""
Domain models package for Cadence.

Purpose
-------
Domain types that encapsulate the coaching engine's invariants.

Design Notes
------------
Domain models are separate from database models:
- Database models (src/database/models/): Anemic SQLAlchemy schemas
- Domain models (src/domain/models/): Validated value objects and aggregates

This package exports the base classes and value objects. The
``UserProgression`` aggregate is imported from
``src.domain.models.user_progression`` because it depends on the
progression engines in ``src.modules.progression``.
"""

from .assessment import AssessmentInput, AssessmentScoreResult, RecommendedEmphasis
from .base import (
    AggregateRoot,
    DomainEvent,
    DomainValidationError,
    validate_non_negative,
    validate_not_empty,
    validate_positive,
    validate_range,
)
from .coaching import (
    CategoryStatistics,
    OutcomeSummary,
    TechniqueChoice,
    TechniqueOutcomeRecord,
)
from .progression import (
    LevelInfo,
    ProgressionSnapshot,
    SessionCompletionResult,
    StreakResult,
    UserProgressionRecord,
    XpAwardResult,
)

__all__ = [
    # Base classes
    "AggregateRoot",
    "DomainEvent",
    "DomainValidationError",
    "validate_non_negative",
    "validate_not_empty",
    "validate_positive",
    "validate_range",
    # Progression
    "LevelInfo",
    "ProgressionSnapshot",
    "SessionCompletionResult",
    "StreakResult",
    "UserProgressionRecord",
    "XpAwardResult",
    # Coaching
    "CategoryStatistics",
    "OutcomeSummary",
    "TechniqueChoice",
    "TechniqueOutcomeRecord",
    # Assessment
    "AssessmentInput",
    "AssessmentScoreResult",
    "RecommendedEmphasis",
]
