"""
Coaching value objects for Cadence.

Immutable types for the technique outcome log and what is derived from it:
per-category statistics, the outcome summary and the technique chosen for a
program day.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Tuple

from src.database.models.enums import ContentLevel, TechniqueCategory
from src.domain.models.base import (
    DomainValidationError,
    validate_non_negative,
    validate_range,
)

MIN_FLUENCY_RATING = 1
MAX_FLUENCY_RATING = 10

_OUTCOME_ALIASES: Dict[str, Tuple[str, ...]] = {
    "category": ("category", "techniqueCategory"),
    "confidence_delta": ("confidence_delta", "confidenceDelta"),
    "self_rated_fluency": ("self_rated_fluency", "selfRatedFluency"),
    "created_at": ("created_at", "createdAt"),
    "technique_id": ("technique_id", "techniqueId"),
    "duration_seconds": ("duration_seconds", "durationSeconds"),
}


def _pick(values: Mapping[str, Any], name: str) -> Any:
    for key in _OUTCOME_ALIASES[name]:
        if values.get(key) is not None:
            return values[key]
    return None


def _as_number(value: Any) -> Optional[float]:
    """Finite float, or None for anything that is not a usable measurement."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


@dataclass(frozen=True)
class TechniqueOutcomeRecord:
    """
    One entry of the append-only outcome log.

    Attributes
    ----------
    category : TechniqueCategory
        Technique family practiced
    confidence_delta : Optional[float]
        Confidence after minus confidence before, None when not reported
    self_rated_fluency : Optional[float]
        Self-rated fluency on a 1-10 scale, None when not reported
    created_at : datetime
        When the outcome was recorded (UTC)
    technique_id : Optional[str]
        Specific technique, e.g. "easy_onset"
    duration_seconds : Optional[int]
        Length of the practice session
    """

    category: TechniqueCategory
    confidence_delta: Optional[float] = None
    self_rated_fluency: Optional[float] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    technique_id: Optional[str] = None
    duration_seconds: Optional[int] = None

    def __post_init__(self) -> None:
        """Coerce the category and validate optional measurements."""
        if not isinstance(self.category, TechniqueCategory):
            try:
                object.__setattr__(self, "category", TechniqueCategory(self.category))
            except ValueError as exc:
                raise DomainValidationError(
                    f"Unknown technique category: {self.category!r}",
                    field="category",
                ) from exc
        if self.confidence_delta is not None and not math.isfinite(self.confidence_delta):
            raise DomainValidationError(
                f"confidence_delta must be finite, got {self.confidence_delta}",
                field="confidence_delta",
            )
        if self.self_rated_fluency is not None:
            validate_range(
                self.self_rated_fluency,
                MIN_FLUENCY_RATING,
                MAX_FLUENCY_RATING,
                "self_rated_fluency",
            )
        if self.duration_seconds is not None:
            validate_non_negative(self.duration_seconds, "duration_seconds")

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> TechniqueOutcomeRecord:
        """
        Build a record from a client mapping.

        Keys may be snake_case or camelCase; unknown keys are ignored and
        unreadable optional measurements count as not reported. Only the
        category is required.

        Example
        -------
        >>> TechniqueOutcomeRecord.from_mapping(
        ...     {"category": "fluency_shaping", "confidenceDelta": "1.5", "mood": "ok"}
        ... ).confidence_delta
        1.5

        Raises
        ------
        DomainValidationError
            Missing or unknown category, fluency outside 1-10
        """
        category = _pick(values, "category")
        if category is None:
            raise DomainValidationError("Outcome category is required", field="category")

        created_at = _pick(values, "created_at")
        duration = _as_number(_pick(values, "duration_seconds"))
        technique_id = _pick(values, "technique_id")

        record = dict(
            category=category,
            confidence_delta=_as_number(_pick(values, "confidence_delta")),
            self_rated_fluency=_as_number(_pick(values, "self_rated_fluency")),
            technique_id=str(technique_id) if technique_id is not None else None,
            duration_seconds=int(duration) if duration is not None else None,
        )
        if isinstance(created_at, datetime):
            record["created_at"] = created_at
        return cls(**record)


@dataclass(frozen=True)
class CategoryStatistics:
    """Aggregated outcome statistics for one technique category."""

    category: TechniqueCategory
    session_count: int = 0
    avg_confidence_delta: float = 0.0
    avg_fluency_rating: float = 0.0

    @classmethod
    def empty(cls, category: TechniqueCategory) -> CategoryStatistics:
        return cls(category=category)


@dataclass(frozen=True)
class OutcomeSummary:
    """Both category statistics plus the weight they imply."""

    fluency_shaping: CategoryStatistics
    stuttering_modification: CategoryStatistics
    recommended_weight: float
    total_sessions: int


@dataclass(frozen=True)
class TechniqueChoice:
    """
    Technique offered for a given day of the program.

    Attributes
    ----------
    technique_id : str
        Catalogue id of the technique
    category : TechniqueCategory
        Family the technique belongs to
    day : int
        Program day (1-based) the choice was made for
    phase : str
        Program phase label
    content_level : ContentLevel
        Granularity of the practice material
    """

    technique_id: str
    category: TechniqueCategory
    day: int
    phase: str
    content_level: ContentLevel
