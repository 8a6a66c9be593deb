"""
Assessment value objects for Cadence.

Immutable types for the onboarding questionnaire and its score.
``AssessmentInput.from_answers`` accepts the loose mapping a client posts
(snake_case or camelCase keys, any field may be missing) and never raises
for missing or oddly typed optional answers.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from src.database.models.enums import AssessmentProfile, SeverityLevel
from src.domain.models.base import validate_range

_ANSWER_ALIASES: Dict[str, Tuple[str, ...]] = {
    "severity": ("severity", "self_reported_severity", "selfReportedSeverity"),
    "stuttering_types": ("stuttering_types", "stutteringTypes"),
    "avoidance_behaviors": ("avoidance_behaviors", "avoidanceBehaviors"),
    "speaking_frequency": ("speaking_frequency", "speakingFrequency"),
    "feared_situations": ("feared_situations", "fearedSituations"),
    "confidence_ratings": ("confidence_ratings", "confidenceRatings"),
}


def _lookup(answers: Mapping[str, Any], name: str) -> Any:
    for key in _ANSWER_ALIASES[name]:
        if key in answers and answers[key] is not None:
            return answers[key]
    return None


def _as_tuple(value: Any) -> Tuple[str, ...]:
    if value is None or isinstance(value, (str, bytes)):
        return ()
    if isinstance(value, Iterable):
        return tuple(str(item) for item in value if item is not None)
    return ()


def _as_ratings(value: Any) -> Dict[str, float]:
    if not isinstance(value, Mapping):
        return {}
    ratings: Dict[str, float] = {}
    for situation, rating in value.items():
        if isinstance(rating, bool):
            continue
        try:
            number = float(rating)
        except (TypeError, ValueError):
            continue
        if math.isfinite(number):
            ratings[str(situation)] = number
    return ratings


@dataclass(frozen=True)
class AssessmentInput:
    """
    Onboarding questionnaire answers.

    Attributes
    ----------
    severity : Optional[str]
        Self-reported severity ("mild", "moderate", "severe")
    stuttering_types : Tuple[str, ...]
        Reported stuttering types (blocks, repetitions, ...)
    avoidance_behaviors : Tuple[str, ...]
        Reported avoidance behaviours
    speaking_frequency : Optional[str]
        How often challenging speaking situations occur
    feared_situations : Tuple[str, ...]
        Situations the user fears
    confidence_ratings : Dict[str, float]
        Situation -> confidence rating on a 1-5 scale
    """

    severity: Optional[str] = None
    stuttering_types: Tuple[str, ...] = ()
    avoidance_behaviors: Tuple[str, ...] = ()
    speaking_frequency: Optional[str] = None
    feared_situations: Tuple[str, ...] = ()
    confidence_ratings: Dict[str, float] = field(default_factory=dict)

    @classmethod
    def from_answers(cls, answers: Optional[Mapping[str, Any]]) -> AssessmentInput:
        """
        Build an input from a loose answers mapping.

        Example
        -------
        >>> AssessmentInput.from_answers({"selfReportedSeverity": "mild"}).severity
        'mild'
        """
        answers = answers or {}
        severity = _lookup(answers, "severity")
        frequency = _lookup(answers, "speaking_frequency")
        return cls(
            severity=str(severity).lower() if severity is not None else None,
            stuttering_types=_as_tuple(_lookup(answers, "stuttering_types")),
            avoidance_behaviors=_as_tuple(_lookup(answers, "avoidance_behaviors")),
            speaking_frequency=str(frequency).lower() if frequency is not None else None,
            feared_situations=_as_tuple(_lookup(answers, "feared_situations")),
            confidence_ratings=_as_ratings(_lookup(answers, "confidence_ratings")),
        )


@dataclass(frozen=True)
class RecommendedEmphasis:
    """Share of program time per therapeutic approach; sums to 1.0."""

    fluency_shaping: float
    stuttering_modification: float
    cbt: float

    def as_dict(self) -> Dict[str, float]:
        return {
            "fluency_shaping": self.fluency_shaping,
            "stuttering_modification": self.stuttering_modification,
            "cbt": self.cbt,
        }


@dataclass(frozen=True)
class AssessmentScoreResult:
    """Scored questionnaire."""

    severity_score: int
    confidence_score: int
    profile: AssessmentProfile
    recommended_emphasis: RecommendedEmphasis
    severity_label: SeverityLevel

    def __post_init__(self) -> None:
        validate_range(self.severity_score, 1, 100, "severity_score")
        validate_range(self.confidence_score, 1, 100, "confidence_score")
