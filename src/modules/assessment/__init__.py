"""
Assessment module.

Pure onboarding scoring; ``AssessmentService`` is imported from
``.service``.
"""

from .scoring_logic import (
    PROFILE_DESCRIPTIONS,
    calculate_confidence_score,
    calculate_severity_score,
    determine_profile,
    emphasis_for_profile,
    profile_description,
    score_assessment,
    severity_label,
)

__all__ = [
    "PROFILE_DESCRIPTIONS",
    "calculate_confidence_score",
    "calculate_severity_score",
    "determine_profile",
    "emphasis_for_profile",
    "profile_description",
    "score_assessment",
    "severity_label",
]
