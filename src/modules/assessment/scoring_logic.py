"""
Onboarding assessment scoring.

Pure scoring of the onboarding questionnaire into a severity score, a
confidence score (both 1-100), a behavioural profile and the program
emphasis that profile implies.

Severity
    base by self-reported severity (mild 25 / moderate 50 / severe 75)
    + 4 per distinct stuttering type
    + 3 per avoidance behaviour
    + speaking-frequency adjustment (rarely +10 ... daily -5)
    + 5 with more than 5 feared situations, else +2 with more than 3

Confidence
    mean situation rating (1-5) rescaled to 0-100, 50 without ratings,
    - 4 per avoidance behaviour

Profile (first match)
    avoidance-heavy -> anxiety-heavy -> technique-ready -> balanced
"""

from __future__ import annotations

import math
from types import MappingProxyType
from typing import Final, Mapping, Optional

from src.database.models.enums import (
    AssessmentProfile,
    SeverityLevel,
    SpeakingFrequency,
)
from src.domain.models.assessment import (
    AssessmentInput,
    AssessmentScoreResult,
    RecommendedEmphasis,
)
from src.modules.shared.constants import (
    ANXIETY_HEAVY_MAX_CONFIDENCE,
    AVOIDANCE_HEAVY_MAX_CONFIDENCE,
    AVOIDANCE_HEAVY_MIN_BEHAVIORS,
    CONFIDENCE_DEFAULT,
    CONFIDENCE_PENALTY_PER_AVOIDANCE,
    CONFIDENCE_RATING_MAX,
    CONFIDENCE_RATING_MIN,
    EMPHASIS_BY_PROFILE,
    FEARED_SITUATIONS_HIGH,
    FEARED_SITUATIONS_HIGH_BONUS,
    FEARED_SITUATIONS_MID,
    FEARED_SITUATIONS_MID_BONUS,
    SCORE_MAX,
    SCORE_MIN,
    SEVERITY_BASE_SCORES,
    SEVERITY_DEFAULT_BASE,
    SEVERITY_LABEL_MILD_MAX,
    SEVERITY_LABEL_MODERATE_MAX,
    SEVERITY_PER_AVOIDANCE_BEHAVIOR,
    SEVERITY_PER_STUTTERING_TYPE,
    SPEAKING_FREQUENCY_ADJUSTMENTS,
    TECHNIQUE_READY_MAX_SEVERITY,
    TECHNIQUE_READY_MIN_CONFIDENCE,
)
from src.modules.shared.formulas import clamp, mean_or_default, round_half_up

PROFILE_DESCRIPTIONS: Final[Mapping[AssessmentProfile, str]] = MappingProxyType(
    {
        AssessmentProfile.AVOIDANCE_HEAVY: (
            "You tend to avoid speaking situations. Your program emphasizes gradual "
            "exposure and confidence building alongside speech techniques."
        ),
        AssessmentProfile.ANXIETY_HEAVY: (
            "Speaking anxiety is your main challenge. Your program includes extra "
            "mindfulness and CBT modules alongside core techniques."
        ),
        AssessmentProfile.TECHNIQUE_READY: (
            "You're ready to dive into techniques. Your program focuses heavily on "
            "speech modification skills with progressive real-world practice."
        ),
        AssessmentProfile.BALANCED: (
            "You have a well-rounded profile. Your program balances technique "
            "practice, confidence building, and real-world exposure evenly."
        ),
    }
)


def _lookup_enum(enum_cls, value: Optional[str]):
    if value is None:
        return None
    try:
        return enum_cls(value)
    except ValueError:
        return None


# ============================================================================
# SCORES
# ============================================================================


def calculate_severity_score(answers: AssessmentInput) -> int:
    """
    Severity score in [1, 100].

    Example:
        >>> calculate_severity_score(AssessmentInput(severity="mild"))
        25
    """
    severity = _lookup_enum(SeverityLevel, answers.severity)
    score = SEVERITY_BASE_SCORES.get(severity, SEVERITY_DEFAULT_BASE)

    score += len(set(answers.stuttering_types)) * SEVERITY_PER_STUTTERING_TYPE
    score += len(answers.avoidance_behaviors) * SEVERITY_PER_AVOIDANCE_BEHAVIOR

    frequency = _lookup_enum(SpeakingFrequency, answers.speaking_frequency)
    score += SPEAKING_FREQUENCY_ADJUSTMENTS.get(frequency, 0)

    feared = len(answers.feared_situations)
    if feared > FEARED_SITUATIONS_HIGH:
        score += FEARED_SITUATIONS_HIGH_BONUS
    elif feared > FEARED_SITUATIONS_MID:
        score += FEARED_SITUATIONS_MID_BONUS

    return clamp(score, SCORE_MIN, SCORE_MAX)


def calculate_confidence_score(answers: AssessmentInput) -> int:
    """
    Confidence score in [1, 100].

    Example:
        >>> calculate_confidence_score(AssessmentInput(confidence_ratings={"phone": 3}))
        50
    """
    # non-finite ratings carry no information
    ratings = [
        rating
        for rating in answers.confidence_ratings.values()
        if isinstance(rating, (int, float)) and math.isfinite(rating)
    ]
    penalty = len(answers.avoidance_behaviors) * CONFIDENCE_PENALTY_PER_AVOIDANCE
    if ratings:
        average = mean_or_default(ratings)
        span = CONFIDENCE_RATING_MAX - CONFIDENCE_RATING_MIN
        rescaled = (average - CONFIDENCE_RATING_MIN) / span * 100
        # outside these bounds the final clamp decides alone; keeps huge ratings finite
        rescaled = clamp(rescaled, SCORE_MIN - SCORE_MAX, SCORE_MAX + penalty)
        score = round_half_up(rescaled)
    else:
        score = CONFIDENCE_DEFAULT

    score -= penalty
    return clamp(score, SCORE_MIN, SCORE_MAX)


# ============================================================================
# PROFILE & EMPHASIS
# ============================================================================


def determine_profile(
    confidence_score: int, avoidance_count: int, severity_score: int
) -> AssessmentProfile:
    """
    Behavioural profile; every input maps to exactly one profile.

    Example:
        >>> determine_profile(35, 3, 50)
        <AssessmentProfile.AVOIDANCE_HEAVY: 'avoidance-heavy'>
    """
    if (
        avoidance_count >= AVOIDANCE_HEAVY_MIN_BEHAVIORS
        and confidence_score < AVOIDANCE_HEAVY_MAX_CONFIDENCE
    ):
        return AssessmentProfile.AVOIDANCE_HEAVY
    if confidence_score < ANXIETY_HEAVY_MAX_CONFIDENCE:
        return AssessmentProfile.ANXIETY_HEAVY
    if (
        confidence_score > TECHNIQUE_READY_MIN_CONFIDENCE
        and severity_score < TECHNIQUE_READY_MAX_SEVERITY
    ):
        return AssessmentProfile.TECHNIQUE_READY
    return AssessmentProfile.BALANCED


def emphasis_for_profile(profile: AssessmentProfile) -> RecommendedEmphasis:
    fs, mod, cbt = EMPHASIS_BY_PROFILE[AssessmentProfile(profile)]
    return RecommendedEmphasis(fluency_shaping=fs, stuttering_modification=mod, cbt=cbt)


def severity_label(severity_score: int) -> SeverityLevel:
    """Coarse label for a severity score: <=33 mild, <=66 moderate, else severe."""
    if severity_score <= SEVERITY_LABEL_MILD_MAX:
        return SeverityLevel.MILD
    if severity_score <= SEVERITY_LABEL_MODERATE_MAX:
        return SeverityLevel.MODERATE
    return SeverityLevel.SEVERE


def profile_description(profile: AssessmentProfile) -> str:
    """User-facing explanation of a profile."""
    return PROFILE_DESCRIPTIONS[AssessmentProfile(profile)]


def score_assessment(answers: AssessmentInput) -> AssessmentScoreResult:
    """
    Score a completed questionnaire.

    Args:
        answers: Normalised questionnaire answers

    Returns:
        AssessmentScoreResult

    Example:
        >>> result = score_assessment(AssessmentInput(severity="severe"))
        >>> result.severity_score, result.profile.value
        (75, 'balanced')
    """
    severity = calculate_severity_score(answers)
    confidence = calculate_confidence_score(answers)
    profile = determine_profile(confidence, len(answers.avoidance_behaviors), severity)

    return AssessmentScoreResult(
        severity_score=severity,
        confidence_score=confidence,
        profile=profile,
        recommended_emphasis=emphasis_for_profile(profile),
        severity_label=severity_label(severity),
    )
