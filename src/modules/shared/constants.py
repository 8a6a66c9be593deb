"""
Cadence Domain Constants

Purpose
-------
Provide domain-level constants for the coaching engine: the level curve,
streak forgiveness, the XP schedule, outcome aggregation, the adaptive
weight and onboarding scoring.

IMPORTANT:
This module contains COACHING constants only. Infrastructure concerns
(database pools, logging) belong in ``src.core.config``.

Design Notes
------------
- Values are annotated with typing.Final to signal immutability
- Grouped by engine
- Changing any of these changes user-visible scores; they are fixed
  contract values, not tunables
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Final, Mapping, Tuple

from src.database.models.enums import (
    AssessmentProfile,
    SeverityLevel,
    SpeakingFrequency,
    XpAction,
)

# ============================================================================
# LEVEL CURVE
# ============================================================================

LEVEL_XP_BASE: Final[int] = 50  # threshold(N) = round(BASE * (N-1) ^ EXPONENT)
LEVEL_XP_EXPONENT: Final[float] = 1.8

LEVEL_TITLES: Final[Tuple[str, ...]] = (
    "Beginner",
    "Getting Started",
    "Warming Up",
    "Building Momentum",
    "Finding Your Voice",
    "Confident Speaker",
    "Fluency Builder",
    "Technique Master",
    "Speech Warrior",
    "Fluency Champion",
    "Voice Virtuoso",
    "Communication Pro",
    "Speech Legend",
)

MAX_LEVEL: Final[int] = len(LEVEL_TITLES)

# ============================================================================
# STREAK
# ============================================================================

STREAK_CONSECUTIVE_GAP_DAYS: Final[int] = 1
STREAK_FREEZE_GAP_DAYS: Final[int] = 2  # exactly one missed day can be forgiven
STREAK_FREEZE_COST: Final[int] = 1

# ============================================================================
# XP SCHEDULE
# ============================================================================

XP_BASE_REWARDS: Final[Mapping[XpAction, int]] = MappingProxyType(
    {
        XpAction.EXERCISE_COMPLETE: 15,
        XpAction.AI_CONVERSATION: 30,
        XpAction.DAILY_CHALLENGE: 75,
        XpAction.WEEKLY_CHALLENGE: 150,
        XpAction.VOICE_JOURNAL: 15,
        XpAction.FEARED_WORD_PRACTICE: 10,
        XpAction.THOUGHT_RECORD: 15,
        XpAction.DAILY_PLAN_COMPLETE: 50,
        XpAction.STREAK_BONUS: 5,
        XpAction.WEEKLY_AUDIT: 100,
    }
)

XP_DURATION_BONUS_ACTIONS: Final[frozenset] = frozenset(
    {XpAction.EXERCISE_COMPLETE, XpAction.AI_CONVERSATION}
)
XP_PER_PRACTICE_MINUTE: Final[int] = 5

# ============================================================================
# OUTCOME AGGREGATION & ADAPTIVE WEIGHT
# ============================================================================

OUTCOME_WINDOW_SIZE: Final[int] = 30  # newest records considered per user
MIN_SESSIONS_PER_CATEGORY: Final[int] = 3

WEIGHT_NEUTRAL: Final[float] = 0.5
WEIGHT_MIN: Final[float] = 0.3
WEIGHT_MAX: Final[float] = 0.7
WEIGHT_DIFF_SATURATION: Final[float] = 1.5
WEIGHT_SLOPE: Final[float] = 0.0667

MAINTENANCE_FS_FOCUS_THRESHOLD: Final[float] = 0.65
MAINTENANCE_MOD_FOCUS_THRESHOLD: Final[float] = 0.35

# ============================================================================
# PROGRAM PHASES
# ============================================================================

FOUNDATION_PHASE_LAST_DAY: Final[int] = 14
INTEGRATION_PHASE_LAST_DAY: Final[int] = 30
INTEGRATION_CANCELLATION_EVERY: Final[int] = 3
MAINTENANCE_PHASE_FIRST_DAY: Final[int] = 91

CONTENT_WORDS_LAST_DAY: Final[int] = 14
CONTENT_PHRASES_LAST_DAY: Final[int] = 30
CONTENT_SENTENCES_LAST_DAY: Final[int] = 50

KNUTH_MULTIPLIER: Final[int] = 2654435761
HASH_SPACE: Final[int] = 2**32

# ============================================================================
# ONBOARDING ASSESSMENT
# ============================================================================

SCORE_MIN: Final[int] = 1
SCORE_MAX: Final[int] = 100

SEVERITY_BASE_SCORES: Final[Mapping[SeverityLevel, int]] = MappingProxyType(
    {
        SeverityLevel.MILD: 25,
        SeverityLevel.MODERATE: 50,
        SeverityLevel.SEVERE: 75,
    }
)
SEVERITY_DEFAULT_BASE: Final[int] = 50
SEVERITY_PER_STUTTERING_TYPE: Final[int] = 4
SEVERITY_PER_AVOIDANCE_BEHAVIOR: Final[int] = 3

SPEAKING_FREQUENCY_ADJUSTMENTS: Final[Mapping[SpeakingFrequency, int]] = MappingProxyType(
    {
        SpeakingFrequency.RARELY: 10,
        SpeakingFrequency.SOMETIMES: 5,
        SpeakingFrequency.OFTEN: -3,
        SpeakingFrequency.DAILY: -5,
    }
)

FEARED_SITUATIONS_HIGH: Final[int] = 5  # strictly more than this -> +5
FEARED_SITUATIONS_HIGH_BONUS: Final[int] = 5
FEARED_SITUATIONS_MID: Final[int] = 3  # strictly more than this -> +2
FEARED_SITUATIONS_MID_BONUS: Final[int] = 2

CONFIDENCE_RATING_MIN: Final[int] = 1
CONFIDENCE_RATING_MAX: Final[int] = 5
CONFIDENCE_DEFAULT: Final[int] = 50
CONFIDENCE_PENALTY_PER_AVOIDANCE: Final[int] = 4

AVOIDANCE_HEAVY_MIN_BEHAVIORS: Final[int] = 3
AVOIDANCE_HEAVY_MAX_CONFIDENCE: Final[int] = 40  # strictly below
ANXIETY_HEAVY_MAX_CONFIDENCE: Final[int] = 30  # strictly below
TECHNIQUE_READY_MIN_CONFIDENCE: Final[int] = 55  # strictly above
TECHNIQUE_READY_MAX_SEVERITY: Final[int] = 60  # strictly below

# (fluency_shaping, stuttering_modification, cbt)
EMPHASIS_BY_PROFILE: Final[Mapping[AssessmentProfile, Tuple[float, float, float]]] = (
    MappingProxyType(
        {
            AssessmentProfile.AVOIDANCE_HEAVY: (0.35, 0.30, 0.35),
            AssessmentProfile.ANXIETY_HEAVY: (0.30, 0.25, 0.45),
            AssessmentProfile.TECHNIQUE_READY: (0.45, 0.40, 0.15),
            AssessmentProfile.BALANCED: (0.40, 0.35, 0.25),
        }
    )
)

SEVERITY_LABEL_MILD_MAX: Final[int] = 33
SEVERITY_LABEL_MODERATE_MAX: Final[int] = 66
