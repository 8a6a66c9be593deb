"""
Database Model Enums
====================

Lightweight enumerations for the coaching schema and the services that
read it. Values are the persisted strings; they double as the closed unions
used by the domain layer.
"""

from __future__ import annotations

import enum


class TechniqueCategory(str, enum.Enum):
    """The two coaching technique families tracked in the outcome log."""

    FLUENCY_SHAPING = "fluency_shaping"
    STUTTERING_MODIFICATION = "stuttering_modification"


class AssessmentProfile(str, enum.Enum):
    """Behavioural profile derived from the onboarding questionnaire."""

    AVOIDANCE_HEAVY = "avoidance-heavy"
    ANXIETY_HEAVY = "anxiety-heavy"
    TECHNIQUE_READY = "technique-ready"
    BALANCED = "balanced"


class SeverityLevel(str, enum.Enum):
    """Self-reported or derived stuttering severity."""

    MILD = "mild"
    MODERATE = "moderate"
    SEVERE = "severe"


class SpeakingFrequency(str, enum.Enum):
    """How often the user reports needing to speak in challenging situations."""

    RARELY = "rarely"
    SOMETIMES = "sometimes"
    OFTEN = "often"
    DAILY = "daily"


class XpAction(str, enum.Enum):
    """Practice actions that award experience points."""

    EXERCISE_COMPLETE = "exercise_complete"
    AI_CONVERSATION = "ai_conversation"
    DAILY_CHALLENGE = "daily_challenge"
    WEEKLY_CHALLENGE = "weekly_challenge"
    VOICE_JOURNAL = "voice_journal"
    FEARED_WORD_PRACTICE = "feared_word_practice"
    THOUGHT_RECORD = "thought_record"
    DAILY_PLAN_COMPLETE = "daily_plan_complete"
    STREAK_BONUS = "streak_bonus"
    WEEKLY_AUDIT = "weekly_audit"


class ContentLevel(str, enum.Enum):
    """Granularity of practice material for a program day."""

    WORDS = "words"
    PHRASES = "phrases"
    SENTENCES = "sentences"
    PARAGRAPHS = "paragraphs"
