"""
Achievement catalogue.

Badges are earned once and never revoked. Each one tests a single counter
of ``AchievementStats`` against a threshold; streak badges use the best of
the current and the longest streak so a broken streak still counts.

Counters owned by the progression record are always available. The others
(AI conversations, journals, feared words, weekly audits, stress sessions)
are supplied by the caller through ``validate_extra_stats``.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from src.domain.models.progression import (
    Achievement,
    AchievementStats,
    AchievementStatus,
)
from src.modules.shared.exceptions import ValidationError

EXTERNAL_COUNTERS: Tuple[str, ...] = (
    "ai_conversations",
    "journals",
    "feared_words_mastered",
    "weekly_audits",
    "stress_sessions",
)
EXTERNAL_FLAGS: Tuple[str, ...] = ("stress_level3_high_fluency",)

ACHIEVEMENTS: Tuple[Achievement, ...] = (
    # Getting started
    Achievement("first_steps", "First Steps", "Complete your first exercise", "exercises_completed", 1),
    Achievement("warm_up", "Warm Up", "Complete 5 exercises", "exercises_completed", 5),
    Achievement("ten_sessions", "Double Digits", "Complete 10 exercises", "exercises_completed", 10),
    # Streaks
    Achievement("streak_3", "Consistent", "3-day practice streak", "best_streak", 3),
    Achievement("streak_7", "Dedicated", "7-day practice streak", "best_streak", 7),
    Achievement("streak_14", "Two Weeks Strong", "14-day practice streak", "best_streak", 14),
    Achievement("streak_30", "Monthly Master", "30-day practice streak", "best_streak", 30),
    Achievement("streak_60", "Unstoppable", "60-day practice streak", "best_streak", 60),
    Achievement("streak_90", "Program Graduate", "90-day practice streak", "best_streak", 90),
    # Volume
    Achievement("fifty_sessions", "Half Century", "Complete 50 exercises", "exercises_completed", 50),
    Achievement("century", "Century", "Complete 100 exercises", "exercises_completed", 100),
    # Practice time
    Achievement("hour_one", "First Hour", "Practice for 1 hour total", "practice_seconds", 3600),
    Achievement("five_hours", "Dedicated Practitioner", "Practice for 5 hours total", "practice_seconds", 18000),
    Achievement("ten_hours", "Time Investor", "Practice for 10 hours total", "practice_seconds", 36000),
    # AI conversations
    Achievement("brave_caller", "Brave Caller", "Complete your first AI conversation", "ai_conversations", 1),
    Achievement("social_butterfly", "Social Butterfly", "Complete 10 AI conversations", "ai_conversations", 10),
    Achievement("conversation_pro", "Conversation Pro", "Complete 25 AI conversations", "ai_conversations", 25),
    # Feared words
    Achievement("word_warrior", "Word Warrior", "Master your first feared word", "feared_words_mastered", 1),
    Achievement("word_conqueror", "Word Conqueror", "Master 10 feared words", "feared_words_mastered", 10),
    # Journaling
    Achievement("journaler", "Journaler", "Record 7 voice journals", "journals", 7),
    # XP milestones
    Achievement("xp_500", "Rising Star", "Earn 500 XP", "total_xp", 500),
    Achievement("xp_2000", "Shining Bright", "Earn 2,000 XP", "total_xp", 2000),
    Achievement("xp_5000", "XP Legend", "Earn 5,000 XP", "total_xp", 5000),
    # Weekly clinical audits
    Achievement("clinical_scholar", "Clinical Scholar", "Complete your first weekly clinical audit", "weekly_audits", 1),
    Achievement("month_of_measurement", "Month of Measurement", "Complete 4 weekly clinical audits", "weekly_audits", 4),
    Achievement("quarter_tracker", "Quarter Tracker", "Complete 12 weekly clinical audits", "weekly_audits", 12),
    # Stress simulator
    Achievement("pressure_proof", "Pressure Proof", "Complete 5 stress simulator sessions", "stress_sessions", 5),
    Achievement("ice_under_fire", "Ice Under Fire", "Score 80+ fluency in a Level 3 stress session", "stress_level3_high_fluency", 1),
)

_BY_ID: Dict[str, Achievement] = {achievement.id: achievement for achievement in ACHIEVEMENTS}


def find_achievement(achievement_id: str) -> Optional[Achievement]:
    return _BY_ID.get(achievement_id)


def newly_unlocked(stats: AchievementStats, earned: Iterable[str]) -> List[Achievement]:
    """
    Badges whose condition ``stats`` meets and that are not yet earned.

    Returned in catalogue order.

    Example:
        >>> [a.id for a in newly_unlocked(AchievementStats(exercises_completed=5), ["first_steps"])]
        ['warm_up']
    """
    owned = set(earned)
    return [
        achievement
        for achievement in ACHIEVEMENTS
        if achievement.id not in owned and achievement.is_met(stats)
    ]


def achievement_status(earned: Iterable[str]) -> List[AchievementStatus]:
    """Every catalogue badge with whether it has been earned."""
    owned = set(earned)
    return [AchievementStatus(achievement, achievement.id in owned) for achievement in ACHIEVEMENTS]


def validate_extra_stats(extra: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """
    Check caller-supplied counters for the badges the record cannot see.

    Returns:
        Counters as non-negative ints and flags as bools

    Raises:
        ValidationError: Unknown key, negative or non-integer counter,
            non-boolean flag
    """
    if not extra:
        return {}

    cleaned: Dict[str, Any] = {}
    for key, value in extra.items():
        if key in EXTERNAL_FLAGS:
            if not isinstance(value, bool):
                raise ValidationError(key, f"expected a boolean, got {value!r}")
            cleaned[key] = value
        elif key in EXTERNAL_COUNTERS:
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ValidationError(key, f"expected a non-negative integer, got {value!r}")
            cleaned[key] = value
        else:
            raise ValidationError("extra_stats", f"Unknown achievement counter: {key!r}")
    return cleaned
