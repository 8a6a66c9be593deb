"""
Progression value objects for Cadence.

Purpose
-------
Immutable types exchanged between the streak engine, the level curve, the
progression repositories and ``ProgressionService``.

- ``UserProgressionRecord``: the persisted per-user state
- ``StreakResult``: output of the streak engine
- ``LevelInfo``: output of the level curve, always derived from total XP
- ``Achievement`` / ``AchievementStats``: badge definitions and the counters they test
- ``ProgressionSnapshot``: record plus its derived level
- ``SessionCompletionResult`` / ``XpAwardResult``: service results

Level, title and progress are never stored as a source of truth; callers
get them through ``ProgressionSnapshot`` which recomputes on construction.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from typing import Any, Dict, Iterable, Optional, Tuple

from src.domain.models.base import (
    DomainValidationError,
    validate_non_negative,
    validate_not_empty,
    validate_positive,
    validate_range,
)


# ============================================================================
# ENGINE OUTPUTS
# ============================================================================


@dataclass(frozen=True)
class StreakResult:
    """
    Next streak state for one completed session.

    Attributes
    ----------
    new_streak : int
        Streak after the session, always >= 1
    freeze_consumed : bool
        Whether exactly one freeze token bridged a missed day
    days_since_last : Optional[int]
        Calendar-day gap from the previous practice day, None on first session
    out_of_order : bool
        True when the session is dated before the previous practice day
    """

    new_streak: int
    freeze_consumed: bool
    days_since_last: Optional[int] = None
    out_of_order: bool = False

    def __post_init__(self) -> None:
        validate_positive(self.new_streak, "new_streak")


@dataclass(frozen=True)
class LevelInfo:
    """
    Level, title and progress derived from cumulative XP.

    Attributes
    ----------
    level : int
        Current level (1-based)
    title : str
        Display title for the level
    current_xp : int
        Cumulative XP the level was derived from
    xp_for_current_level : int
        Threshold at which the current level starts
    xp_for_next_level : int
        Threshold of the following level
    progress_percent : int
        Progress between the two thresholds, 0-100
    """

    level: int
    title: str
    current_xp: int
    xp_for_current_level: int
    xp_for_next_level: int
    progress_percent: int

    def __post_init__(self) -> None:
        validate_positive(self.level, "level")
        validate_range(self.progress_percent, 0, 100, "progress_percent")


# ============================================================================
# ACHIEVEMENTS
# ============================================================================


@dataclass(frozen=True)
class AchievementStats:
    """
    Counters an achievement can be earned on.

    The first five come from the progression record. The rest are tracked
    by other parts of the app and passed in when they change; they count
    as zero otherwise.
    """

    exercises_completed: int = 0
    current_streak: int = 0
    longest_streak: int = 0
    total_xp: int = 0
    practice_seconds: int = 0
    ai_conversations: int = 0
    journals: int = 0
    feared_words_mastered: int = 0
    weekly_audits: int = 0
    stress_sessions: int = 0
    stress_level3_high_fluency: bool = False

    @property
    def best_streak(self) -> int:
        return max(self.current_streak, self.longest_streak)

    def value(self, metric: str) -> int:
        return int(getattr(self, metric))


@dataclass(frozen=True)
class Achievement:
    """A badge earned once ``metric`` reaches ``threshold``."""

    id: str
    title: str
    description: str
    metric: str
    threshold: int

    def is_met(self, stats: AchievementStats) -> bool:
        return stats.value(self.metric) >= self.threshold


@dataclass(frozen=True)
class AchievementStatus:
    achievement: Achievement
    unlocked: bool


# ============================================================================
# PERSISTED STATE
# ============================================================================


def _unique_ids(ids: Iterable[str]) -> Tuple[str, ...]:
    return tuple(dict.fromkeys(str(achievement_id) for achievement_id in ids))


@dataclass(frozen=True)
class UserProgressionRecord:
    """
    Per-user progression state as stored by the repositories.

    ``version`` is the compare-and-swap token: 0 means the record has never
    been persisted, and every successful write increments it by one.
    ``achievements`` holds earned badge ids in the order they were earned.
    ``current_day`` is the 1-based day of the practice program.
    """

    user_id: str
    current_streak: int = 0
    longest_streak: int = 0
    streak_freeze_tokens: int = 0
    last_practice_date: Optional[date] = None
    total_xp: int = 0
    total_practice_seconds: int = 0
    total_exercises_completed: int = 0
    achievements: Tuple[str, ...] = ()
    current_day: int = 1
    version: int = 0

    def __post_init__(self) -> None:
        """Validate record invariants on creation."""
        validate_not_empty(self.user_id, "user_id")
        validate_non_negative(self.current_streak, "current_streak")
        validate_non_negative(self.streak_freeze_tokens, "streak_freeze_tokens")
        validate_non_negative(self.total_xp, "total_xp")
        validate_non_negative(self.total_practice_seconds, "total_practice_seconds")
        validate_non_negative(self.total_exercises_completed, "total_exercises_completed")
        validate_non_negative(self.version, "version")
        validate_positive(self.current_day, "current_day")
        object.__setattr__(self, "achievements", _unique_ids(self.achievements))
        if self.longest_streak < self.current_streak:
            raise DomainValidationError(
                f"longest_streak ({self.longest_streak}) cannot be below "
                f"current_streak ({self.current_streak})",
                field="longest_streak",
            )

    @classmethod
    def new(cls, user_id: str) -> UserProgressionRecord:
        """Default record for a user seen for the first time."""
        return cls(user_id=user_id)

    @property
    def is_persisted(self) -> bool:
        return self.version > 0

    def with_version(self, version: int) -> UserProgressionRecord:
        return replace(self, version=version)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "current_streak": self.current_streak,
            "longest_streak": self.longest_streak,
            "streak_freeze_tokens": self.streak_freeze_tokens,
            "last_practice_date": (
                self.last_practice_date.isoformat() if self.last_practice_date else None
            ),
            "total_xp": self.total_xp,
            "total_practice_seconds": self.total_practice_seconds,
            "total_exercises_completed": self.total_exercises_completed,
            "achievements": list(self.achievements),
            "current_day": self.current_day,
            "version": self.version,
        }


@dataclass(frozen=True)
class ProgressionSnapshot:
    """A progression record together with the level derived from its XP."""

    record: UserProgressionRecord
    level_info: LevelInfo

    @property
    def user_id(self) -> str:
        return self.record.user_id

    @property
    def level(self) -> int:
        return self.level_info.level

    @property
    def level_title(self) -> str:
        return self.level_info.title

    @property
    def level_progress_percent(self) -> int:
        return self.level_info.progress_percent


# ============================================================================
# SERVICE RESULTS
# ============================================================================


@dataclass(frozen=True)
class SessionCompletionResult:
    """Outcome of recording one completed practice session."""

    new_streak: int
    longest_streak: int
    freeze_consumed: bool
    new_level: int
    leveled_up: bool
    total_xp: int
    out_of_order: bool = False
    achievements_unlocked: Tuple[str, ...] = ()


@dataclass(frozen=True)
class XpAwardResult:
    """Outcome of a standalone XP award."""

    new_total: int
    leveled_up: bool
    new_level: int
    achievements_unlocked: Tuple[str, ...] = ()
