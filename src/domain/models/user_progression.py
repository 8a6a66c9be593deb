"""
User Progression Aggregate for Cadence.

Purpose
-------
Rich domain model for one user's practice continuity and experience. It
applies the streak engine and the level curve to a loaded
``UserProgressionRecord`` and queues domain events describing what changed.

Responsibilities
----------------
- Apply a completed session (streak, freeze token, XP, counters)
- Award standalone XP
- Grant, consume and transfer freeze tokens
- Unlock achievements as counters grow
- Advance the program day
- Keep ``longest_streak >= current_streak`` and XP non-decreasing
- Emit domain events for the event bus

Non-Responsibilities
--------------------
- Persistence and compare-and-swap (handled by repositories)
- Locking and retries (handled by ProgressionService)

Usage Example
-------------
>>> progression = UserProgression.from_record(record)
>>> result = progression.register_practice(date(2024, 5, 2), xp_amount=25)
>>> saved = await repository.upsert(progression.to_record(), record.version)
>>> for event in progression.clear_domain_events():
...     await event_bus.publish(event.event_name, event.payload)
"""

from __future__ import annotations

from datetime import date, tzinfo
from typing import Any, List, Mapping, Optional, Tuple, Union

from src.domain.models.base import AggregateRoot, validate_positive
from src.domain.models.progression import (
    Achievement,
    AchievementStats,
    LevelInfo,
    SessionCompletionResult,
    UserProgressionRecord,
    XpAwardResult,
)
from src.modules.progression.achievement_logic import newly_unlocked
from src.modules.progression.level_logic import level_for_xp
from src.modules.progression.streak_logic import (
    PracticeMoment,
    compute_streak,
    to_practice_day,
)
from src.modules.shared.constants import STREAK_FREEZE_COST


class UserProgression(AggregateRoot):
    """
    Progression aggregate root.

    Business Rules
    --------------
    - A session dated the same day leaves the streak unchanged
    - One freeze token bridges exactly one missed day
    - Level, title and progress are always derived from total XP
    - Negative XP amounts count as zero
    - Achievements are earned once and never revoked

    Domain Events
    -------------
    - progression.session_recorded: after every completed session
    - progression.freeze_consumed: a token bridged a missed day
    - progression.streak_anomaly: session dated before the previous one
    - progression.leveled_up: level increased
    - progression.xp_awarded: standalone XP award
    - progression.tokens_changed: freeze tokens granted, used or transferred
    - progression.achievement_unlocked: one per newly earned badge
    - progression.day_advanced: program day moved forward
    """

    def __init__(self, record: UserProgressionRecord) -> None:
        super().__init__(record.user_id)
        self._version = record.version
        self.current_streak = record.current_streak
        self.longest_streak = record.longest_streak
        self.streak_freeze_tokens = record.streak_freeze_tokens
        self.last_practice_date: Optional[date] = record.last_practice_date
        self.total_xp = record.total_xp
        self.total_practice_seconds = record.total_practice_seconds
        self.total_exercises_completed = record.total_exercises_completed
        self.achievements: Tuple[str, ...] = record.achievements
        self.current_day = record.current_day

    # ========================================================================
    # CONVERSION
    # ========================================================================

    @classmethod
    def from_record(cls, record: UserProgressionRecord) -> UserProgression:
        return cls(record)

    def to_record(self) -> UserProgressionRecord:
        """
        Snapshot the aggregate as a record.

        The version is the one the aggregate was loaded with, i.e. the
        expected version for the next compare-and-swap.
        """
        return UserProgressionRecord(
            user_id=self.id,
            current_streak=self.current_streak,
            longest_streak=self.longest_streak,
            streak_freeze_tokens=self.streak_freeze_tokens,
            last_practice_date=self.last_practice_date,
            total_xp=self.total_xp,
            total_practice_seconds=self.total_practice_seconds,
            total_exercises_completed=self.total_exercises_completed,
            achievements=self.achievements,
            current_day=self.current_day,
            version=self._version,
        )

    @property
    def version(self) -> int:
        return self._version

    @property
    def level_info(self) -> LevelInfo:
        return level_for_xp(self.total_xp)

    # ========================================================================
    # BUSINESS LOGIC - SESSIONS
    # ========================================================================

    def register_practice(
        self,
        practice_moment: PracticeMoment,
        xp_amount: int = 0,
        practice_seconds: int = 0,
        tz: Union[str, tzinfo, None] = None,
    ) -> SessionCompletionResult:
        """
        Apply one completed practice session.

        Parameters
        ----------
        practice_moment : date or datetime
            When the session happened
        xp_amount : int
            XP earned by the session (negative counts as zero)
        practice_seconds : int
            Session length added to the lifetime counter
        tz : str or tzinfo, optional
            Zone used to place aware datetimes on a calendar day

        Returns
        -------
        SessionCompletionResult
        """
        practice_day = to_practice_day(practice_moment, tz)
        streak = compute_streak(
            self.current_streak,
            self.streak_freeze_tokens,
            self.last_practice_date,
            practice_day,
        )

        previous_day = self.last_practice_date
        if streak.freeze_consumed:
            self.streak_freeze_tokens -= STREAK_FREEZE_COST
            self.add_domain_event(
                "progression.freeze_consumed",
                {
                    "user_id": self.id,
                    "tokens_remaining": self.streak_freeze_tokens,
                    "streak": streak.new_streak,
                },
            )

        if streak.out_of_order:
            self.add_domain_event(
                "progression.streak_anomaly",
                {
                    "user_id": self.id,
                    "last_practice_date": previous_day.isoformat() if previous_day else None,
                    "practice_date": practice_day.isoformat(),
                    "days_since_last": streak.days_since_last,
                },
            )

        self.current_streak = streak.new_streak
        self.longest_streak = max(self.longest_streak, streak.new_streak)
        # a replayed older session never moves the practice day backwards
        if previous_day is None or practice_day > previous_day:
            self.last_practice_date = practice_day
        self.total_practice_seconds += max(0, int(practice_seconds or 0))
        self.total_exercises_completed += 1

        old_level = self.level_info.level
        gained = self._gain_xp(xp_amount)
        level = self.level_info

        self.add_domain_event(
            "progression.session_recorded",
            {
                "user_id": self.id,
                "practice_date": practice_day.isoformat(),
                "streak": self.current_streak,
                "longest_streak": self.longest_streak,
                "freeze_consumed": streak.freeze_consumed,
                "xp_amount": gained,
                "total_xp": self.total_xp,
                "level": level.level,
            },
        )
        self._record_level_change(old_level, level)
        unlocked = self._unlock_achievements()

        return SessionCompletionResult(
            new_streak=self.current_streak,
            longest_streak=self.longest_streak,
            freeze_consumed=streak.freeze_consumed,
            new_level=level.level,
            leveled_up=level.level > old_level,
            total_xp=self.total_xp,
            out_of_order=streak.out_of_order,
            achievements_unlocked=tuple(a.id for a in unlocked),
        )

    # ========================================================================
    # BUSINESS LOGIC - EXPERIENCE
    # ========================================================================

    def add_experience(self, amount: int, source: str = "unspecified") -> XpAwardResult:
        """
        Award XP outside of a practice session.

        Examples
        --------
        >>> progression.add_experience(75, source="daily_challenge").new_total
        75
        """
        old_level = self.level_info.level
        gained = self._gain_xp(amount)
        level = self.level_info

        self.add_domain_event(
            "progression.xp_awarded",
            {
                "user_id": self.id,
                "amount": gained,
                "source": source,
                "new_total": self.total_xp,
            },
        )
        self._record_level_change(old_level, level)
        unlocked = self._unlock_achievements()

        return XpAwardResult(
            new_total=self.total_xp,
            leveled_up=level.level > old_level,
            new_level=level.level,
            achievements_unlocked=tuple(a.id for a in unlocked),
        )

    def _gain_xp(self, amount: int) -> int:
        gained = max(0, int(amount or 0))
        self.total_xp += gained
        return gained

    def _record_level_change(self, old_level: int, level: LevelInfo) -> None:
        if level.level > old_level:
            self.add_domain_event(
                "progression.leveled_up",
                {
                    "user_id": self.id,
                    "old_level": old_level,
                    "new_level": level.level,
                    "title": level.title,
                    "total_xp": self.total_xp,
                },
            )

    # ========================================================================
    # BUSINESS LOGIC - ACHIEVEMENTS
    # ========================================================================

    def check_achievements(self, extra: Optional[Mapping[str, Any]] = None) -> List[Achievement]:
        """
        Unlock every badge the current counters meet.

        ``extra`` carries counters the record does not track itself (e.g.
        ``{"journals": 7}``); it must already be validated.
        """
        return self._unlock_achievements(extra)

    def _achievement_stats(self, extra: Optional[Mapping[str, Any]] = None) -> AchievementStats:
        return AchievementStats(
            exercises_completed=self.total_exercises_completed,
            current_streak=self.current_streak,
            longest_streak=self.longest_streak,
            total_xp=self.total_xp,
            practice_seconds=self.total_practice_seconds,
            **(extra or {}),
        )

    def _unlock_achievements(
        self, extra: Optional[Mapping[str, Any]] = None
    ) -> List[Achievement]:
        unlocked = newly_unlocked(self._achievement_stats(extra), self.achievements)
        if not unlocked:
            return []

        self.achievements = self.achievements + tuple(a.id for a in unlocked)
        for achievement in unlocked:
            self.add_domain_event(
                "progression.achievement_unlocked",
                {
                    "user_id": self.id,
                    "achievement_id": achievement.id,
                    "title": achievement.title,
                    "description": achievement.description,
                },
            )
        return unlocked

    # ========================================================================
    # BUSINESS LOGIC - PROGRAM DAY
    # ========================================================================

    def advance_day(self) -> int:
        """Move to the next program day and return it."""
        self.current_day += 1
        self.add_domain_event(
            "progression.day_advanced",
            {"user_id": self.id, "current_day": self.current_day},
        )
        return self.current_day

    # ========================================================================
    # BUSINESS LOGIC - FREEZE TOKENS
    # ========================================================================

    def grant_freeze_tokens(self, count: int = 1, reason: str = "grant") -> int:
        """Add ``count`` freeze tokens and return the new balance."""
        validate_positive(count, "count")
        self.streak_freeze_tokens += count
        self._record_tokens_changed(count, reason)
        return self.streak_freeze_tokens

    def use_freeze_token(self, reason: str = "manual_use") -> bool:
        """
        Spend one freeze token.

        Returns False (and changes nothing) when the balance is zero.
        """
        if self.streak_freeze_tokens < STREAK_FREEZE_COST:
            return False
        self.streak_freeze_tokens -= STREAK_FREEZE_COST
        self._record_tokens_changed(-STREAK_FREEZE_COST, reason)
        return True

    def transfer_freeze_token_to(self, recipient: UserProgression) -> bool:
        """
        Give one freeze token to another user.

        Returns False (and changes neither side) when the sender has none.
        """
        if not self.use_freeze_token(reason=f"gift_to:{recipient.id}"):
            return False
        recipient.grant_freeze_tokens(STREAK_FREEZE_COST, reason=f"gift_from:{self.id}")
        return True

    def _record_tokens_changed(self, delta: int, reason: str) -> None:
        self.add_domain_event(
            "progression.tokens_changed",
            {
                "user_id": self.id,
                "delta": delta,
                "balance": self.streak_freeze_tokens,
                "reason": reason,
            },
        )

    def __repr__(self) -> str:
        return (
            f"<UserProgression(user_id={self.id!r}, streak={self.current_streak}, "
            f"xp={self.total_xp}, tokens={self.streak_freeze_tokens})>"
        )
