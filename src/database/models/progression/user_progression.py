"""
User Progression Model
======================

Per-user practice continuity and experience tracking.

Schema-only representation of:
- Streak state (current, longest, freeze tokens, last practice day)
- Experience and the denormalised level column
- Lifetime practice counters
- Earned achievements and the program day
- Compare-and-swap version

The level column is a query convenience; it is always rewritten from
``total_xp`` by the repository and never read back as a source of truth.
All behavior and rules live in service/domain layers.
"""

from __future__ import annotations

from datetime import date
from typing import List, Optional

from sqlalchemy import BigInteger, CheckConstraint, Date, Index, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from src.core.database.base import Base, IdMixin, TimestampMixin


class UserProgressionModel(Base, IdMixin, TimestampMixin):
    """
    One row per user holding streak and XP state.

    Written only through a version-checked UPDATE so concurrent sessions for
    the same user cannot interleave.
    """

    # ========================================================================
    # TABLE CONFIGURATION
    # ========================================================================

    __tablename__ = "user_progression"
    __table_args__ = (
        Index("ix_user_progression_level", "level"),
        Index("ix_user_progression_current_streak", "current_streak"),
        CheckConstraint("current_streak >= 0", name="current_streak_non_negative"),
        CheckConstraint("longest_streak >= current_streak", name="longest_covers_current"),
        CheckConstraint("streak_freeze_tokens >= 0", name="freeze_tokens_non_negative"),
        CheckConstraint("total_xp >= 0", name="total_xp_non_negative"),
        CheckConstraint("current_day >= 1", name="current_day_positive"),
    )

    # ========================================================================
    # IDENTITY & CONCURRENCY
    # ========================================================================

    user_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        doc="Opaque user identifier issued by the auth provider",
    )

    version: Mapped[int] = mapped_column(
        nullable=False,
        default=1,
        doc="Optimistic locking version for concurrent updates",
    )

    # ========================================================================
    # STREAK
    # ========================================================================

    current_streak: Mapped[int] = mapped_column(
        nullable=False,
        default=0,
        doc="Consecutive practice days ending at last_practice_date",
    )

    longest_streak: Mapped[int] = mapped_column(
        nullable=False,
        default=0,
        doc="Best streak ever reached",
    )

    streak_freeze_tokens: Mapped[int] = mapped_column(
        nullable=False,
        default=0,
        doc="Credits that each forgive one missed day",
    )

    last_practice_date: Mapped[Optional[date]] = mapped_column(
        Date,
        nullable=True,
        doc="Calendar day of the most recent completed session",
    )

    # ========================================================================
    # EXPERIENCE
    # ========================================================================

    total_xp: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
        doc="Cumulative experience points (never decreases)",
    )

    level: Mapped[int] = mapped_column(
        nullable=False,
        default=1,
        doc="Level derived from total_xp at write time (denormalised)",
    )

    # ========================================================================
    # LIFETIME COUNTERS
    # ========================================================================

    total_practice_seconds: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
        doc="Total seconds of completed practice",
    )

    total_exercises_completed: Mapped[int] = mapped_column(
        nullable=False,
        default=0,
        doc="Number of completed sessions",
    )

    # ========================================================================
    # ACHIEVEMENTS & PROGRAM
    # ========================================================================

    achievements: Mapped[List[str]] = mapped_column(
        JSONB,
        nullable=False,
        default=list,
        doc="Earned achievement ids in unlock order",
    )

    current_day: Mapped[int] = mapped_column(
        nullable=False,
        default=1,
        doc="1-based day of the practice program",
    )

    def __repr__(self) -> str:
        return (
            f"<UserProgressionModel(user_id={self.user_id!r}, "
            f"streak={self.current_streak}, xp={self.total_xp}, "
            f"version={self.version})>"
        )
