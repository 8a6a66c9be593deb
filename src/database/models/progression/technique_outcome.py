"""
Technique Outcome Model
=======================

Append-only log of how each practiced technique went.

Rows are never updated. Readers take the newest 30 per user.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Enum, Float, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from src.core.database.base import Base, IdMixin, utc_now
from src.database.models.enums import TechniqueCategory


class TechniqueOutcomeModel(Base, IdMixin):
    """One completed technique session and its self-reported effect."""

    __tablename__ = "technique_outcomes"
    __table_args__ = (
        Index("ix_technique_outcomes_user_created", "user_id", "created_at"),
    )

    user_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        doc="Owner of the outcome",
    )

    category: Mapped[TechniqueCategory] = mapped_column(
        Enum(
            TechniqueCategory,
            name="technique_category",
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
        ),
        nullable=False,
        doc="Technique family practiced",
    )

    technique_id: Mapped[Optional[str]] = mapped_column(
        String(64),
        nullable=True,
        doc="Specific technique, e.g. 'easy_onset'",
    )

    confidence_delta: Mapped[Optional[float]] = mapped_column(
        Float,
        nullable=True,
        doc="Confidence after minus confidence before",
    )

    self_rated_fluency: Mapped[Optional[float]] = mapped_column(
        Float,
        nullable=True,
        doc="Self-rated fluency on a 1-10 scale",
    )

    duration_seconds: Mapped[Optional[int]] = mapped_column(
        nullable=True,
        doc="Length of the practice session",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        doc="When the outcome was recorded",
    )
