"""
Streak engine.

Pure rules that turn the previous practice day and a new session into the
next streak value, spending at most one freeze token to bridge a single
missed day.

Rules, first match wins:
1. No previous practice day -> streak 1
2. Same calendar day -> unchanged
3. Next calendar day -> +1
4. Exactly one missed day and a freeze token available -> +1, token spent
5. Anything else (longer gaps, or a session dated before the previous one)
   -> streak 1

``longest_streak`` is not handled here; callers keep
``max(longest, new_streak)``.
"""

from __future__ import annotations

from datetime import date, datetime, timezone, tzinfo
from typing import Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from src.domain.models.progression import StreakResult
from src.modules.shared.constants import (
    STREAK_CONSECUTIVE_GAP_DAYS,
    STREAK_FREEZE_GAP_DAYS,
)

PracticeMoment = Union[date, datetime]


def _resolve_timezone(tz: Union[str, tzinfo, None]) -> tzinfo:
    if tz is None:
        return timezone.utc
    if isinstance(tz, tzinfo):
        return tz
    if tz.upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(tz)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown streak timezone: {tz!r}") from exc


def to_practice_day(
    moment: PracticeMoment, tz: Union[str, tzinfo, None] = None
) -> date:
    """
    Normalise a practice moment to the calendar day it counts for.

    Args:
        moment: A date, a naive datetime or a timezone-aware datetime
        tz: Zone used for aware datetimes (name or tzinfo, default UTC)

    Returns:
        The calendar date

    Example:
        >>> to_practice_day(datetime(2024, 3, 1, 23, 30))
        datetime.date(2024, 3, 1)
        >>> to_practice_day(
        ...     datetime(2024, 3, 1, 23, 30, tzinfo=timezone.utc), "Asia/Tokyo"
        ... )
        datetime.date(2024, 3, 2)
    """
    # datetime is a subclass of date, check it first
    if isinstance(moment, datetime):
        if moment.tzinfo is None or moment.utcoffset() is None:
            return moment.date()
        return moment.astimezone(_resolve_timezone(tz)).date()
    return moment


def compute_streak(
    prior_streak: int,
    prior_freeze_tokens: int,
    last_practice_date: Optional[PracticeMoment],
    practice_date: PracticeMoment,
    tz: Union[str, tzinfo, None] = None,
) -> StreakResult:
    """
    Compute the streak after one completed session.

    A second session on the same day keeps the streak. The floor of 1 only
    matters for a stored streak of 0 with a practice date set, which
    recorded sessions never produce; it guards hand-edited or migrated rows.

    Args:
        prior_streak: Streak before this session
        prior_freeze_tokens: Freeze tokens held before this session
        last_practice_date: Previous practice day, None for a first session
        practice_date: When this session happened
        tz: Zone used to normalise aware datetimes

    Returns:
        StreakResult with the new streak, whether a token was spent, the
        day gap and whether the session was out of order

    Example:
        >>> compute_streak(10, 2, date(2024, 1, 1), date(2024, 1, 3)).new_streak
        11
        >>> compute_streak(10, 0, date(2024, 1, 1), date(2024, 1, 3)).new_streak
        1
    """
    if last_practice_date is None:
        return StreakResult(new_streak=1, freeze_consumed=False)

    practice_day = to_practice_day(practice_date, tz)
    last_day = to_practice_day(last_practice_date, tz)
    days_since_last = (practice_day - last_day).days

    if days_since_last == 0:
        return StreakResult(
            new_streak=max(prior_streak, 1),
            freeze_consumed=False,
            days_since_last=0,
        )

    if days_since_last == STREAK_CONSECUTIVE_GAP_DAYS:
        return StreakResult(
            new_streak=prior_streak + 1,
            freeze_consumed=False,
            days_since_last=days_since_last,
        )

    if days_since_last == STREAK_FREEZE_GAP_DAYS and prior_freeze_tokens > 0:
        return StreakResult(
            new_streak=prior_streak + 1,
            freeze_consumed=True,
            days_since_last=days_since_last,
        )

    return StreakResult(
        new_streak=1,
        freeze_consumed=False,
        days_since_last=days_since_last,
        out_of_order=days_since_last < 0,
    )
