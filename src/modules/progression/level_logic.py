"""
Level curve.

Maps cumulative XP to a level, a display title and the progress towards the
next level. Thresholds follow ``round_half_up(50 * (N - 1) ** 1.8)`` with
level 1 starting at 0 XP, capped at level 13.

    Level:  1   2    3    4    5    6  ...
    XP:     0  50  174  361  606  906  ...
"""

from __future__ import annotations

from typing import List

from src.domain.models.progression import LevelInfo
from src.modules.shared.constants import (
    LEVEL_TITLES,
    LEVEL_XP_BASE,
    LEVEL_XP_EXPONENT,
    MAX_LEVEL,
)
from src.modules.shared.formulas import round_half_up


def xp_required_for_level(level: int) -> int:
    """
    Cumulative XP at which ``level`` starts.

    Args:
        level: Target level (values below 2 start at 0)

    Returns:
        XP threshold

    Example:
        >>> xp_required_for_level(2)
        50
        >>> xp_required_for_level(5)
        606
    """
    if level <= 1:
        return 0
    return round_half_up(LEVEL_XP_BASE * (level - 1) ** LEVEL_XP_EXPONENT)


def level_thresholds() -> List[int]:
    """Thresholds for levels 1..MAX_LEVEL."""
    return [xp_required_for_level(level) for level in range(1, MAX_LEVEL + 1)]


def title_for_level(level: int) -> str:
    """Display title; levels past the table reuse the last title."""
    index = min(max(level, 1), len(LEVEL_TITLES)) - 1
    return LEVEL_TITLES[index]


def level_for_xp(total_xp: int) -> LevelInfo:
    """
    Derive level, title and progress from cumulative XP.

    Negative XP is treated as 0. At the top level the "next" threshold is
    that of the level beyond the cap, and progress saturates at 100.

    Args:
        total_xp: Cumulative XP

    Returns:
        LevelInfo for the XP total

    Example:
        >>> info = level_for_xp(112)
        >>> info.level, info.progress_percent
        (2, 50)
    """
    xp = max(0, int(total_xp))

    level = 1
    for candidate in range(2, MAX_LEVEL + 1):
        if xp_required_for_level(candidate) > xp:
            break
        level = candidate

    current_threshold = xp_required_for_level(level)
    next_threshold = xp_required_for_level(level + 1)
    span = next_threshold - current_threshold

    if span <= 0:
        progress = 100
    else:
        progress = min(100, round_half_up(100 * (xp - current_threshold) / span))

    return LevelInfo(
        level=level,
        title=title_for_level(level),
        current_xp=xp,
        xp_for_current_level=current_threshold,
        xp_for_next_level=next_threshold,
        progress_percent=progress,
    )
