"""
XP schedule.

Base XP per practice action, plus a per-minute bonus for timed actions.
The result is what callers pass as ``xp_amount`` to
``ProgressionService.record_session_completion`` or ``award_xp``.
"""

from __future__ import annotations

from typing import Optional, Union

from src.database.models.enums import XpAction
from src.modules.shared.constants import (
    XP_BASE_REWARDS,
    XP_DURATION_BONUS_ACTIONS,
    XP_PER_PRACTICE_MINUTE,
)
from src.modules.shared.exceptions import ValidationError
from src.modules.shared.formulas import round_half_up


def calculate_xp_for_action(
    action: Union[XpAction, str], duration_seconds: Optional[float] = None
) -> int:
    """
    XP earned for one practice action.

    Args:
        action: XpAction or its string value
        duration_seconds: Length of the activity; only timed actions use it

    Returns:
        XP amount (never below the action's base)

    Raises:
        ValidationError: Unknown action

    Example:
        >>> calculate_xp_for_action("exercise_complete", 120)
        25
        >>> calculate_xp_for_action(XpAction.WEEKLY_AUDIT)
        100
    """
    try:
        action = XpAction(action)
    except ValueError as exc:
        raise ValidationError("action", f"Unknown XP action: {action!r}") from exc

    xp = XP_BASE_REWARDS[action]
    if action in XP_DURATION_BONUS_ACTIONS and duration_seconds and duration_seconds > 0:
        xp += round_half_up(duration_seconds / 60 * XP_PER_PRACTICE_MINUTE)
    return xp
