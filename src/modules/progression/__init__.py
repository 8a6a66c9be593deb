"""
Progression module.

Pure engines (streak, level curve, XP schedule, achievement catalogue), the
repository interfaces with their in-memory adapters, and the per-user lock
registry.

``ProgressionService`` and the SQL adapters are imported from their own
modules (``.service``, ``.sql_repository``); they depend on the domain
aggregate, which in turn depends on the engines exported here.
"""

from .achievement_logic import ACHIEVEMENTS, achievement_status, newly_unlocked
from .level_logic import level_for_xp, level_thresholds, title_for_level, xp_required_for_level
from .locks import UserLockRegistry
from .repository import (
    InMemoryOutcomeLog,
    InMemoryProgressionRepository,
    OutcomeLogRepository,
    ProgressionRepository,
)
from .streak_logic import compute_streak, to_practice_day
from .xp_logic import calculate_xp_for_action

__all__ = [
    # Engines
    "compute_streak",
    "to_practice_day",
    "level_for_xp",
    "level_thresholds",
    "title_for_level",
    "xp_required_for_level",
    "calculate_xp_for_action",
    "ACHIEVEMENTS",
    "newly_unlocked",
    "achievement_status",
    # Persistence
    "ProgressionRepository",
    "OutcomeLogRepository",
    "InMemoryProgressionRepository",
    "InMemoryOutcomeLog",
    # Concurrency
    "UserLockRegistry",
]
