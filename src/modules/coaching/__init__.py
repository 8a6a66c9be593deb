"""
Coaching module.

Outcome aggregation, the adaptive fluency-shaping weight, and technique
planning. ``CoachingService`` is imported from ``.service``.
"""

from .outcome_logic import aggregate_category, outcome_window, summarize_outcomes
from .techniques import (
    FLUENCY_SHAPING_POOL,
    MODIFICATION_POOL,
    TECHNIQUES,
    Technique,
    get_category_for_technique,
    get_technique,
)
from .weight_logic import (
    content_level_for_day,
    maintenance_focus_label,
    phase_for_day,
    recommended_weight,
    select_technique_for_day,
    technique_id_for_day,
)

__all__ = [
    "aggregate_category",
    "outcome_window",
    "summarize_outcomes",
    "recommended_weight",
    "maintenance_focus_label",
    "content_level_for_day",
    "phase_for_day",
    "technique_id_for_day",
    "select_technique_for_day",
    "Technique",
    "TECHNIQUES",
    "FLUENCY_SHAPING_POOL",
    "MODIFICATION_POOL",
    "get_category_for_technique",
    "get_technique",
]
