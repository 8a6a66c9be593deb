"""
Adaptive weight and technique planning.

``recommended_weight`` turns the two category statistics into the share of
fluency-shaping practice, bounded to [0.3, 0.7] so neither approach is ever
dropped. The planner then uses that weight to pick a technique per program
day:

    Days  1-14   foundation: rotate the fluency-shaping pool
    Days 15-30   integration: fluency shaping, cancellation every 3rd day
    Days 31+     weighted: a deterministic hash of the day chooses the pool
"""

from __future__ import annotations

from src.database.models.enums import ContentLevel, TechniqueCategory
from src.domain.models.coaching import CategoryStatistics, TechniqueChoice
from src.modules.coaching.techniques import (
    FLUENCY_SHAPING_POOL,
    INTRODUCTORY_MODIFICATION_TECHNIQUE,
    MODIFICATION_POOL,
    get_category_for_technique,
)
from src.modules.shared.constants import (
    CONTENT_PHRASES_LAST_DAY,
    CONTENT_SENTENCES_LAST_DAY,
    CONTENT_WORDS_LAST_DAY,
    FOUNDATION_PHASE_LAST_DAY,
    INTEGRATION_CANCELLATION_EVERY,
    INTEGRATION_PHASE_LAST_DAY,
    MAINTENANCE_FS_FOCUS_THRESHOLD,
    MAINTENANCE_MOD_FOCUS_THRESHOLD,
    MAINTENANCE_PHASE_FIRST_DAY,
    MIN_SESSIONS_PER_CATEGORY,
    WEIGHT_DIFF_SATURATION,
    WEIGHT_MAX,
    WEIGHT_MIN,
    WEIGHT_NEUTRAL,
    WEIGHT_SLOPE,
)
from src.modules.shared.formulas import clamp, knuth_hash_fraction

# ============================================================================
# WEIGHT
# ============================================================================


def recommended_weight(
    fluency_shaping: CategoryStatistics, modification: CategoryStatistics
) -> float:
    """
    Share of fluency-shaping practice implied by the two categories.

    Args:
        fluency_shaping: Statistics of the fluency-shaping category
        modification: Statistics of the stuttering-modification category

    Returns:
        Weight in [0.3, 0.7]; 0.5 until both categories have 3 sessions

    Example:
        >>> fs = CategoryStatistics(FS, session_count=4, avg_confidence_delta=2.0)
        >>> mod = CategoryStatistics(MOD, session_count=3, avg_confidence_delta=1.0)
        >>> recommended_weight(fs, mod)
        0.5667
    """
    if (
        fluency_shaping.session_count < MIN_SESSIONS_PER_CATEGORY
        or modification.session_count < MIN_SESSIONS_PER_CATEGORY
    ):
        return WEIGHT_NEUTRAL

    diff = fluency_shaping.avg_confidence_delta - modification.avg_confidence_delta

    if diff > WEIGHT_DIFF_SATURATION:
        return WEIGHT_MAX
    if diff < -WEIGHT_DIFF_SATURATION:
        return WEIGHT_MIN
    return clamp(WEIGHT_NEUTRAL + diff * WEIGHT_SLOPE, WEIGHT_MIN, WEIGHT_MAX)


def maintenance_focus_label(weight: float) -> str:
    """
    Phase label shown once the curated program is over.

    Example:
        >>> maintenance_focus_label(0.7)
        'Maintenance: Fluency Shaping Focus'
    """
    if weight >= MAINTENANCE_FS_FOCUS_THRESHOLD:
        return "Maintenance: Fluency Shaping Focus"
    if weight <= MAINTENANCE_MOD_FOCUS_THRESHOLD:
        return "Maintenance: Modification Focus"
    return "Maintenance: Balanced"


# ============================================================================
# PLANNING
# ============================================================================


def content_level_for_day(day: int) -> ContentLevel:
    """Granularity of practice material for a program day."""
    if day <= CONTENT_WORDS_LAST_DAY:
        return ContentLevel.WORDS
    if day <= CONTENT_PHRASES_LAST_DAY:
        return ContentLevel.PHRASES
    if day <= CONTENT_SENTENCES_LAST_DAY:
        return ContentLevel.SENTENCES
    return ContentLevel.PARAGRAPHS


def phase_for_day(day: int, weight: float = WEIGHT_NEUTRAL) -> str:
    """Program phase label for a day."""
    if day <= FOUNDATION_PHASE_LAST_DAY:
        return "Foundation"
    if day <= INTEGRATION_PHASE_LAST_DAY:
        return "Integration"
    if day < MAINTENANCE_PHASE_FIRST_DAY:
        return "Adaptive Practice"
    return maintenance_focus_label(weight)


def technique_id_for_day(day: int, weight: float = WEIGHT_NEUTRAL) -> str:
    """
    Technique id for a program day.

    Example:
        >>> technique_id_for_day(1)
        'easy_onset'
        >>> technique_id_for_day(15)
        'cancellation'
    """
    if day <= FOUNDATION_PHASE_LAST_DAY:
        return FLUENCY_SHAPING_POOL[(day - 1) % len(FLUENCY_SHAPING_POOL)]

    if day <= INTEGRATION_PHASE_LAST_DAY:
        if day % INTEGRATION_CANCELLATION_EVERY == 0:
            return INTRODUCTORY_MODIFICATION_TECHNIQUE
        return FLUENCY_SHAPING_POOL[(day - 1) % len(FLUENCY_SHAPING_POOL)]

    pool = FLUENCY_SHAPING_POOL if knuth_hash_fraction(day) < weight else MODIFICATION_POOL
    return pool[(day - 1) % len(pool)]


def select_technique_for_day(day: int, weight: float = WEIGHT_NEUTRAL) -> TechniqueChoice:
    """
    Full planning decision for a program day.

    Args:
        day: 1-based program day
        weight: Fluency-shaping share from ``recommended_weight``

    Returns:
        TechniqueChoice with technique, category, phase and content level
    """
    technique_id = technique_id_for_day(day, weight)
    category = get_category_for_technique(technique_id) or TechniqueCategory.FLUENCY_SHAPING
    return TechniqueChoice(
        technique_id=technique_id,
        category=category,
        day=day,
        phase=phase_for_day(day, weight),
        content_level=content_level_for_day(day),
    )
