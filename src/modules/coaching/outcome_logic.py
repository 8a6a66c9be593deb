"""
Outcome aggregation.

Reduces a user's technique outcome log into per-category statistics. The
log is read newest first and only the first ``OUTCOME_WINDOW_SIZE`` entries
count; the category filter applies inside that window, so a burst of one
category can push the other out entirely.
"""

from __future__ import annotations

from typing import Iterable, List, Sequence, Union

from src.database.models.enums import TechniqueCategory
from src.domain.models.coaching import (
    CategoryStatistics,
    OutcomeSummary,
    TechniqueOutcomeRecord,
)
from src.modules.coaching.weight_logic import recommended_weight
from src.modules.shared.constants import OUTCOME_WINDOW_SIZE
from src.modules.shared.formulas import mean_or_default


def outcome_window(
    outcomes: Iterable[TechniqueOutcomeRecord], size: int = OUTCOME_WINDOW_SIZE
) -> List[TechniqueOutcomeRecord]:
    """The first ``size`` records of a newest-first sequence."""
    window: List[TechniqueOutcomeRecord] = []
    for record in outcomes:
        if len(window) >= size:
            break
        window.append(record)
    return window


def aggregate_category(
    outcomes: Sequence[TechniqueOutcomeRecord],
    category: Union[TechniqueCategory, str],
) -> CategoryStatistics:
    """
    Statistics for one category over the outcome window.

    Confidence deltas and fluency ratings are averaged independently over
    their non-null values; ``session_count`` counts every matching record.

    Args:
        outcomes: Outcome records, newest first
        category: Category to aggregate

    Returns:
        CategoryStatistics (all zero when nothing matches)

    Example:
        >>> stats = aggregate_category(records, "fluency_shaping")
        >>> stats.session_count, stats.avg_confidence_delta
        (4, 1.25)
    """
    category = TechniqueCategory(category)
    matching = [r for r in outcome_window(outcomes) if r.category == category]

    if not matching:
        return CategoryStatistics.empty(category)

    return CategoryStatistics(
        category=category,
        session_count=len(matching),
        avg_confidence_delta=mean_or_default(r.confidence_delta for r in matching),
        avg_fluency_rating=mean_or_default(r.self_rated_fluency for r in matching),
    )


def summarize_outcomes(outcomes: Sequence[TechniqueOutcomeRecord]) -> OutcomeSummary:
    """
    Both category statistics plus the weight they imply.

    Example:
        >>> summarize_outcomes([]).recommended_weight
        0.5
    """
    window = outcome_window(outcomes)
    fs = aggregate_category(window, TechniqueCategory.FLUENCY_SHAPING)
    mod = aggregate_category(window, TechniqueCategory.STUTTERING_MODIFICATION)

    return OutcomeSummary(
        fluency_shaping=fs,
        stuttering_modification=mod,
        recommended_weight=recommended_weight(fs, mod),
        total_sessions=len(window),
    )
