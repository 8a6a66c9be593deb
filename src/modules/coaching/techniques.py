"""
Technique catalogue.

Canonical mapping of technique ids to their category, plus the rotation
pools the planner draws from. ``gentle_onset`` and ``continuous_phonation``
are recognised for outcome logging but are not part of a rotation pool.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Final, Mapping, Optional, Tuple

from src.database.models.enums import TechniqueCategory
from src.modules.shared.exceptions import NotFoundError

FS = TechniqueCategory.FLUENCY_SHAPING
MOD = TechniqueCategory.STUTTERING_MODIFICATION


@dataclass(frozen=True)
class Technique:
    """A practicable technique with a one-line coaching tip."""

    id: str
    name: str
    category: TechniqueCategory
    tip: str


TECHNIQUES: Final[Mapping[str, Technique]] = MappingProxyType(
    {
        t.id: t
        for t in (
            # Fluency shaping
            Technique(
                "easy_onset",
                "Easy Onset",
                FS,
                "Begin each word with a soft, breathy start. Let air flow before voicing.",
            ),
            Technique(
                "gentle_onset",
                "Gentle Onset",
                FS,
                "Ease into voicing slowly so the vocal folds come together without tension.",
            ),
            Technique(
                "light_contact",
                "Light Contact",
                FS,
                "Use minimal pressure when your lips, tongue, and teeth make contact for sounds.",
            ),
            Technique(
                "prolonged_speech",
                "Prolonged Speech",
                FS,
                "Stretch vowel sounds and blend words together for continuous, flowing speech.",
            ),
            Technique(
                "pausing",
                "Pausing & Phrasing",
                FS,
                "Break sentences into short phrase groups. Pause naturally between phrases.",
            ),
            Technique(
                "continuous_phonation",
                "Continuous Phonation",
                FS,
                "Keep your voice on between words so speech flows as one connected stream.",
            ),
            # Stuttering modification
            Technique(
                "cancellation",
                "Cancellation",
                MOD,
                "After stuttering on a word, pause, then say it again using a technique.",
            ),
            Technique(
                "pull_out",
                "Pull-Out",
                MOD,
                "While in a stutter, consciously slow down and ease out of the block smoothly.",
            ),
            Technique(
                "preparatory_set",
                "Preparatory Set",
                MOD,
                "Before a feared word, pre-plan your articulatory position and use gentle onset.",
            ),
            Technique(
                "voluntary_stuttering",
                "Voluntary Stuttering",
                MOD,
                "Intentionally stutter on easy words to reduce fear and avoidance behaviors.",
            ),
        )
    }
)

FLUENCY_SHAPING_POOL: Final[Tuple[str, ...]] = (
    "easy_onset",
    "light_contact",
    "prolonged_speech",
    "pausing",
)

MODIFICATION_POOL: Final[Tuple[str, ...]] = (
    "cancellation",
    "pull_out",
    "preparatory_set",
    "voluntary_stuttering",
)

INTRODUCTORY_MODIFICATION_TECHNIQUE: Final[str] = "cancellation"


def get_category_for_technique(technique_id: str) -> Optional[TechniqueCategory]:
    """
    Category of a technique id, None when the id is unknown.

    Example:
        >>> get_category_for_technique("pull_out")
        <TechniqueCategory.STUTTERING_MODIFICATION: 'stuttering_modification'>
    """
    technique = TECHNIQUES.get(technique_id)
    return technique.category if technique else None


def get_technique(technique_id: str) -> Technique:
    """
    Look up a technique.

    Raises:
        NotFoundError: Unknown id
    """
    try:
        return TECHNIQUES[technique_id]
    except KeyError:
        raise NotFoundError("Technique", technique_id) from None


def pool_for_category(category: TechniqueCategory) -> Tuple[str, ...]:
    return FLUENCY_SHAPING_POOL if category == FS else MODIFICATION_POOL
