"""
Cadence Shared Formulas

Purpose
-------
Small pure numeric helpers shared by the progression, coaching and
assessment engines.

Design Notes
------------
All formulas:
- Accept parameters explicitly
- Return calculated values
- Have no side effects and no config access

Rounding is half-up (0.5 rounds toward +infinity) everywhere a score is
rounded; Python's built-in ``round`` uses banker's rounding, which would
shift thresholds and percentages that land exactly on .5.
"""

from __future__ import annotations

import math
from typing import Iterable, Optional, TypeVar

from src.modules.shared.constants import HASH_SPACE, KNUTH_MULTIPLIER

N = TypeVar("N", int, float)


def round_half_up(value: float) -> int:
    """
    Round to the nearest integer, halves toward +infinity.

    Example:
        >>> round_half_up(2.5)
        3
        >>> round_half_up(-2.5)
        -2
        >>> round(2.5)  # banker's rounding, for contrast
        2
    """
    return int(math.floor(value + 0.5))


def clamp(value: N, lower: N, upper: N) -> N:
    """
    Constrain ``value`` to ``[lower, upper]``.

    Example:
        >>> clamp(120, 1, 100)
        100
    """
    return max(lower, min(upper, value))


def mean_or_default(values: Iterable[Optional[float]], default: float = 0.0) -> float:
    """
    Arithmetic mean of the non-None values, ``default`` when there are none.

    Example:
        >>> mean_or_default([2.0, None, 4.0])
        3.0
        >>> mean_or_default([None])
        0.0
    """
    present = [v for v in values if v is not None]
    if not present:
        return default
    return sum(present) / len(present)


def knuth_hash_fraction(value: int) -> float:
    """
    Deterministic pseudo-random fraction in ``[0, 1)`` for an integer.

    Knuth multiplicative hash truncated to 32 bits.

    Example:
        >>> 0.0 <= knuth_hash_fraction(31) < 1.0
        True
    """
    return ((value * KNUTH_MULTIPLIER) % HASH_SPACE) / HASH_SPACE
