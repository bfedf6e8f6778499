"""Derived leaderboard statistics computed from a sparse count map.

Every function here is pure and total: absent, ``None`` or malformed input
yields ``0`` instead of an exception.
"""

import math
from typing import Any, Dict, Mapping

from .catalog import FALLBACK_CATALOG_SIZE

# Derived stats are stored in BIGINT columns.
MAX_STAT = 2**63 - 1


def _count_value(value: Any) -> float:
    if isinstance(value, bool):
        return 0
    try:
        value = float(value)
    except (TypeError, ValueError, OverflowError):
        return 0
    if not math.isfinite(value):
        return 0
    return value


def _positive_int_key(key: Any) -> int:
    text = str(key).strip()
    if not (text.isascii() and text.isdigit()):
        return 0
    return int(text)


def percent_of_catalog(counts: Any, total: int = FALLBACK_CATALOG_SIZE) -> int:
    """Share of the catalog with an entry in ``counts``, as 0..100.

    Every key counts, including ones whose value is zero.
    """
    if not isinstance(counts, Mapping) or not counts or not total or total <= 0:
        return 0
    percent = math.floor(100 * len(counts) / total + 0.5)
    return max(0, min(100, int(percent)))


def unique_units_collected(counts: Any) -> int:
    """Number of keys whose count is strictly positive."""
    if not isinstance(counts, Mapping):
        return 0
    return sum(1 for value in counts.values() if _count_value(value) > 0)


def total_units_collected(counts: Any) -> int:
    if not isinstance(counts, Mapping):
        return 0
    return sum(int(_count_value(value)) for value in counts.values())


def weighted_sum(counts: Any) -> int:
    """Sum of ``atomic number * count``, so heavier elements weigh more."""
    if not isinstance(counts, Mapping):
        return 0
    result = 0
    for key, value in counts.items():
        number = _positive_int_key(key)
        count = _count_value(value)
        if number <= 0 or count <= 0:
            continue
        result += number * int(count)
    return result


def derive_stats(counts: Any, total: int = FALLBACK_CATALOG_SIZE) -> Dict[str, int]:
    """All server-computed fields of a player record."""
    collected = min(total_units_collected(counts), MAX_STAT)
    return {
        "ptPercent": percent_of_catalog(counts, total),
        "uniqueElements": unique_units_collected(counts),
        "elementsCreated": collected,
        "totalCollected": collected,
        "protonsGathered": min(weighted_sum(counts), MAX_STAT),
    }
