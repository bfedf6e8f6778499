"""Merge engine: combines an incoming submission with the stored record.

Each record field has exactly one policy, listed in ``FIELD_POLICIES``:

- ``MAX``: keep the larger of stored and submitted value (``score``).
- ``MERGE_MAX``: per-key maximum of two count maps (``completedCounts``).
- ``SNAPSHOT``: overwritten whenever the submission carries a finite number.
- ``DERIVED``: recomputed from ``completedCounts``; client values ignored.
- ``IDENTITY``: part of the key, fixed at creation.
- ``TIMESTAMP``: ``createdAt`` set once, ``updatedAt`` on every merge.

No merge ever lowers ``score`` or any single count.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from .catalog import FALLBACK_CATALOG_SIZE
from .errors import InvalidInput
from .progress import derive_stats
from .schemas import PlayerRecord, SubmitScoreRequest

DEFAULT_CATEGORY = "overall"
GUEST_NAME = "guest"
# Per-element counts above this are clamped.
MAX_COUNT = 1_000_000


class FieldPolicy(str, Enum):
    IDENTITY = "identity"
    TIMESTAMP = "timestamp"
    MAX = "max"
    MERGE_MAX = "merge_max"
    SNAPSHOT = "snapshot"
    DERIVED = "derived"


FIELD_POLICIES: Dict[str, FieldPolicy] = {
    "name": FieldPolicy.IDENTITY,
    "category": FieldPolicy.IDENTITY,
    "createdAt": FieldPolicy.TIMESTAMP,
    "updatedAt": FieldPolicy.TIMESTAMP,
    "score": FieldPolicy.MAX,
    "completedCounts": FieldPolicy.MERGE_MAX,
    "moleculesAvailable": FieldPolicy.SNAPSHOT,
    "molPercent": FieldPolicy.SNAPSHOT,
    "electronsGathered": FieldPolicy.SNAPSHOT,
    "deaths": FieldPolicy.SNAPSHOT,
    "longestStreak": FieldPolicy.SNAPSHOT,
    "timeSeconds": FieldPolicy.SNAPSHOT,
    "bankTotal": FieldPolicy.SNAPSHOT,
    "atomsCreated": FieldPolicy.SNAPSHOT,
    "ptPercent": FieldPolicy.DERIVED,
    "uniqueElements": FieldPolicy.DERIVED,
    "elementsCreated": FieldPolicy.DERIVED,
    "totalCollected": FieldPolicy.DERIVED,
    "protonsGathered": FieldPolicy.DERIVED,
}


def fields_with_policy(policy: FieldPolicy):
    return [name for name, p in FIELD_POLICIES.items() if p is policy]


SNAPSHOT_FIELDS = fields_with_policy(FieldPolicy.SNAPSHOT)
DERIVED_FIELDS = fields_with_policy(FieldPolicy.DERIVED)


@dataclass(frozen=True)
class Submission:
    """A validated submission, ready to merge."""

    name: str
    score: float
    category: str = DEFAULT_CATEGORY
    completed_counts: Optional[Dict[str, int]] = None
    snapshots: Dict[str, float] = field(default_factory=dict)

    @property
    def name_lower(self) -> str:
        return self.name.lower()

    @property
    def is_guest(self) -> bool:
        return is_guest(self.name)


def utcnow() -> datetime:
    """Naive UTC timestamp, the form the database round-trips."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def is_guest(name: Any) -> bool:
    if not isinstance(name, str):
        return True
    lowered = name.strip().lower()
    return lowered == "" or lowered == GUEST_NAME


def normalize_name(name: Any) -> str:
    if not isinstance(name, str) or not name.strip():
        raise InvalidInput("Invalid name")
    return name.strip()


def finite_number(value: Any) -> Optional[float]:
    """Return ``value`` as a finite float, or None if it is not one."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if not math.isfinite(number):
        return None
    return number


def parse_score(value: Any) -> float:
    score = finite_number(value)
    if score is None or score < 0:
        raise InvalidInput("Invalid score")
    return score


def normalize_category(value: Any) -> str:
    if value is None:
        return DEFAULT_CATEGORY
    category = str(value).strip()
    return category or DEFAULT_CATEGORY


def normalize_counts(value: Any) -> Dict[str, int]:
    """Coerce a client count map to ``{str: int >= 0}``.

    Keys are kept even when their value is unusable; such values count as 0.
    Values above ``MAX_COUNT`` are clamped to it.
    """
    if not isinstance(value, Mapping):
        return {}
    counts: Dict[str, int] = {}
    for key, raw in value.items():
        number = finite_number(raw)
        if number is None or number <= 0:
            counts[str(key).strip()] = 0
        else:
            counts[str(key).strip()] = int(min(number, MAX_COUNT))
    return counts


def merge_counts(existing: Optional[Mapping[str, int]], incoming: Optional[Mapping[str, int]]) -> Dict[str, int]:
    merged = dict(existing or {})
    for key, value in (incoming or {}).items():
        merged[key] = max(merged.get(key, 0) or 0, value or 0)
    return merged


def validate_submission(payload: SubmitScoreRequest) -> Submission:
    """Reject malformed submissions before anything is read or written.

    Snapshot fields that are not finite numbers are dropped, not rejected.
    """
    name = normalize_name(payload.name)
    score = parse_score(payload.score)

    snapshots = {}
    for field_name in SNAPSHOT_FIELDS:
        number = finite_number(getattr(payload, field_name, None))
        if number is not None:
            snapshots[field_name] = number

    counts = None
    if isinstance(payload.completedCounts, Mapping):
        counts = normalize_counts(payload.completedCounts)

    return Submission(
        name=name,
        score=score,
        category=normalize_category(payload.category),
        completed_counts=counts,
        snapshots=snapshots,
    )


def merge_record(
    existing: Optional[PlayerRecord],
    submission: Submission,
    now: Optional[datetime] = None,
    catalog_size: int = FALLBACK_CATALOG_SIZE,
) -> PlayerRecord:
    """Produce the record that results from applying ``submission``.

    ``existing`` is never mutated. When it is absent the submission is merged
    against an empty record with score 0 and no counts.
    """
    now = now or utcnow()

    if existing is None:
        values: Dict[str, Any] = {
            "name": submission.name,
            "category": submission.category,
            "createdAt": now,
            "score": 0,
            "completedCounts": {},
        }
    else:
        values = existing.model_dump()

    for field_name, policy in FIELD_POLICIES.items():
        if policy is FieldPolicy.MAX:
            values[field_name] = max(values.get(field_name) or 0, getattr(submission, field_name))
        elif policy is FieldPolicy.MERGE_MAX:
            values[field_name] = merge_counts(values.get(field_name), submission.completed_counts)
        elif policy is FieldPolicy.SNAPSHOT:
            if field_name in submission.snapshots:
                values[field_name] = submission.snapshots[field_name]

    values["updatedAt"] = now
    values.update(derive_stats(values["completedCounts"], catalog_size))
    return PlayerRecord(**values)


def refresh_derived(record: PlayerRecord, catalog_size: int = FALLBACK_CATALOG_SIZE) -> PlayerRecord:
    """Return ``record`` with its derived fields recomputed."""
    return record.model_copy(update=derive_stats(record.completedCounts, catalog_size))
