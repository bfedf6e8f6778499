"""Score submission and leaderboard queries."""

import logging
import threading
import weakref
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional

from .catalog import get_catalog
from .merge import (
    DEFAULT_CATEGORY,
    merge_counts,
    merge_record,
    refresh_derived,
    validate_submission,
)
from .schemas import PlayerRecord, SubmitScoreRequest
from .stores import LeaderboardStore

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 50
MAX_LIMIT = 200

_locks_guard = threading.Lock()
# Entries vanish once no submission holds the lock.
_key_locks = weakref.WeakValueDictionary()


def _key_lock(name_lower: str, category: str) -> threading.Lock:
    """One lock per record key, so same-key submissions apply in turn."""
    with _locks_guard:
        lock = _key_locks.get((name_lower, category))
        if lock is None:
            lock = threading.Lock()
            _key_locks[(name_lower, category)] = lock
        return lock


@dataclass(frozen=True)
class SubmitResult:
    record: PlayerRecord
    is_guest: bool = False


def clamp_limit(limit) -> int:
    try:
        value = int(limit)
    except (TypeError, ValueError):
        return DEFAULT_LIMIT
    return max(1, min(MAX_LIMIT, value))


def submit_score(
    store: LeaderboardStore,
    payload: SubmitScoreRequest,
    now: Optional[datetime] = None,
) -> SubmitResult:
    """Validate and merge a submission, then persist it.

    Guest submissions are merged against nothing and never written.
    """
    submission = validate_submission(payload)
    catalog_size = get_catalog().size

    if submission.is_guest:
        logger.debug("Guest submission accepted without saving (score=%s)", submission.score)
        return SubmitResult(
            record=merge_record(None, submission, now, catalog_size),
            is_guest=True,
        )

    with _key_lock(submission.name_lower, submission.category):
        existing = store.get(submission.name, submission.category)
        record = merge_record(existing, submission, now, catalog_size)
        store.upsert(record)

    logger.info(
        "Score saved for %s/%s: submitted=%s best=%s",
        record.name,
        record.category,
        submission.score,
        record.score,
    )
    return SubmitResult(record=record)


def list_top(
    store: LeaderboardStore,
    category: Optional[str] = DEFAULT_CATEGORY,
    limit=DEFAULT_LIMIT,
) -> List[PlayerRecord]:
    """Top records of a category with freshly computed derived fields."""
    category = category or DEFAULT_CATEGORY
    catalog_size = get_catalog().size
    records = store.fetch_all(category, limit=clamp_limit(limit))
    return [refresh_derived(record, catalog_size) for record in records]


def get_player(store: LeaderboardStore, name: str) -> List[PlayerRecord]:
    catalog_size = get_catalog().size
    return [refresh_derived(record, catalog_size) for record in store.fetch_by_name(name)]


def player_counts(
    store: LeaderboardStore,
    name: str,
    category: Optional[str] = None,
) -> Dict[str, int]:
    """Element counts of one category, or the per-element best across all."""
    if category:
        record = store.get(name, category)
        return dict(record.completedCounts) if record is not None else {}

    counts: Dict[str, int] = {}
    for record in store.fetch_by_name(name):
        counts = merge_counts(counts, record.completedCounts)
    return counts
