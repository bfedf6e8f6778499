"""Persistence for player and account records.

Both stores write the local database first and then, if one is configured,
copy the record to the mirror. A failed local write raises
``StorageFailure``; a failed mirror write is logged and ignored.
"""

import logging
from typing import List, Optional

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .errors import Conflict, MirrorFailure, StorageFailure
from .merge import DERIVED_FIELDS, GUEST_NAME
from .mirror import USERS_COLLECTION, Mirror, scores_collection
from .models import PLAYER_COLUMNS, Account, PlayerScore
from .schemas import AccountRecord, PlayerRecord

logger = logging.getLogger(__name__)


def _to_record(row: PlayerScore) -> PlayerRecord:
    values = {field: getattr(row, column) for field, column in PLAYER_COLUMNS.items()}
    values["completedCounts"] = dict(values["completedCounts"] or {})
    for field in DERIVED_FIELDS:
        values[field] = values[field] or 0
    return PlayerRecord(**values)


def _to_account(row: Account) -> AccountRecord:
    return AccountRecord(
        name=row.name,
        nameLower=row.name_lower,
        passwordHash=row.password_hash,
        createdAt=row.created_at,
        updatedAt=row.updated_at,
    )


def _mirror_set(mirror: Optional[Mirror], collection: str, key: str, value: dict) -> None:
    if mirror is None:
        return
    try:
        mirror.set(collection, key, value)
    except MirrorFailure as exc:
        logger.warning("Mirror write skipped: %s", exc.message)


class LeaderboardStore:
    def __init__(self, db: Session, mirror: Optional[Mirror] = None):
        self.db = db
        self.mirror = mirror

    def fetch_all(self, category: str, limit: Optional[int] = None) -> List[PlayerRecord]:
        """Records of one category, best first.

        Equal scores rank the earlier ``updatedAt`` first, then by name.
        """
        query = (
            self.db.query(PlayerScore)
            .filter(PlayerScore.category == category)
            .filter(PlayerScore.name_lower != GUEST_NAME)
            .order_by(
                PlayerScore.score.desc(),
                PlayerScore.updated_at.asc(),
                PlayerScore.name_lower.asc(),
            )
        )
        if limit is not None:
            query = query.limit(limit)
        return [_to_record(row) for row in query.all()]

    def fetch_by_name(self, name: str) -> List[PlayerRecord]:
        rows = (
            self.db.query(PlayerScore)
            .filter(PlayerScore.name_lower == name.strip().lower())
            .order_by(PlayerScore.category.asc())
            .all()
        )
        return [_to_record(row) for row in rows]

    def _get_row(self, name_lower: str, category: str) -> Optional[PlayerScore]:
        return (
            self.db.query(PlayerScore)
            .filter(PlayerScore.name_lower == name_lower, PlayerScore.category == category)
            .first()
        )

    def get(self, name: str, category: str) -> Optional[PlayerRecord]:
        row = self._get_row(name.strip().lower(), category)
        return _to_record(row) if row is not None else None

    def upsert(self, record: PlayerRecord) -> PlayerRecord:
        values = record.model_dump()
        try:
            row = self._get_row(record.name_lower, record.category)
            if row is None:
                row = PlayerScore(name_lower=record.name_lower)
                self.db.add(row)
            for field, column in PLAYER_COLUMNS.items():
                setattr(row, column, values[field])
            self.db.commit()
        except (SQLAlchemyError, OverflowError) as exc:
            # Drivers raise a bare OverflowError for out-of-range integers.
            self.db.rollback()
            logger.exception("Failed to save score for %s/%s", record.name_lower, record.category)
            raise StorageFailure("Failed to save score") from exc

        _mirror_set(
            self.mirror,
            scores_collection(record.category),
            record.name_lower,
            record.model_dump(mode="json"),
        )
        return record


class AccountStore:
    def __init__(self, db: Session, mirror: Optional[Mirror] = None):
        self.db = db
        self.mirror = mirror

    def _find_remote(self, name_lower: str) -> Optional[AccountRecord]:
        if self.mirror is None:
            return None
        try:
            remote = self.mirror.get(USERS_COLLECTION, name_lower)
        except MirrorFailure as exc:
            logger.warning("Mirror lookup skipped: %s", exc.message)
            return None
        if remote is None:
            return None
        try:
            return AccountRecord(**remote)
        except (TypeError, ValidationError):
            logger.warning("Mirror holds a malformed account for %s, using local copy", name_lower)
            return None

    def find(self, name: str) -> Optional[AccountRecord]:
        """Look an account up by name, case-insensitively.

        The mirror is asked first and its answer wins over the local copy.
        """
        name_lower = name.strip().lower()
        remote = self._find_remote(name_lower)
        if remote is not None:
            return remote
        row = (
            self.db.query(Account)
            .filter(Account.name_lower == name_lower)
            .first()
        )
        return _to_account(row) if row is not None else None

    def create(self, account: AccountRecord) -> AccountRecord:
        row = Account(
            name=account.name,
            name_lower=account.nameLower,
            password_hash=account.passwordHash,
            created_at=account.createdAt,
            updated_at=account.updatedAt,
        )
        try:
            self.db.add(row)
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise Conflict("User already exists") from exc
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("Failed to save account %s", account.nameLower)
            raise StorageFailure("Failed to save account") from exc

        _mirror_set(self.mirror, USERS_COLLECTION, account.nameLower, account.model_dump(mode="json"))
        return account
