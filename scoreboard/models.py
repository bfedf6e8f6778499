from datetime import datetime

from sqlalchemy import (
    JSON,
    BigInteger,
    Column,
    DateTime,
    Float,
    Index,
    Integer,
    String,
    UniqueConstraint,
)

from .database import Base


class PlayerScore(Base):
    """Best score and latest progress snapshot per (player, category).

    ``name_lower`` plus ``category`` is the record key; ``name`` keeps the
    casing of the first submission.
    """

    __tablename__ = "player_scores"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    name_lower = Column(String, nullable=False)
    category = Column(String, nullable=False, default="overall")
    score = Column(Float, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    completed_counts = Column(JSON, nullable=False, default=dict)

    molecules_available = Column(Float, nullable=True)
    mol_percent = Column(Float, nullable=True)
    electrons_gathered = Column(Float, nullable=True)
    deaths = Column(Float, nullable=True)
    longest_streak = Column(Float, nullable=True)
    time_seconds = Column(Float, nullable=True)
    bank_total = Column(Float, nullable=True)
    atoms_created = Column(Float, nullable=True)

    pt_percent = Column(Integer, nullable=False, default=0)
    unique_elements = Column(Integer, nullable=False, default=0)
    elements_created = Column(BigInteger, nullable=False, default=0)
    total_collected = Column(BigInteger, nullable=False, default=0)
    protons_gathered = Column(BigInteger, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("name_lower", "category", name="uq_player_scores_name_category"),
        Index("idx_player_scores_category_score", "category", "score", "updated_at"),
    )


class Account(Base):
    """Claimed player name with its password hash."""

    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    name_lower = Column(String, nullable=False, unique=True)
    password_hash = Column(String, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)


# Record field name -> column attribute, for the columns that map one to one.
PLAYER_COLUMNS = {
    "name": "name",
    "category": "category",
    "score": "score",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "completedCounts": "completed_counts",
    "moleculesAvailable": "molecules_available",
    "molPercent": "mol_percent",
    "electronsGathered": "electrons_gathered",
    "deaths": "deaths",
    "longestStreak": "longest_streak",
    "timeSeconds": "time_seconds",
    "bankTotal": "bank_total",
    "atomsCreated": "atoms_created",
    "ptPercent": "pt_percent",
    "uniqueElements": "unique_elements",
    "elementsCreated": "elements_created",
    "totalCollected": "total_collected",
    "protonsGathered": "protons_gathered",
}
