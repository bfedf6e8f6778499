from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer


def _iso(value: datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.isoformat(timespec="milliseconds") + "Z"


class SignupRequest(BaseModel):
    name: str = Field(..., max_length=100)
    password: str = Field(..., max_length=128)


class LoginRequest(BaseModel):
    name: str
    password: str


class AccountResponse(BaseModel):
    ok: bool = True
    name: str


class SubmitScoreRequest(BaseModel):
    """Raw submission body.

    Fields are deliberately loose; ``merge.validate_submission`` decides
    what is rejected and what is silently ignored.
    """

    model_config = ConfigDict(extra="ignore")

    name: Any = None
    score: Any = None
    category: Any = None
    completedCounts: Any = None
    moleculesAvailable: Any = None
    molPercent: Any = None
    electronsGathered: Any = None
    deaths: Any = None
    longestStreak: Any = None
    timeSeconds: Any = None
    bankTotal: Any = None
    atomsCreated: Any = None


class OkResponse(BaseModel):
    ok: bool = True


class HealthResponse(BaseModel):
    ok: bool = True
    time: str


class PlayerRecord(BaseModel):
    """Best score and latest progress snapshot for one (player, category)."""

    name: str
    category: str = "overall"
    score: float = 0
    createdAt: datetime
    updatedAt: datetime
    completedCounts: Dict[str, int] = Field(default_factory=dict)

    # Snapshot fields: latest submission wins.
    moleculesAvailable: Optional[float] = None
    molPercent: Optional[float] = None
    electronsGathered: Optional[float] = None
    deaths: Optional[float] = None
    longestStreak: Optional[float] = None
    timeSeconds: Optional[float] = None
    bankTotal: Optional[float] = None
    atomsCreated: Optional[float] = None

    # Derived from completedCounts on the server.
    ptPercent: int = 0
    uniqueElements: int = 0
    elementsCreated: int = 0
    totalCollected: int = 0
    protonsGathered: int = 0

    @property
    def name_lower(self) -> str:
        return self.name.strip().lower()

    @field_serializer("createdAt", "updatedAt", when_used="json")
    def _serialize_timestamp(self, value: datetime) -> str:
        return _iso(value)

    @field_serializer(
        "score",
        "moleculesAvailable",
        "molPercent",
        "electronsGathered",
        "deaths",
        "longestStreak",
        "timeSeconds",
        "bankTotal",
        "atomsCreated",
        when_used="json",
    )
    def _serialize_number(self, value: Optional[float]):
        if value is not None and float(value).is_integer():
            return int(value)
        return value


class AccountRecord(BaseModel):
    name: str
    nameLower: str
    passwordHash: str
    createdAt: datetime
    updatedAt: datetime

    @field_serializer("createdAt", "updatedAt", when_used="json")
    def _serialize_timestamp(self, value: datetime) -> str:
        return _iso(value)


class LeaderboardResponse(BaseModel):
    players: List[Dict[str, Any]]
    elementSymbols: Dict[str, str]


class PlayerEntriesResponse(BaseModel):
    entries: List[Dict[str, Any]]
    elementSymbols: Dict[str, str]


class ElementCountsResponse(BaseModel):
    completedCounts: Dict[str, int]
