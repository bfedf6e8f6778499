import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from sqlalchemy.orm import Session

from . import accounts, leaderboard, schemas
from .catalog import get_catalog
from .config import get_settings
from .database import Base, engine, get_db
from .errors import ScoreboardError
from .mirror import Mirror, get_mirror
from .stores import AccountStore, LeaderboardStore

settings = get_settings()

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables on startup; there are no migrations."""
    Base.metadata.create_all(bind=engine)
    logger.info(
        "Scoreboard ready: catalog size %d, mirror %s",
        get_catalog().size,
        "enabled" if settings.mirror_enabled else "disabled",
    )
    yield


app = FastAPI(title=settings.PROJECT_NAME, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ScoreboardError)
async def scoreboard_error_handler(request: Request, exc: ScoreboardError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    return JSONResponse(status_code=400, content={"error": message})


def get_leaderboard_store(
    db: Session = Depends(get_db),
    mirror: Optional[Mirror] = Depends(get_mirror),
) -> LeaderboardStore:
    return LeaderboardStore(db, mirror)


def get_account_store(
    db: Session = Depends(get_db),
    mirror: Optional[Mirror] = Depends(get_mirror),
) -> AccountStore:
    return AccountStore(db, mirror)


def _public(record: schemas.PlayerRecord) -> dict:
    return record.model_dump(mode="json", exclude_none=True)


@app.get("/health", response_model=schemas.HealthResponse)
def health():
    now = datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
    return schemas.HealthResponse(time=now)


@app.post("/signup", response_model=schemas.AccountResponse)
def signup(payload: schemas.SignupRequest, store: AccountStore = Depends(get_account_store)):
    """Claim a player name."""
    name = accounts.sign_up(store, payload.name, payload.password)
    return schemas.AccountResponse(name=name)


@app.post("/login", response_model=schemas.AccountResponse)
def login(payload: schemas.LoginRequest, store: AccountStore = Depends(get_account_store)):
    """Check credentials and return the canonical stored name."""
    name = accounts.log_in(store, payload.name, payload.password)
    return schemas.AccountResponse(name=name)


@app.get("/scores", response_model=schemas.LeaderboardResponse)
def get_scores(
    category: str = Query(leaderboard.DEFAULT_CATEGORY),
    limit: Optional[str] = Query(None),
    store: LeaderboardStore = Depends(get_leaderboard_store),
):
    """Top players of a category, best score first."""
    records = leaderboard.list_top(store, category, limit)
    return schemas.LeaderboardResponse(
        players=[_public(record) for record in records],
        elementSymbols=get_catalog().symbols,
    )


@app.post("/submit", response_model=schemas.OkResponse)
def submit(
    payload: schemas.SubmitScoreRequest,
    store: LeaderboardStore = Depends(get_leaderboard_store),
):
    """Submit a score.

    The stored record keeps the best score and the per-element best counts;
    snapshot metrics are replaced by the latest submission. Guest scores are
    acknowledged but not stored.
    """
    leaderboard.submit_score(store, payload)
    return schemas.OkResponse()


@app.get("/player/{name}", response_model=schemas.PlayerEntriesResponse)
def get_player(name: str, store: LeaderboardStore = Depends(get_leaderboard_store)):
    """All category entries for a player, matched case-insensitively."""
    if not name.strip():
        raise HTTPException(status_code=400, detail="Name required")
    records = leaderboard.get_player(store, name)
    return schemas.PlayerEntriesResponse(
        entries=[_public(record) for record in records],
        elementSymbols=get_catalog().symbols,
    )


@app.get("/player/{name}/element-counts", response_model=schemas.ElementCountsResponse)
def get_player_element_counts(
    name: str,
    category: Optional[str] = Query(None),
    store: LeaderboardStore = Depends(get_leaderboard_store),
):
    if not name.strip():
        raise HTTPException(status_code=400, detail="Name required")
    counts = leaderboard.player_counts(store, name, category)
    return schemas.ElementCountsResponse(completedCounts=counts)
