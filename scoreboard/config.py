import os
from functools import lru_cache
from typing import List


def _split_csv(raw: str) -> List[str]:
    return [item.strip() for item in raw.split(",") if item.strip()]


class Settings:
    """Application configuration loaded from environment variables.

    Defaults run the service against a local SQLite file with no remote
    mirror, which is what you want for development and tests.
    """

    PROJECT_NAME: str = os.getenv("PROJECT_NAME", "Element Scoreboard")

    # Local store (source of truth)
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./scoreboard.db")

    # Remote mirror; empty disables it
    REDIS_URL: str = os.getenv("REDIS_URL", "")
    # Bounds every mirror call so a stalled Redis cannot hold up a response
    REDIS_TIMEOUT_SECONDS: float = float(os.getenv("REDIS_TIMEOUT_SECONDS", "0.5"))

    # Reference catalog override: JSON object {atomicNumber: symbol}
    CATALOG_PATH: str = os.getenv("CATALOG_PATH", "")

    CORS_ORIGINS: List[str] = _split_csv(os.getenv("CORS_ORIGINS", "*"))

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    @property
    def mirror_enabled(self) -> bool:
        return bool(self.REDIS_URL)


@lru_cache()
def get_settings() -> Settings:
    return Settings()
