"""Optional remote copy of player and account records.

A mirror only needs ``get`` and ``set``. The local database stays the
source of truth; mirror errors surface as ``MirrorFailure`` and callers log
them without failing the request.

Redis layout: one hash per collection. Player records live in
``scores:<category>`` keyed by lowercased name, accounts in ``users``.
"""

import json
from functools import lru_cache
from typing import Any, Dict, Optional, Protocol

import redis

from .config import get_settings
from .errors import MirrorFailure

SCORES_COLLECTION_PREFIX = "scores:"
USERS_COLLECTION = "users"


def scores_collection(category: str) -> str:
    return f"{SCORES_COLLECTION_PREFIX}{category}"


class Mirror(Protocol):
    def get(self, collection: str, key: str) -> Optional[Dict[str, Any]]:
        ...

    def set(self, collection: str, key: str, value: Dict[str, Any]) -> None:
        ...


class RedisMirror:
    """Mirror backed by Redis hashes.

    redis-py pools connections internally, so one instance is shared.
    """

    def __init__(self, client: redis.Redis):
        self._client = client

    @classmethod
    def from_url(cls, url: str, timeout: float) -> "RedisMirror":
        return cls(
            redis.Redis.from_url(
                url,
                decode_responses=True,
                socket_timeout=timeout,
                socket_connect_timeout=timeout,
            )
        )

    def get(self, collection: str, key: str) -> Optional[Dict[str, Any]]:
        try:
            raw = self._client.hget(collection, key)
        except redis.RedisError as exc:
            raise MirrorFailure(f"Mirror read failed for {collection}/{key}: {exc}") from exc
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError as exc:
            raise MirrorFailure(f"Mirror holds malformed JSON for {collection}/{key}") from exc

    def set(self, collection: str, key: str, value: Dict[str, Any]) -> None:
        try:
            self._client.hset(collection, key, json.dumps(value))
        except redis.RedisError as exc:
            raise MirrorFailure(f"Mirror write failed for {collection}/{key}: {exc}") from exc


@lru_cache()
def _redis_mirror(url: str, timeout: float) -> RedisMirror:
    return RedisMirror.from_url(url, timeout)


def get_mirror() -> Optional[Mirror]:
    """FastAPI dependency: the configured mirror, or None when disabled."""
    settings = get_settings()
    if not settings.mirror_enabled:
        return None
    return _redis_mirror(settings.REDIS_URL, settings.REDIS_TIMEOUT_SECONDS)
