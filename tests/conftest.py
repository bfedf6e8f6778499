import os

# Configure before the application modules read their settings.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["REDIS_URL"] = ""
os.environ["CATALOG_PATH"] = ""

import pytest
from fastapi.testclient import TestClient

from scoreboard.database import Base, SessionLocal, engine
from scoreboard.errors import MirrorFailure
from scoreboard.main import app
from scoreboard.mirror import get_mirror


class FakeMirror:
    """In-memory stand-in for the Redis mirror."""

    def __init__(self):
        self.data = {}
        self.fail = False

    def get(self, collection, key):
        if self.fail:
            raise MirrorFailure("mirror down")
        return self.data.get(collection, {}).get(key)

    def set(self, collection, key, value):
        if self.fail:
            raise MirrorFailure("mirror down")
        self.data.setdefault(collection, {})[key] = value


@pytest.fixture(autouse=True)
def reset_db():
    """Fresh tables for every test."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture()
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def mirror():
    return FakeMirror()


@pytest.fixture()
def client(mirror):
    app.dependency_overrides[get_mirror] = lambda: mirror
    yield TestClient(app)
    app.dependency_overrides.clear()
