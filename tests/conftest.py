"""
Shared pytest fixtures.

Uses a file-based SQLite database so no Postgres is required for tests.
The clock and the extraction client are replaced with deterministic fakes;
every test that needs a user registers a fresh one, so tests never see each
other's habits.
"""
import os

os.environ["DATABASE_URL"] = "sqlite:///./test_habitflow.db"
os.environ["RESET_HOUR"] = "5"
os.environ["TIMEZONE"] = "UTC"
os.environ.pop("OPENAI_API_KEY", None)

import uuid
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from habitflow.db.base import Base, get_db
from habitflow.main import app
from habitflow.routers.deps import get_extractor, get_now
from habitflow.schemas.habit import ParsedHabit
from habitflow.services.extraction import HabitExtractor

SQLITE_URL = "sqlite:///./test_habitflow.db"

engine = create_engine(SQLITE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

UTC = timezone.utc

# Scenario B/C anchor: 06:00, one hour into the 2024-01-10 cycle
DEFAULT_NOW = datetime(2024, 1, 10, 6, 0, tzinfo=UTC)

RUNNING = ParsedHabit(activity="running", quantity=5, unit="miles", category="fitness", confidence=0.95)
MEDITATION = ParsedHabit(activity="meditation", quantity=10, unit="minutes", category="self_care", confidence=0.9)


class FakeExtractor(HabitExtractor):
    """Returns canned items (or raises) and records what it was asked."""

    def __init__(self, items=None, error=None):
        self.items = list(items) if items is not None else [RUNNING, MEDITATION]
        self.error = error
        self.calls: list[str] = []

    def extract(self, text: str) -> list[ParsedHabit]:
        self.calls.append(text)
        if self.error is not None:
            raise self.error
        return list(self.items)


class FrozenClock:
    """Callable dependency returning a settable `now`."""

    def __init__(self, now: datetime = DEFAULT_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="session", autouse=True)
def create_tables():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def extractor():
    return FakeExtractor()


@pytest.fixture()
def clock():
    return FrozenClock()


@pytest.fixture()
def client(extractor, clock):
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_extractor] = lambda: extractor
    app.dependency_overrides[get_now] = clock
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def signup_and_login(client, password: str = "correct-horse-battery") -> dict:
    """Register a throwaway user and return Authorization headers for it."""
    email = f"user-{uuid.uuid4().hex[:12]}@example.com"
    r = client.post("/auth/signup", json={"email": email, "password": password})
    assert r.status_code == 201, r.text
    r = client.post("/auth/token", data={"username": email, "password": password})
    assert r.status_code == 200, r.text
    return {"Authorization": f"Bearer {r.json()['access_token']}"}


@pytest.fixture()
def auth_headers(client):
    return signup_and_login(client)


@pytest.fixture()
def other_auth_headers(client):
    return signup_and_login(client)
