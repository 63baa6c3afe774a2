"""
Shared pytest fixtures.

Uses a SQLite database file so no Postgres is required for tests.
Tests isolate their data by user_id (see the `user_id` fixture) rather
than by wiping tables between tests.
"""
import uuid

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.db.base import Base, get_db
from app.main import app
import app.models as _models  # noqa: F401  (registers every table on Base.metadata)

SQLITE_URL = "sqlite:///./test_discipline.db"

engine = create_engine(SQLITE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


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
def client(db):
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def user_id() -> str:
    return f"user-{uuid.uuid4().hex[:12]}"


@pytest.fixture()
def profile_payload() -> dict:
    return {
        "wake_up_time": "07:00",
        "sleep_time": "23:00",
        "available_hours": 6,
        "academic_goals": ["Linear algebra", "Thesis chapter 2"],
        "skill_goals": ["Guitar"],
        "energy_pattern": "morning",
    }
