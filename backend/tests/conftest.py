import os

# settings are read at import time, so the environment is prepared first
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret-key-for-the-school-api-suite")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine

from schoolapi.auth import create_access_token
from schoolapi.database import create_db_and_tables, get_session
from schoolapi.main import app
from schoolapi.routes_timetable import get_course_index
from schoolapi.utils.course_index import CourseIndex


@pytest.fixture()
def engine():
    """A fresh in-memory SQLite database per test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_db_and_tables(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture()
def session(engine):
    with Session(engine) as s:
        yield s


@pytest.fixture()
def index():
    return CourseIndex()


@pytest.fixture()
def client(engine, index):
    def _get_session():
        with Session(engine) as s:
            yield s

    app.dependency_overrides[get_session] = _get_session
    app.dependency_overrides[get_course_index] = lambda: index
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def auth_headers():
    """Return a factory building Authorization headers for a user id and permission flags."""
    def _make(user_id: int = 1, **permissions):
        token = create_access_token(user_id, permissions)
        return {'Authorization': f'Bearer {token}'}
    return _make
