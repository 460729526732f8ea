"""Shared test fixtures."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from questboard.db.database import enable_sqlite_foreign_keys, get_db
from questboard.db.models import Base
from questboard.main import app
from questboard.repositories.memory import InMemoryQuestRepository
from questboard.repositories.sql import SqlQuestRepository

# 모든 세션이 같은 인메모리 DB를 보도록 StaticPool 사용
TEST_ENGINE = create_engine(
    "sqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
enable_sqlite_foreign_keys(TEST_ENGINE)
TestSession = sessionmaker(bind=TEST_ENGINE, autocommit=False, autoflush=False)


def _override_get_db():
    db = TestSession()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = _override_get_db


@pytest.fixture(autouse=True)
def _fresh_schema():
    """테스트마다 빈 테이블"""
    Base.metadata.drop_all(TEST_ENGINE)
    Base.metadata.create_all(TEST_ENGINE)
    yield


@pytest.fixture()
def client() -> TestClient:
    """FastAPI TestClient wired to an in-memory SQLite database."""
    return TestClient(app)


@pytest.fixture()
def db_session() -> Session:
    """Raw database session for direct DB assertions."""
    session = TestSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(params=["sql", "memory"])
def repository(request, db_session):
    """두 백엔드에 같은 테스트를 돌린다"""
    if request.param == "sql":
        return SqlQuestRepository(db_session)
    return InMemoryQuestRepository()
