"""Shared pytest fixtures for backend tests."""

import os

# Settings are read at import time: configure before importing the app.
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("STORE_BACKEND", "sql")
os.environ.setdefault("USER_LOCK_BACKEND", "local")
os.environ.setdefault("QUESTION_CACHE_ENABLED", "false")
os.environ.setdefault("QUIZ_SESSIONS_ENABLED", "false")
os.environ.setdefault("RATE_LIMIT_SUBMIT_RPM", "0")
os.environ.setdefault("CELERY_TASK_ALWAYS_EAGER", "true")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from quiz_gamification.core.security import create_access_token
from quiz_gamification.db.models import Question, Quiz
from quiz_gamification.db.session import Base, get_db
from quiz_gamification.main import app
from quiz_gamification.store.sql import SqlRecordStore


# Use an in-memory SQLite database for testing with static pool
SQLALCHEMY_TEST_URL = "sqlite:///:memory:"
engine = create_engine(
    SQLALCHEMY_TEST_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,  # Use StaticPool to keep connection alive
    echo=False,
)
TestSession = sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture(scope="function")
def db():
    """Fresh tables and session for each test (the record store commits)."""
    Base.metadata.create_all(bind=engine)
    session = TestSession()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def store(db: Session) -> SqlRecordStore:
    return SqlRecordStore(db)


@pytest.fixture(scope="function")
def client(db: Session):
    """FastAPI test client with overridden DB dependency."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    # Remove TrustedHostMiddleware for tests to allow 'testserver' host
    app.user_middleware = [m for m in app.user_middleware if "TrustedHost" not in str(m)]

    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


# ── Helpers ────────────────────────────────────────────────────────────────────


def make_token(user_id: str = "user-1", **claims) -> str:
    return create_access_token({"sub": user_id, **claims})


def auth(user_id: str = "user-1") -> dict:
    return {"Authorization": f"Bearer {make_token(user_id)}"}


def add_quiz(
    db: Session,
    questions: list[dict] | None = None,
    *,
    title: str = "General Knowledge",
    category: str | None = "science",
    **quiz_fields,
) -> tuple[Quiz, list[Question]]:
    """Insert a quiz with *questions* (defaults: three 10-point, 30 s questions)."""
    quiz = Quiz(title=title, category=category, **quiz_fields)
    db.add(quiz)
    db.commit()
    db.refresh(quiz)

    if questions is None:
        questions = [
            {
                "question_text": f"Question {i}?",
                "option_a": "A",
                "option_b": "B",
                "option_c": "C",
                "option_d": "D",
                "correct_answer": "A",
                "hint": f"Hint {i}" if i == 1 else None,
                "explanation": f"Because {i}",
            }
            for i in range(1, 4)
        ]
    rows = [Question(quiz_id=quiz.id, **q) for q in questions]
    db.add_all(rows)
    db.commit()
    for row in rows:
        db.refresh(row)
    return quiz, rows


class FakeRedis:
    """Just enough of a redis client for the session and cache helpers."""

    def __init__(self):
        self.data: dict[str, str] = {}

    def get(self, key):
        return self.data.get(key)

    def setex(self, key, ttl, value):
        self.data[key] = value
