"""Database sessions for the ``sql`` record-store backend.

With ``STORE_BACKEND=postgrest`` the service reads and writes through
Supabase's REST API and never opens a database connection: ``get_db``
yields ``None`` and no engine is created.
"""

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from quiz_gamification.config import settings

_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


class Base(DeclarativeBase):
    """Declarative base for the quiz tables."""


def uses_database() -> bool:
    return settings.STORE_BACKEND == "sql"


def get_engine() -> Engine:
    """Engine for ``DATABASE_URL``, created on first use."""
    global _engine
    if _engine is None:
        _engine = create_engine(
            settings.DATABASE_URL,
            echo=settings.DATABASE_ECHO,
            pool_pre_ping=True,
        )
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(bind=get_engine(), autocommit=False, autoflush=False)
    return _session_factory


@contextmanager
def session_scope() -> Iterator[Session]:
    """A session that is always closed; the record store commits its own writes."""
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.close()


def get_db() -> Iterator[Session | None]:
    """FastAPI dependency: a request-scoped session, or None without a database."""
    if not uses_database():
        yield None
        return
    with session_scope() as db:
        yield db
