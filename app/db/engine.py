# app/db/engine.py
"""
Database engine and session management.

Connects to PostgreSQL. The engine is created on first use so the
in-memory backend never needs a database.
"""

from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Generator, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from ..settings import settings

SCHEMA_PATH = Path(__file__).with_name("schema.sql")

_engine: Optional[Engine] = None
_session_factory: Optional[Callable[[], Session]] = None


def build_engine(url: str) -> Engine:
    """Create an engine with connection pooling."""
    return create_engine(
        url,
        pool_pre_ping=True,  # Check connection health
        pool_size=10,
        max_overflow=20,
    )


def get_engine() -> Engine:
    """Get (or lazily create) the SQLAlchemy engine for DATABASE_URL."""
    global _engine
    if _engine is None:
        _engine = build_engine(settings.database_url)
    return _engine


def get_session_factory() -> Callable[[], Session]:
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(autoflush=False, bind=get_engine())
    return _session_factory


@contextmanager
def session_scope(
    session_factory: Optional[Callable[[], Session]] = None,
) -> Generator[Session, None, None]:
    """
    Context manager for database sessions.

    Commits on success, rolls back on error.

    Usage:
        with session_scope() as session:
            session.execute(...)
    """
    session = (session_factory or get_session_factory())()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def check_connection(session_factory: Optional[Callable[[], Session]] = None) -> bool:
    """
    Check database connection.

    Returns:
        True if connection successful
    """
    try:
        with session_scope(session_factory) as session:
            session.execute(text("SELECT 1"))
        return True
    except Exception:
        return False


def init_schema(engine: Optional[Engine] = None) -> None:
    """Apply schema.sql (idempotent: every statement uses IF NOT EXISTS)."""
    ddl = SCHEMA_PATH.read_text()
    statements = [s.strip() for s in ddl.split(";") if s.strip()]
    with (engine or get_engine()).begin() as conn:
        for statement in statements:
            conn.execute(text(statement))
