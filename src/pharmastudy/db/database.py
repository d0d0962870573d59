"""Database engine and session management.

Provides engine setup, schema initialization and a session context manager
for the PharmaStudy relational store.
"""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Generator

import structlog
from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from pharmastudy.config.app_config import load_app_config
from pharmastudy.db.models import Base

logger = structlog.get_logger(__name__)

# Current engine (module-level, configured once per process)
_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def _create_engine(database_url: str) -> Engine:
    """Create an engine, enabling foreign keys on SQLite."""
    if database_url.startswith("sqlite"):
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            # One shared connection so every session sees the same in-memory DB
            engine = create_engine(
                database_url,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            db_file = database_url.split("///", 1)[-1]
            Path(db_file).parent.mkdir(parents=True, exist_ok=True)
            engine = create_engine(database_url, connect_args={"check_same_thread": False})

        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys = ON")
            cursor.close()

        return engine

    return create_engine(database_url, pool_pre_ping=True)


def init_db(database_url: str | None = None) -> Engine:
    """Initialize database with schema.

    Creates all tables if they don't exist.

    Args:
        database_url: SQLAlchemy URL. Defaults to server.database_url from config.

    Returns:
        The configured engine
    """
    global _engine, _session_factory

    url = database_url or load_app_config().server.database_url

    if _engine is not None:
        _engine.dispose()

    _engine = _create_engine(url)
    _session_factory = sessionmaker(bind=_engine, autoflush=False, expire_on_commit=False)
    Base.metadata.create_all(bind=_engine)

    logger.info("database.initialized", url=_engine.url.render_as_string(hide_password=True))
    return _engine


def is_initialized() -> bool:
    """Whether init_db() has configured an engine in this process."""
    return _engine is not None


@contextmanager
def get_db() -> Generator[Session, None, None]:
    """Get ORM session as context manager.

    Commits on success, rolls back on any exception.

    Example:
        with get_db() as session:
            chapters = session.scalars(select(Chapter)).all()
    """
    if _session_factory is None:
        init_db()

    session = _session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_session() -> Generator[Session, None, None]:
    """FastAPI dependency yielding a request-scoped session."""
    with get_db() as session:
        yield session
