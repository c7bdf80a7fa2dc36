"""Database engine and session management."""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.engine.url import make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..config import Settings
from .models import Base

logger = logging.getLogger(__name__)


def create_db_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Create an engine for the durable store.

    SQLite file databases get their parent directory created; in-memory
    SQLite uses a single shared connection so every session sees the same
    data.

    Args:
        database_url: SQLAlchemy URL
        echo: Log all SQL statements

    Returns:
        Configured engine
    """
    url = make_url(database_url)
    kwargs = {"echo": echo}

    if url.get_backend_name() == "sqlite":
        kwargs["connect_args"] = {"check_same_thread": False}
        if url.database in (None, "", ":memory:"):
            kwargs["poolclass"] = StaticPool
        else:
            db_path = Path(url.database).expanduser()
            db_path.parent.mkdir(parents=True, exist_ok=True)
            url = url.set(database=str(db_path))
    else:
        kwargs["pool_pre_ping"] = True  # Verify connections before using

    engine = create_engine(url, **kwargs)

    if url.get_backend_name() == "sqlite":

        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_conn, connection_record):
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA foreign_keys = ON")
            cursor.close()

    return engine


def init_db(engine: Engine) -> None:
    """Create all tables."""
    logger.debug("Initializing database...")
    Base.metadata.create_all(bind=engine)


def make_session_factory(engine: Engine) -> sessionmaker:
    """Session factory bound to engine."""
    return sessionmaker(
        autocommit=False, autoflush=False, expire_on_commit=False, bind=engine
    )


@contextmanager
def session_scope(factory: sessionmaker) -> Generator[Session, None, None]:
    """
    Transactional session scope.

    Commits on success, rolls back on error.

    Usage:
        with session_scope(factory) as session:
            session.add(record)
    """
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def engine_from_settings(settings: Settings) -> Engine:
    """Create and initialize the engine described by settings."""
    engine = create_db_engine(settings.database_url, echo=settings.sql_echo)
    init_db(engine)
    return engine
