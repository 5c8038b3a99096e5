"""
SQLAlchemy engine and session configuration.

Handles database connection setup with SQLite-specific optimizations.
"""

from pathlib import Path

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from .models import Base


def _set_sqlite_pragma(dbapi_connection, connection_record):
    """Enable WAL mode and a busy timeout for SQLite connections."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode = WAL")
    cursor.execute("PRAGMA busy_timeout = 5000")
    cursor.close()


def create_drover_engine(db_path: Path) -> Engine:
    """
    Create SQLAlchemy engine for the given database path.

    Connections are shared between the scheduler thread and worker
    threads; callers serialize access (see DatabaseContext.lock).

    Args:
        db_path: Path to SQLite database file

    Returns:
        Configured SQLAlchemy Engine
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)
    engine = create_engine(
        f"sqlite:///{db_path}",
        connect_args={"check_same_thread": False},
        echo=False,  # Set to True for SQL debugging
    )
    event.listen(engine, "connect", _set_sqlite_pragma)
    return engine


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    """
    Create a session factory for the engine.

    Args:
        engine: SQLAlchemy Engine

    Returns:
        Configured sessionmaker
    """
    return sessionmaker(bind=engine, expire_on_commit=False)


def init_database(engine: Engine) -> None:
    """
    Initialize database schema.

    Uses create_all() for declarative schema creation.

    Args:
        engine: SQLAlchemy Engine
    """
    Base.metadata.create_all(engine)
