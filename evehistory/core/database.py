"""Database connection and session management"""
import os
from contextlib import contextmanager
from typing import Callable, Generator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import URL
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from evehistory.core.config import settings

engine_kwargs = {
    "echo": settings.DEBUG,  # Log SQL queries in debug mode
}

# SQLite requires check_same_thread=False, HAP-python calls back from its own threads
if settings.DATABASE_URL.startswith("sqlite"):
    engine_kwargs["connect_args"] = {"check_same_thread": False}

engine = create_engine(settings.DATABASE_URL, **engine_kwargs)

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for ORM models
Base = declarative_base()


def ensure_sqlite_directory(url: URL) -> None:
    """Create the parent directory of a file based SQLite database."""
    if url.get_backend_name() != "sqlite":
        return
    database = url.database
    if not database or database == ":memory:" or database.startswith("file:"):
        return
    directory = os.path.dirname(os.path.abspath(database))
    os.makedirs(directory, exist_ok=True)


def init_db() -> None:
    """Create all tables known to the ORM metadata."""
    # Import models so they register with Base.metadata
    from evehistory.models import history_record  # noqa: F401

    ensure_sqlite_directory(engine.url)
    Base.metadata.create_all(bind=engine)


@contextmanager
def get_db_session(
    session_factory: Optional[Callable[[], Session]] = None,
) -> Generator[Session, None, None]:
    """
    Context manager for database sessions.

    Usage:
        with get_db_session() as db:
            record = db.get(HistoryRecord, key)
            db.commit()  # If modifications made

    Automatically handles:
    - Session creation (SessionLocal unless a factory is given)
    - Rollback on exception
    - Session cleanup (close)
    """
    db = (session_factory or SessionLocal)()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
