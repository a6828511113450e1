"""
Database configuration and session management for the SQL storage backend.

Only used when ``STORAGE_BACKEND=sql``; the engine is created lazily so
the hosted-backend deployment never opens a local database.
"""
import os
from pathlib import Path
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

_engine: Optional[Engine] = None
_SessionLocal: Optional[sessionmaker] = None


def _ensure_sqlite_dir(url: str) -> None:
    """Create the parent directory of a file-backed SQLite database."""
    prefix = "sqlite:///"
    if url.startswith(prefix) and ":memory:" not in url:
        db_dir = Path(url[len(prefix):]).parent
        if str(db_dir):
            db_dir.mkdir(parents=True, exist_ok=True)


def get_engine(database_url: Optional[str] = None) -> Engine:
    """Get or create the database engine."""
    global _engine, _SessionLocal

    if _engine is None:
        from matchledger.core.config import settings
        url = database_url or settings.DATABASE_URL
        _ensure_sqlite_dir(url)

        connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
        _engine = create_engine(
            url,
            pool_pre_ping=True,  # Verify connections before using
            connect_args=connect_args,
            echo=os.getenv("SQL_ECHO", "false").lower() == "true"
        )
        _SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=_engine)

    return _engine


def get_session_factory(database_url: Optional[str] = None) -> sessionmaker:
    """Return the session factory, creating the engine on first use."""
    get_engine(database_url)
    return _SessionLocal


def init_db(engine: Optional[Engine] = None) -> None:
    """Initialize database tables."""
    from matchledger.models.models import Base
    Base.metadata.create_all(bind=engine or get_engine(), checkfirst=True)
