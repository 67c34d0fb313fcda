"""Database connection management for Courier Bridge.

Usage:
    from courier_bridge.db.connection import get_db, init_db

    init_db()  # Create tables
    db = next(get_db())
    # ... use db session
"""

import os
from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker

from courier_bridge.db.models import Base


def get_database_url() -> str:
    """Get database URL from environment or use default SQLite.

    Precedence:
    1. DATABASE_URL (canonical)
    2. COURIER_BRIDGE_DB_PATH (converted to sqlite URL)
    3. courier_bridge.db in the platform data directory
    """
    database_url = os.environ.get("DATABASE_URL", "").strip()
    if database_url:
        return database_url

    db_path = os.environ.get("COURIER_BRIDGE_DB_PATH", "").strip()
    if db_path:
        if db_path.startswith("sqlite:"):
            return db_path
        return f"sqlite:///{db_path}"

    from courier_bridge.utils.paths import get_default_db_path
    return f"sqlite:///{get_default_db_path()}"


DATABASE_URL = get_database_url()

engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False}
    if DATABASE_URL.startswith("sqlite")
    else {},
    echo=os.environ.get("SQL_ECHO", "").lower() == "true",
)


@event.listens_for(engine, "connect")
def set_sqlite_pragma(dbapi_connection: Any, connection_record: Any) -> None:
    """Enable foreign keys on SQLite so link rows cascade with couriers."""
    if DATABASE_URL.startswith("sqlite"):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)


def get_db() -> Generator[Session, None, None]:
    """Yield a request-scoped database session for FastAPI's Depends().

    Yields:
        Session: SQLAlchemy session that will be closed after use.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def get_db_context() -> Generator[Session, None, None]:
    """Context manager for database sessions outside of FastAPI.

    Commits on success, rolls back on error.

    Usage:
        with get_db_context() as db:
            courier = db.query(Courier).first()
    """
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db() -> None:
    """Create all database tables. Safe to call multiple times."""
    Base.metadata.create_all(bind=engine)


def close_db() -> None:
    """Dispose of the engine connection pool."""
    engine.dispose()
