# File: serialtrack/db/session.py
"""
Database session management for SerialTrack.

Usage:
    from serialtrack.db.session import get_db

    # In FastAPI dependency
    def some_endpoint(db: Session = Depends(get_db)):
        ...
"""

import logging
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session

from serialtrack.core.config import settings
from serialtrack.db.models.base import Base

logger = logging.getLogger(__name__)


def _create_engine(database_url: str):
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False

    db_engine = create_engine(database_url, connect_args=connect_args, pool_pre_ping=True)

    if database_url.startswith("sqlite"):

        @event.listens_for(db_engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return db_engine


engine = _create_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """
    Get a database session with proper resource management.

    Returns:
        SQLAlchemy Session for database operations
    """
    logger.debug("Creating DB session")
    db = SessionLocal()
    try:
        yield db
    except Exception as e:
        logger.error(f"Error in get_db: {e}")
        raise
    finally:
        db.close()
        logger.debug("Closed DB session")


def init_db(reset: bool = False) -> None:
    """
    Create all tables, optionally dropping them first.

    Args:
        reset: Drop every table before creating
    """
    # Import models so they register on Base.metadata
    from serialtrack.db import models  # noqa: F401

    if reset:
        logger.warning("Dropping all tables before re-creating schema")
        Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    logger.info("Database schema initialized")
