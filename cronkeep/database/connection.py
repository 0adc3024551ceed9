"""
Database connection management for cronkeep.

Provides a lazily created SQLAlchemy engine and session factory bound to
the configured database URL, plus a session context manager that commits
on success and rolls back on error.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from cronkeep.config import CronkeepConfig, get_config

logger = logging.getLogger(__name__)

# Global engine and session factory (lazy-loaded)
_engine: Optional[Engine] = None
_SessionLocal: Optional[sessionmaker] = None


def get_db_path(config: Optional[CronkeepConfig] = None) -> Optional[Path]:
    """
    Get the database file path for SQLite URLs.

    Args:
        config: cronkeep configuration (uses global if not provided)

    Returns:
        Path to the SQLite database file, or None for in-memory and
        non-SQLite databases
    """
    if config is None:
        config = get_config()

    db_url = config.database_url
    if db_url.startswith("sqlite:///") and db_url != "sqlite:///:memory:":
        return Path(db_url[len("sqlite:///"):])
    return None


def init_engine(config: Optional[CronkeepConfig] = None) -> Engine:
    """
    Initialize the SQLAlchemy engine.

    Args:
        config: cronkeep configuration (uses global if not provided)

    Returns:
        Configured SQLAlchemy engine
    """
    global _engine

    if _engine is not None:
        return _engine

    if config is None:
        config = get_config()

    if not config.is_sqlite:
        _engine = create_engine(config.database_url, pool_pre_ping=True, echo=False)
        logger.debug(f"Database engine initialized: {config.database_url}")
        return _engine

    # Ensure database directory exists
    db_path = get_db_path(config)
    if db_path is not None:
        db_path.parent.mkdir(parents=True, exist_ok=True)

    _engine = create_engine(
        config.database_url,
        connect_args={
            "check_same_thread": False,  # Loops share the engine
            "timeout": config.scheduler.sqlite_timeout,
        },
        pool_pre_ping=True,
        echo=False,
    )

    @event.listens_for(_engine, "connect")
    def set_sqlite_pragma(dbapi_conn, connection_record):
        """Enable SQLite foreign key support."""
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    logger.debug(f"Database engine initialized: {config.database_url}")
    return _engine


def get_session_maker(config: Optional[CronkeepConfig] = None) -> sessionmaker:
    """
    Get or create the session maker.

    Sessions do not expire objects on commit, so records returned from a
    closed session keep their loaded attributes.

    Args:
        config: cronkeep configuration (uses global if not provided)

    Returns:
        Configured session maker
    """
    global _SessionLocal

    if _SessionLocal is not None:
        return _SessionLocal

    engine = init_engine(config)
    _SessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        bind=engine,
    )

    return _SessionLocal


@contextmanager
def get_db_session(config: Optional[CronkeepConfig] = None) -> Generator[Session, None, None]:
    """
    Get a database session context manager.

    Usage:
        with get_db_session() as session:
            job = session.query(CronJobRecord).first()

    Args:
        config: cronkeep configuration (uses global if not provided)

    Yields:
        SQLAlchemy Session
    """
    SessionLocal = get_session_maker(config)
    session = SessionLocal()

    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def dispose_engine() -> None:
    """Dispose the global engine and forget the session factory."""
    global _engine, _SessionLocal

    if _engine is not None:
        _engine.dispose()
        logger.debug("Database engine disposed")
    _engine = None
    _SessionLocal = None


def create_tables(config: Optional[CronkeepConfig] = None) -> None:
    """
    Create all database tables that do not exist yet.

    Args:
        config: cronkeep configuration (uses global if not provided)
    """
    from cronkeep.database.models import Base

    engine = init_engine(config)
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created")


def drop_tables(config: Optional[CronkeepConfig] = None) -> None:
    """
    Drop all database tables.

    WARNING: This will delete all data!

    Args:
        config: cronkeep configuration (uses global if not provided)
    """
    from cronkeep.database.models import Base

    engine = init_engine(config)
    Base.metadata.drop_all(bind=engine)
    logger.warning("Database tables dropped")
