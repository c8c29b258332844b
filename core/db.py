# purvita/core/db.py
"""
Database management for the admin backend.
Single relational database, one engine per process.
"""
import logging
from contextlib import contextmanager
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session

from config import Config
from models.base import Base

logger = logging.getLogger(__name__)

# Database engine
_engine = None
_SessionFactory = None


def get_engine() -> Engine:
    """Get or create database engine."""
    global _engine
    if _engine is None:
        database_url = Config.get(Config.DATABASE_URL, "sqlite:///purvita.db")
        _engine = create_engine(
            database_url,
            echo=False,
            pool_pre_ping=True
        )
        logger.info(f"Database engine created: {database_url.split('@')[-1]}")
    return _engine


def use_engine(engine: Engine) -> None:
    """
    Replace the process engine (tests, one-off scripts).

    Resets the session factory so new sessions bind to the given engine.
    """
    global _engine, _SessionFactory
    _engine = engine
    _SessionFactory = None
    logger.debug("Database engine replaced")


def get_session_factory():
    """Get or create session factory."""
    global _SessionFactory
    if _SessionFactory is None:
        engine = get_engine()
        _SessionFactory = sessionmaker(bind=engine, expire_on_commit=False)
        logger.info("Session factory created")
    return _SessionFactory


def get_session() -> Session:
    """
    Get a new database session.

    Returns:
        Session instance
    """
    factory = get_session_factory()
    return factory()


@contextmanager
def get_db_session_ctx():
    """
    Context manager for database sessions.

    Usage:
        with get_db_session_ctx() as session:
            product = session.query(Product).first()
    """
    session = get_session()
    try:
        yield session
        session.commit()
    except Exception as e:
        session.rollback()
        logger.error(f"Database error: {e}")
        raise
    finally:
        session.close()


def setup_database():
    """Initialize database - create all tables."""
    logger.info("Setting up database...")
    # Register every mapped class on Base.metadata
    import models  # noqa: F401
    engine = get_engine()
    Base.metadata.create_all(engine)
    logger.info("Database setup completed")
