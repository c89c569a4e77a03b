"""
Database connection management.
"""

import logging
from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from dwd_sync.config.settings import get_settings
from dwd_sync.db.models import Base

logger = logging.getLogger(__name__)

# Global engine and session factory
_engine: Optional[Engine] = None
_SessionLocal: Optional[sessionmaker] = None


def get_engine() -> Engine:
    """Get or create the database engine."""
    global _engine
    if _engine is None:
        settings = get_settings()
        url = make_url(settings.database_url)
        kwargs = {"pool_pre_ping": True, "echo": settings.log_level == "DEBUG"}
        if url.get_backend_name() != "sqlite":
            # One writer per feed plus the pruning pass
            kwargs.update(pool_size=settings.db_pool_size, max_overflow=5)
        _engine = create_engine(url, **kwargs)
        logger.info(f"Database engine created: {url.render_as_string(hide_password=True)}")
    return _engine


def get_session_factory() -> sessionmaker:
    """Get or create the session factory."""
    global _SessionLocal
    if _SessionLocal is None:
        engine = get_engine()
        _SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    return _SessionLocal


@contextmanager
def get_db_session() -> Generator[Session, None, None]:
    """Context manager for database sessions."""
    SessionLocal = get_session_factory()
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_schema(engine: Optional[Engine] = None, reset: bool = False) -> None:
    """Create the station, measurement and forecast tables if they don't exist."""
    engine = engine or get_engine()
    if reset:
        Base.metadata.drop_all(engine)
        logger.info("Dropped all tables")
    Base.metadata.create_all(engine)
    logger.info(f"Tables ready: {', '.join(sorted(Base.metadata.tables))}")


def test_connection(engine: Optional[Engine] = None) -> bool:
    """Test database connection."""
    try:
        engine = engine or get_engine()
        with engine.connect() as conn:
            result = conn.execute(text("SELECT 1"))
            row = result.fetchone()
            if row and row[0] == 1:
                logger.debug("Database connection test: OK")
                return True
    except SQLAlchemyError as e:
        logger.error(f"Database connection test failed: {e}")
    return False


def close_engine() -> None:
    """Close the database engine."""
    global _engine, _SessionLocal
    if _engine is not None:
        _engine.dispose()
        _engine = None
        _SessionLocal = None
        logger.info("Database engine closed")
