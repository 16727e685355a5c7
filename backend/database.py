"""Database setup and session management."""

import logging
from functools import lru_cache

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from config import settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


def engine_connect_args(database_url: str, busy_timeout: float) -> dict:
    """Build DBAPI connect args for the given URL.

    SQLite connections are shared across the server's worker threads and
    wait at most ``busy_timeout`` seconds for a competing writer before
    raising ``OperationalError`` ("database is locked").
    """
    if database_url.startswith("sqlite"):
        return {"check_same_thread": False, "timeout": busy_timeout}
    return {}


@lru_cache
def get_engine():
    """Get or create the database engine (cached)."""
    database_url = settings.DATABASE_URL
    engine = create_engine(
        database_url,
        connect_args=engine_connect_args(database_url, settings.DB_BUSY_TIMEOUT_SECONDS),
        echo=False,
    )
    logger.info("Database engine created for %s", engine.url.render_as_string(hide_password=True))
    return engine


def get_session_local():
    """Get a sessionmaker bound to the engine."""
    return sessionmaker(autocommit=False, autoflush=False, bind=get_engine())


def get_db():
    """Dependency that provides a database session.

    Transaction conventions:
    - Repositories (``AccountLedger``, ``HoldingsStore``, ``TransactionLog``)
      only ``flush()``
    - ``TransactionProcessor`` owns ``commit()``/``rollback()`` for every
      ledger mutation
    - ``AccountLedger.open_account`` and ``set_sharing`` commit themselves
    """
    SessionLocal = get_session_local()
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
