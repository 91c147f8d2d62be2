"""Database session and engine configuration."""

from contextlib import contextmanager
from typing import Generator, Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session, sessionmaker

from app.core.config import settings
from app.core.exceptions import StorageUnavailableError
from app.core.logging import get_logger

logger = get_logger("storage")


def build_engine(database_url: str, timeout: int = settings.DATABASE_TIMEOUT_SECONDS) -> Engine:
    """Create an engine with bounded waits on connections and locks."""
    if database_url.startswith("sqlite"):
        return create_engine(
            database_url,
            echo=settings.DEBUG,
            connect_args={"check_same_thread": False, "timeout": timeout},
        )

    return create_engine(
        database_url,
        echo=settings.DEBUG,
        pool_pre_ping=True,
        pool_timeout=timeout,
        connect_args={"connect_timeout": timeout},
    )


engine = build_engine(settings.DATABASE_URL)

SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


def get_db() -> Generator[Session, None, None]:
    """Dependency to get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def storage_guard(db: Session) -> Iterator[None]:
    """
    Run a unit of work, rolling the session back if anything fails.

    Transient storage failures are translated into StorageUnavailableError
    so callers can retry; no partial mutation survives either way.
    """
    try:
        yield
    except (OperationalError, PoolTimeoutError) as e:
        db.rollback()
        logger.error(f"Storage unavailable: {e.__class__.__name__}")
        raise StorageUnavailableError() from e
    except DBAPIError as e:
        db.rollback()
        if not e.connection_invalidated:
            raise
        logger.error("Storage connection lost")
        raise StorageUnavailableError() from e
    except Exception:
        db.rollback()
        raise
