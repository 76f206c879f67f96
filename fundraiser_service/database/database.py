from contextlib import contextmanager
import time
from typing import Iterator

from sqlalchemy import create_engine, text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool
import structlog

from fundraiser_service.core.config import get_settings
from fundraiser_service.models import Base

settings = get_settings()
logger = structlog.get_logger(__name__)


def _engine_options(database_url: str) -> dict:
    if database_url.startswith("sqlite"):
        options = {"connect_args": {"check_same_thread": False}}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            # A single shared connection, otherwise each session gets its own empty database
            options["poolclass"] = StaticPool
        return options

    return {
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_pre_ping": True,
        "pool_recycle": 300,
    }


engine = create_engine(settings.database_url, echo=False, **_engine_options(settings.database_url))

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def wait_for_db(retries: int = None, delay: float = None):
    """Block until the database accepts connections (containers start in any order)"""
    retries = retries or settings.db_connect_retries
    delay = delay if delay is not None else settings.db_connect_retry_delay

    for attempt in range(1, retries + 1):
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            logger.info("Database reachable", attempt=attempt)
            return
        except OperationalError as e:
            if attempt == retries:
                logger.error("Database unreachable, giving up", attempts=retries, error=str(e))
                raise
            logger.warning("Database not reachable yet", attempt=attempt, retries=retries, error=str(e))
            time.sleep(delay)


def init_db():
    """Wait for the database, then create any missing ledger tables"""
    wait_for_db()
    Base.metadata.create_all(bind=engine)
    logger.info("Ledger tables ready", tables=sorted(Base.metadata.tables))


def get_db():
    """Request-scoped session for FastAPI routes"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def session_scope() -> Iterator[Session]:
    """Session for work outside a request (Kafka consumer, CLI)"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def close_db():
    engine.dispose()
    logger.info("Database engine disposed")
