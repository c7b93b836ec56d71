"""Database engine and session factory construction."""

import logging
from typing import Callable

from sqlalchemy import Engine, create_engine, text
from sqlalchemy.orm import Session, sessionmaker

from models import Base

logger = logging.getLogger(__name__)


def _normalize_sync_url(url: str) -> str:
    """Swap async drivers for sync ones; gateways use sync sessions in worker threads."""
    if url.startswith("postgresql+asyncpg://"):
        return url.replace("postgresql+asyncpg://", "postgresql+psycopg://", 1)
    if url.startswith("sqlite+aiosqlite://"):
        return url.replace("sqlite+aiosqlite://", "sqlite://", 1)
    return url


def create_sync_engine(url: str) -> Engine:
    """Create a sync engine usable from worker threads."""
    normalized = _normalize_sync_url(url)
    connect_args: dict[str, object] = {}
    if normalized.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(normalized, pool_pre_ping=True, connect_args=connect_args)


def create_session_factory(engine: Engine) -> Callable[[], Session]:
    """Return a session factory bound to the engine."""
    return sessionmaker(bind=engine, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    """Create any missing tables."""
    Base.metadata.create_all(engine)
    logger.info("Database tables ensured")


def check_connection(engine: Engine) -> bool:
    """Check if database connection is working."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database connection check failed: {e}")
        return False
