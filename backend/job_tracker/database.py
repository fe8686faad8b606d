"""Database engine, session management, and initialization."""

from __future__ import annotations

from typing import Generator

import structlog
from fastapi import Request
from sqlalchemy import create_engine, event, make_url
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from job_tracker.config import AppConfig
from job_tracker.models import Base

logger = structlog.get_logger(__name__)


def _enable_sqlite_wal(dbapi_conn: object, _connection_record: object) -> None:
    """Enable WAL mode for SQLite for better concurrent read performance."""
    cursor = dbapi_conn.cursor()  # type: ignore[union-attr]
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _is_memory_sqlite(url: str) -> bool:
    return url in ("sqlite://", "sqlite:///:memory:")


def redacted_url(url: str) -> str:
    """*url* with any password masked, for logging."""
    return make_url(url).render_as_string(hide_password=True)


def create_db_engine(config: AppConfig) -> Engine:
    """Create the engine for ``config.database_url`` with SQLite tweaks applied."""
    url = config.database_url
    if not url.startswith("sqlite"):
        return create_engine(url, echo=False, pool_pre_ping=True)

    if _is_memory_sqlite(url):
        # One shared connection, otherwise every session sees an empty database.
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            echo=False,
        )

    engine = create_engine(
        url,
        connect_args={"check_same_thread": False},
        echo=False,
        pool_pre_ping=True,
    )
    event.listen(engine, "connect", _enable_sqlite_wal)
    return engine


def init_db(config: AppConfig) -> sessionmaker[Session]:
    """Create the engine and tables, and return a session factory."""
    engine = create_db_engine(config)
    Base.metadata.create_all(bind=engine)
    logger.info("database_initialized", url=redacted_url(config.database_url))
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


def get_db(request: Request) -> Generator[Session, None, None]:
    """FastAPI dependency that yields a database session with commit/rollback."""
    factory: sessionmaker[Session] = request.app.state.session_factory
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
