"""
Database engine, session factory, and metadata shared across the application.
"""

from __future__ import annotations

import logging
from typing import Any, Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeMeta, Session, declarative_base, sessionmaker

from tutorbook.core.config import settings

logger = logging.getLogger(__name__)


def _engine_kwargs(url: str) -> dict[str, Any]:
    kwargs: dict[str, Any] = {"echo": settings.database_echo, "future": True}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
    else:
        kwargs.update({"pool_pre_ping": True, "pool_recycle": 300, "pool_size": 5, "max_overflow": 5})
    return kwargs


def build_engine(url: str | None = None) -> Engine:
    """Create an engine for the configured (or given) database URL."""
    resolved = url or settings.database_url
    logger.info("Creating database engine for dialect %s", resolved.split(":", 1)[0])
    return create_engine(resolved, **_engine_kwargs(resolved))


engine = build_engine()

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)

Base: DeclarativeMeta = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """Get database session with proper cleanup."""
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db(bind: Engine | None = None) -> None:
    """Create all tables known to the metadata."""
    import tutorbook.models  # noqa: F401

    Base.metadata.create_all(bind or engine)


__all__ = ["Base", "SessionLocal", "engine", "build_engine", "get_db", "init_db"]
