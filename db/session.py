"""
Engine and sessions for the export job store.

Nothing connects at import time; the engine is built on first use so the
CLI and the worker never need a database.
"""

from __future__ import annotations

from collections.abc import Iterator
from functools import lru_cache

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from db.config import DatabaseSettings


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    settings = DatabaseSettings.from_env()
    return create_engine(
        settings.url,
        echo=settings.echo,
        pool_pre_ping=True,
        pool_size=settings.pool_size,
        max_overflow=settings.max_overflow,
        pool_recycle=settings.pool_recycle_seconds,
    )


@lru_cache(maxsize=1)
def _session_factory() -> sessionmaker[Session]:
    # Job rows are read after commit by the API responses.
    return sessionmaker(bind=get_engine(), autoflush=False, expire_on_commit=False)


def SessionLocal() -> Session:
    """Open a new session on the shared engine."""
    return _session_factory()()


def get_db() -> Iterator[Session]:
    """FastAPI dependency yielding one session per request."""
    with SessionLocal() as db:
        yield db
