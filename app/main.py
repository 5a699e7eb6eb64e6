from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI


def _validate_env() -> None:
    """
    Validate required environment variables at startup.

    Raises RuntimeError listing every missing or invalid variable so the
    operator can fix all problems in one restart cycle.
    """

    from db.config import load_env_files

    load_env_files()

    errors: list[str] = []

    # --- Database URL ---------------------------------------------------
    url_vars = ("EXPORT_DATABASE_URL", "DATABASE_URL", "CLOUD_DATABASE_URL", "LOCAL_DATABASE_URL")
    if not any(os.getenv(name, "").strip() for name in url_vars):
        errors.append(f"No database URL configured. Set one of: {', '.join(url_vars)}.")

    # --- Export defaults ------------------------------------------------
    for name, allowed in (
        ("EXPORT_GRAPH_MODE", {"full", "minimal", "skip"}),
        ("EXPORT_ENTITY_SOURCE", {"graphdb", "cheimarros", "both"}),
    ):
        value = os.getenv(name, "").strip().lower()
        if value and value not in allowed:
            errors.append(f"{name}='{value}' is not valid. Allowed values: {sorted(allowed)}.")

    if errors:
        raise RuntimeError(
            "Startup validation failed - missing or invalid environment variables:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )


def _configure_logging() -> None:
    """
    Configure root logging once for the API process.
    """

    log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def _check_schema() -> None:
    """
    Every table registered on Base.metadata must exist in the database.

    Does NOT auto-migrate.
    """
    from sqlalchemy import inspect as sa_inspect

    import db.models  # noqa: F401  registers all ORM models on Base.metadata
    from db.base import Base
    from db.session import get_engine

    try:
        inspector = sa_inspect(get_engine())
        actual: set[str] = set(inspector.get_table_names())
    except Exception as exc:
        raise RuntimeError("Database unavailable.") from exc

    missing = set(Base.metadata.tables.keys()) - actual
    if missing:
        logging.getLogger(__name__).critical(
            "Schema mismatch: table(s) absent from the database: %s. Run 'alembic upgrade head' and restart.",
            ", ".join(sorted(missing)),
        )
        raise RuntimeError(
            f"Schema mismatch: {len(missing)} table(s) missing from the database "
            f"({', '.join(sorted(missing))}). Run migrations and restart."
        )


@asynccontextmanager
async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Validate DB connectivity and schema on boot."""
    _check_schema()
    logging.getLogger(__name__).info("Database schema validated")
    yield


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """

    _validate_env()
    _configure_logging()

    application = FastAPI(
        title="MODS Export API",
        version="1.0.0",
        lifespan=_lifespan,
    )

    from app.api.routers import export_router

    application.include_router(export_router)

    @application.get("/health")
    def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    return application


app = create_app()
