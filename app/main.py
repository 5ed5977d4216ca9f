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
    if not any(
        os.getenv(name, "").strip()
        for name in ("CRAWL_DATABASE_URL", "DATABASE_URL", "CLOUD_DATABASE_URL", "LOCAL_DATABASE_URL")
    ):
        errors.append(
            "No database URL configured. Set CRAWL_DATABASE_URL or DATABASE_URL, or "
            "configure LOCAL_DATABASE_URL / CLOUD_DATABASE_URL."
        )

    # --- Fetch proxy ----------------------------------------------------
    proxy_key = os.getenv("CRAWL_PROXY_API_KEY")
    if proxy_key is not None and not proxy_key.strip():
        errors.append(
            "CRAWL_PROXY_API_KEY is set but empty. Provide a key or unset it to crawl "
            "with the direct fetch tiers only."
        )

    if errors:
        raise RuntimeError(
            "Startup validation failed, missing or invalid environment variables:\n"
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


async def _check_db() -> None:
    """Run SELECT 1 on the crawl database. Raises RuntimeError if it is unreachable."""
    from sqlalchemy import text

    from db.session import get_engine

    try:
        async with get_engine().connect() as connection:
            await connection.execute(text("SELECT 1"))
    except Exception as exc:
        raise RuntimeError("Database unavailable.") from exc


async def _check_schema() -> None:
    """
    Every table registered on Base.metadata must exist in the database.

    Does NOT auto-migrate; a missing table aborts startup until
    'alembic upgrade head' has been run.
    """
    from sqlalchemy import inspect as sa_inspect

    import db.models  # noqa: F401 - registers all ORM models on Base.metadata
    from db.base import Base
    from db.session import get_engine

    async with get_engine().connect() as connection:
        actual: set[str] = set(
            await connection.run_sync(lambda sync_conn: sa_inspect(sync_conn).get_table_names())
        )
    expected: set[str] = set(Base.metadata.tables.keys())
    missing = expected - actual

    if missing:
        log = logging.getLogger(__name__)
        log.critical(
            "Schema mismatch: %d table(s) defined in ORM metadata are absent from "
            "the database: %s. Run 'alembic upgrade head' and restart.",
            len(missing),
            ", ".join(sorted(missing)),
        )
        raise RuntimeError(
            f"Schema mismatch: {len(missing)} table(s) missing from the database "
            f"({', '.join(sorted(missing))}). Run migrations and restart."
        )


@asynccontextmanager
async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Validate DB connectivity and schema, start scheduled crawls if enabled; clean up on exit."""
    from app.services.crawl_runtime_service import get_crawl_runtime
    from db.session import dispose_engine

    log = logging.getLogger(__name__)
    await _check_db()
    log.info("Database connectivity confirmed")
    await _check_schema()
    log.info("Database schema validated")

    runtime = get_crawl_runtime()
    if runtime.settings.scheduler_enabled:
        runtime.start_scheduler()
        log.info("Crawl scheduler started with jobs: %s", ", ".join(runtime.scheduler.job_ids))
    try:
        yield
    finally:
        runtime.orchestrator.stop()
        await runtime.aclose()
        await dispose_engine()
        log.info("Crawl runtime shut down")


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """

    _validate_env()
    _configure_logging()

    application = FastAPI(
        title="Broker Crawl API",
        version="1.0.0",
        lifespan=_lifespan,
    )

    from app.api.routers import crawl_router

    application.include_router(crawl_router)

    @application.get("/health")
    def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    return application


app = create_app()
