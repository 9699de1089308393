from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI

from app.schemas.subscription_analytics import HealthResponse


def _validate_env() -> None:
    """
    Validate all required environment variables at startup.

    Runs before any service or database connection is initialised.
    Raises RuntimeError listing every missing or invalid variable so the
    operator can fix all problems in one restart cycle.

    Rules:
    - One of READ_REPLICA_DATABASE_URL, DATABASE_URL or LOCAL_DATABASE_URL
      must be set; empty strings are not accepted.
    - ANALYTICS_TIMEZONE, when set, must be a known IANA zone.
    - EVENT_CLASSIFICATION_RULES_PATH, when set, must point at a readable
      rule file.
    - DB_STATEMENT_TIMEOUT_MS, when set, must be a positive integer.
    """

    import pytz

    from app.config import get_analytics_settings
    from db.config import load_env_files
    from lifecycle.classifier import load_rules_file

    load_env_files()

    errors: list[str] = []

    # --- Database URL ---------------------------------------------------
    if not any(
        os.getenv(name, "").strip()
        for name in ("READ_REPLICA_DATABASE_URL", "DATABASE_URL", "LOCAL_DATABASE_URL")
    ):
        errors.append(
            "No database URL configured. Set READ_REPLICA_DATABASE_URL, "
            "DATABASE_URL or LOCAL_DATABASE_URL."
        )

    settings = get_analytics_settings()

    # --- Timezone -------------------------------------------------------
    try:
        pytz.timezone(settings.timezone)
    except pytz.UnknownTimeZoneError:
        errors.append(
            f"ANALYTICS_TIMEZONE='{settings.timezone}' is not a known timezone."
        )

    # --- Classification rules -------------------------------------------
    if settings.classification_rules_path:
        try:
            load_rules_file(settings.classification_rules_path)
        except (OSError, ValueError) as exc:
            errors.append(
                f"EVENT_CLASSIFICATION_RULES_PATH='{settings.classification_rules_path}' "
                f"could not be loaded: {exc}"
            )

    # --- Statement timeout ----------------------------------------------
    timeout_raw = os.getenv("DB_STATEMENT_TIMEOUT_MS", "").strip()
    if timeout_raw and (not timeout_raw.isdigit() or int(timeout_raw) <= 0):
        errors.append(
            f"DB_STATEMENT_TIMEOUT_MS='{timeout_raw}' must be a positive integer."
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


def _check_db() -> None:
    """Open a session and run SELECT 1. Raises RuntimeError if the DB is unreachable."""
    from sqlalchemy import text

    from db.session import SessionLocal

    try:
        db = SessionLocal()
        try:
            db.execute(text("SELECT 1"))
        finally:
            db.close()
    except Exception as exc:
        raise RuntimeError("Database unavailable.") from exc


def _check_schema() -> None:
    """
    Compare Base.metadata table names against the live DB schema.

    Every table registered on Base.metadata must exist in the database.
    If any are missing, log a critical error and abort startup so that
    the operator is forced to run migrations before serving traffic.

    Does NOT auto-migrate.
    """
    from sqlalchemy import inspect as sa_inspect

    import db.models  # noqa: F401  registers all ORM models on Base.metadata
    from db.base import Base
    from db.session import get_engine

    inspector = sa_inspect(get_engine())
    actual: set[str] = set(inspector.get_table_names())
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
    """Validate DB connectivity and schema on boot."""
    _check_db()
    logging.getLogger(__name__).info("Database connectivity confirmed")
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
        title="Subscription Lifecycle Analytics API",
        version="1.0.0",
        lifespan=_lifespan,
    )

    from app.api.routers import subscription_analytics_router
    from app.config import get_analytics_settings

    application.include_router(subscription_analytics_router)

    @application.get("/health", response_model=HealthResponse)
    def healthcheck() -> HealthResponse:
        return HealthResponse(status="ok", timezone=get_analytics_settings().timezone)

    return application


app = create_app()
