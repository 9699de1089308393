"""
db/config.py

Environment-driven configuration for the read-only record store.
"""

from __future__ import annotations

import os
from pathlib import Path

_ENV_FILES = (".env", ".env.local")


def load_env_files() -> None:
    """
    Load simple KEY=VALUE pairs from `.env` and `.env.local` (if present).
    Existing process environment variables are not overwritten.
    """

    project_root = Path(__file__).resolve().parents[1]
    for filename in _ENV_FILES:
        env_path = project_root / filename
        if not env_path.exists():
            continue

        for raw_line in env_path.read_text(encoding="utf-8").splitlines():
            line = raw_line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue

            key, value = line.split("=", 1)
            key = key.strip()
            value = value.strip().strip('"').strip("'")
            if key and key not in os.environ:
                os.environ[key] = value


def normalize_postgres_url(url: str) -> str:
    """
    Normalize postgres URLs to SQLAlchemy's psycopg driver form.
    """

    for prefix in ("postgres://", "postgresql://"):
        if url.startswith(prefix):
            return url.replace(prefix, "postgresql+psycopg://", 1)
    return url


def resolve_database_url() -> str:
    """
    Resolve the record-store URL.

    The analytics engine only reads, so a replica is preferred when one is
    configured.

    Priority:
    1) READ_REPLICA_DATABASE_URL
    2) DATABASE_URL
    3) LOCAL_DATABASE_URL
    """

    load_env_files()

    for name in ("READ_REPLICA_DATABASE_URL", "DATABASE_URL", "LOCAL_DATABASE_URL"):
        value = os.getenv(name, "").strip()
        if value:
            return normalize_postgres_url(value)

    raise RuntimeError(
        "No database URL configured. Set READ_REPLICA_DATABASE_URL, "
        "DATABASE_URL or LOCAL_DATABASE_URL."
    )
