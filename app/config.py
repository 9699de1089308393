"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from db.config import load_env_files
from lifecycle.timezones import DEFAULT_TIMEZONE


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


def _get_optional_str_env(name: str) -> str | None:
    """
    Read an optional string value from environment variables.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return None
    stripped = value.strip()
    return stripped if stripped else None


@dataclass(frozen=True)
class AnalyticsSettings:
    """
    Runtime settings for the subscription analytics engine.
    """

    timezone: str = DEFAULT_TIMEZONE
    classification_rules_path: str | None = None
    count_unique_cancellations: bool = False
    default_page_size: int = 50
    max_page_size: int = 500


@lru_cache(maxsize=1)
def get_analytics_settings() -> AnalyticsSettings:
    """
    Return cached analytics settings from environment variables.
    """

    max_page_size = max(1, _get_int_env("ANALYTICS_MAX_PAGE_SIZE", 500))
    return AnalyticsSettings(
        timezone=_get_str_env("ANALYTICS_TIMEZONE", DEFAULT_TIMEZONE),
        classification_rules_path=_get_optional_str_env("EVENT_CLASSIFICATION_RULES_PATH"),
        count_unique_cancellations=_get_bool_env("ANALYTICS_COUNT_UNIQUE_CANCELLATIONS", False),
        default_page_size=min(max_page_size, max(1, _get_int_env("ANALYTICS_DEFAULT_PAGE_SIZE", 50))),
        max_page_size=max_page_size,
    )
