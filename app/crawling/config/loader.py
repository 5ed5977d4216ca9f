"""
Environment config loader for the crawl engine.
"""

from __future__ import annotations

import os
from functools import lru_cache

from db.config import load_env_files

from app.crawling.config.models import CrawlSettings

DEFAULT_PROXY_ENDPOINT = "https://api.brightdata.com/request"
DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; BrokerAnalysis/1.0)"


def _get_bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None:
        return default
    stripped = raw.strip()
    return stripped if stripped else default


def _get_optional_str_env(name: str) -> str | None:
    raw = os.getenv(name)
    if raw is None:
        return None
    return raw.strip() or None


def build_crawl_settings() -> CrawlSettings:
    """
    Read crawl settings from the current process environment.
    """

    return CrawlSettings(
        proxy_endpoint=_get_str_env("CRAWL_PROXY_ENDPOINT", DEFAULT_PROXY_ENDPOINT),
        proxy_api_key=_get_optional_str_env("CRAWL_PROXY_API_KEY"),
        proxy_zone=_get_optional_str_env("CRAWL_PROXY_ZONE"),
        proxy_timeout_seconds=max(
            1.0,
            _get_float_env("CRAWL_PROXY_TIMEOUT_SECONDS", 120.0),
        ),
        max_retries=max(1, _get_int_env("CRAWL_MAX_RETRIES", 3)),
        backoff_initial_seconds=max(
            0.0,
            _get_float_env("CRAWL_BACKOFF_INITIAL_SECONDS", 1.0),
        ),
        backoff_max_seconds=max(
            0.0,
            _get_float_env("CRAWL_BACKOFF_MAX_SECONDS", 10.0),
        ),
        enhanced_timeout_seconds=max(
            1.0,
            _get_float_env("CRAWL_ENHANCED_TIMEOUT_SECONDS", 60.0),
        ),
        basic_timeout_seconds=max(
            1.0,
            _get_float_env("CRAWL_BASIC_TIMEOUT_SECONDS", 30.0),
        ),
        sitemap_timeout_seconds=max(
            1.0,
            _get_float_env("CRAWL_SITEMAP_TIMEOUT_SECONDS", 60.0),
        ),
        max_concurrent=max(1, _get_int_env("CRAWL_MAX_CONCURRENT", 5)),
        user_agent=_get_str_env("CRAWL_USER_AGENT", DEFAULT_USER_AGENT),
        full_interval_hours=max(
            0.1,
            _get_float_env("CRAWL_FULL_INTERVAL_HOURS", 24.0),
        ),
        priority_interval_hours=max(
            0.1,
            _get_float_env("CRAWL_PRIORITY_INTERVAL_HOURS", 6.0),
        ),
        scheduler_enabled=_get_bool_env("CRAWL_SCHEDULER_ENABLED", False),
    )


@lru_cache(maxsize=1)
def get_crawl_settings() -> CrawlSettings:
    """
    Return cached crawl settings, loading `.env` files first.
    """

    load_env_files()
    return build_crawl_settings()
