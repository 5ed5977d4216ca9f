"""
Crawl configuration models.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class CategoryConfig:
    """
    Fetch tuning applied to every URL of one category batch.
    """

    name: str
    delay_seconds: float
    timeout_seconds: float
    retries: int
    headers: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class CrawlSettings:
    """
    Runtime settings for the crawl engine.
    """

    proxy_endpoint: str
    proxy_api_key: str | None
    proxy_zone: str | None
    proxy_timeout_seconds: float
    max_retries: int
    backoff_initial_seconds: float
    backoff_max_seconds: float
    enhanced_timeout_seconds: float
    basic_timeout_seconds: float
    sitemap_timeout_seconds: float
    max_concurrent: int
    user_agent: str
    full_interval_hours: float
    priority_interval_hours: float
    scheduler_enabled: bool
