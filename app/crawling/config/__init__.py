"""
Config helpers for the crawl engine.
"""

from app.crawling.config.loader import build_crawl_settings, get_crawl_settings
from app.crawling.config.models import CategoryConfig, CrawlSettings

__all__ = [
    "CategoryConfig",
    "CrawlSettings",
    "build_crawl_settings",
    "get_crawl_settings",
]
