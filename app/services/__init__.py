"""
app/services package marker.
"""

from app.services.crawl_runtime_service import CrawlRuntime, get_crawl_runtime

__all__ = [
    "CrawlRuntime",
    "get_crawl_runtime",
]
