"""
Page fetching exports.
"""

from app.crawling.fetching.fetcher import PageFetcher
from app.crawling.fetching.strategies import (
    BasicDirectStrategy,
    DirectFetchStrategy,
    EnhancedDirectStrategy,
    FetchStrategy,
    ProxyFetchStrategy,
)

__all__ = [
    "BasicDirectStrategy",
    "DirectFetchStrategy",
    "EnhancedDirectStrategy",
    "FetchStrategy",
    "PageFetcher",
    "ProxyFetchStrategy",
]
