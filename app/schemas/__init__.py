"""
app/schemas package marker.
"""

from app.schemas.crawl import (
    CrawledPageResponse,
    CrawledPageSearchResponse,
    CrawlJobAcceptedResponse,
    CrawlJobRequest,
    CrawlJobStatusResponse,
    CrawlJobStopResponse,
    CrawlStatisticsResponse,
)

__all__ = [
    "CrawledPageResponse",
    "CrawledPageSearchResponse",
    "CrawlJobAcceptedResponse",
    "CrawlJobRequest",
    "CrawlJobStatusResponse",
    "CrawlJobStopResponse",
    "CrawlStatisticsResponse",
]
