"""
Exception types raised by the crawl engine.

Remote failures (timeouts, bad statuses, empty bodies, malformed markup) are
recorded as data and never surface as these exceptions. They are reserved for
caller mistakes and orchestrator state violations.
"""

from __future__ import annotations


class CrawlError(Exception):
    """Base class for crawl engine errors."""


class ScrapeJobAlreadyRunningError(CrawlError):
    """Raised when a scrape job is started while another one is active."""

    def __init__(self, category: str | None = None) -> None:
        self.category = category
        message = "Scraping job is already running"
        if category:
            message = f"{message} (category={category})"
        super().__init__(message)


class FetchConfigurationError(CrawlError, ValueError):
    """Raised when the fetcher is invoked with invalid configuration."""


class RecordStoreError(CrawlError):
    """Raised by record store backends when a read or write fails."""
