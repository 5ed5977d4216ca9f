"""
app/services/crawl_runtime_service.py

Process-wide wiring of the crawl engine for the API and scheduler.
"""

from __future__ import annotations

from datetime import timedelta
from functools import lru_cache

import httpx

from app.crawling.config import CrawlSettings, get_crawl_settings
from app.crawling.fetching import PageFetcher
from app.crawling.orchestrator import ScheduledScraping, ScrapeOrchestrator
from app.crawling.scheduler import CrawlScheduler
from app.crawling.service import CrawlService
from app.crawling.sitemap import SitemapCollector
from app.crawling.storage import RecordStore, SQLAlchemyRecordStore
from db.session import get_session_factory


class CrawlRuntime:
    """
    Owns the shared HTTP client, record store, crawl service and orchestrator.
    """

    def __init__(
        self,
        *,
        settings: CrawlSettings,
        store: RecordStore,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.settings = settings
        self.fetcher = PageFetcher.from_settings(settings, client=client)
        self.service = CrawlService(
            fetcher=self.fetcher,
            store=store,
            sitemap_collector=SitemapCollector(
                client=self.fetcher.client,
                timeout_seconds=settings.sitemap_timeout_seconds,
                fallback_fetcher=self.fetcher,
                user_agent=settings.user_agent,
            ),
        )
        self.orchestrator = ScrapeOrchestrator(self.service)
        self.scheduler = CrawlScheduler()

    def start_scheduler(self) -> ScheduledScraping:
        """
        Register the recurring runs from settings and start the scheduler.
        Must be called from inside the running event loop.
        """

        handle = self.orchestrator.schedule_regular_scraping(
            self.scheduler,
            interval=timedelta(hours=self.settings.full_interval_hours),
            priority_interval=timedelta(hours=self.settings.priority_interval_hours),
        )
        self.scheduler.start()
        return handle

    async def aclose(self) -> None:
        self.scheduler.cancel_all()
        self.scheduler.shutdown(wait=False)
        await self.fetcher.aclose()


@lru_cache(maxsize=1)
def get_crawl_runtime() -> CrawlRuntime:
    """
    Build and cache the database-backed crawl runtime.
    """

    return CrawlRuntime(
        settings=get_crawl_settings(),
        store=SQLAlchemyRecordStore(session_factory=get_session_factory()),
    )
