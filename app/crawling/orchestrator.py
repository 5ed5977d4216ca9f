"""
Category-batched scrape runs with reporting and recurring scheduling.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Any

from app.crawling.errors import RecordStoreError, ScrapeJobAlreadyRunningError
from app.crawling.logging_utils import log_event
from app.crawling.reporting import build_report
from app.crawling.scheduler import CrawlScheduler
from app.crawling.service import BulkScrapeOptions, CrawlService
from app.crawling.storage.base import RecordStore
from app.crawling.targets import (
    broker_targets,
    category_config,
    news_targets,
    priority_targets,
    regulatory_targets,
    review_targets,
)
from app.crawling.types import (
    BulkResult,
    CrawlingStats,
    PageScrapeResult,
    ScrapeJob,
    ScrapeReport,
    UrlCategory,
    UrlTarget,
)

logger = logging.getLogger(__name__)

RECENT_REPORT_LIMIT = 10
FULL_JOB_ID = "crawl_full"
PRIORITY_JOB_ID = "crawl_priority"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ScrapeOptions:
    include_brokers: bool = True
    include_reviews: bool = True
    include_regulatory: bool = False
    include_news: bool = False
    priority_only: bool = False
    max_concurrent: int = 3
    delay_between_batches_seconds: float = 5.0


@dataclass
class OrchestratorStats:
    total_jobs: int = 0
    successful_jobs: int = 0
    failed_jobs: int = 0
    total_pages: int = 0
    successful_pages: int = 0
    failed_pages: int = 0
    start_time: datetime | None = None
    last_job_time: datetime | None = None


@dataclass(frozen=True)
class JobStatus:
    is_running: bool
    stop_requested: bool
    current_job: ScrapeJob | None
    stats: OrchestratorStats


@dataclass(frozen=True)
class ScrapingStatistics:
    orchestrator: OrchestratorStats
    recent_reports: list[dict[str, Any]] = field(default_factory=list)
    crawled_pages: CrawlingStats | None = None
    current_job: ScrapeJob | None = None
    error: str | None = None


@dataclass(frozen=True)
class ScheduledScraping:
    """
    Handle for the recurring runs registered by `schedule_regular_scraping`.
    """

    scheduler: CrawlScheduler
    full_job_id: str
    priority_job_id: str

    def stop(self) -> int:
        return self.scheduler.cancel_all()


UrlSource = Callable[[ScrapeOptions], list[UrlTarget]]
Sleep = Callable[[float], Awaitable[Any]]


def default_url_source(options: ScrapeOptions) -> list[UrlTarget]:
    """
    Resolve the run's URLs from the built-in catalog.
    """

    if options.priority_only:
        return priority_targets()

    targets: list[UrlTarget] = []
    if options.include_brokers:
        targets.extend(broker_targets())
    if options.include_reviews:
        targets.extend(review_targets())
    if options.include_regulatory:
        targets.extend(regulatory_targets())
    if options.include_news:
        targets.extend(news_targets())
    return targets


def group_by_category(targets: Iterable[UrlTarget]) -> dict[str, list[str]]:
    """
    Partition URLs into the fixed category order; unknown categories are
    treated as broker URLs.
    """

    groups: dict[str, list[str]] = {category: [] for category in UrlCategory.ORDER}
    for target in targets:
        category = target.category if target.category in groups else UrlCategory.BROKER
        groups[category].append(target.url)
    return groups


class ScrapeOrchestrator:
    """
    Runs one scrape job at a time, category by category.

    `start_comprehensive_scraping` fails fast with
    `ScrapeJobAlreadyRunningError` while a run is active. `stop()` is
    cooperative: the current batch finishes, later batches are skipped.
    """

    def __init__(
        self,
        service: CrawlService,
        *,
        store: RecordStore | None = None,
        url_source: UrlSource = default_url_source,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._service = service
        self._store = store or service.store
        self._url_source = url_source
        self._sleep = sleep
        self._running = False
        self._stop_requested = False
        self._current_job: ScrapeJob | None = None
        self._stats = OrchestratorStats()

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def stats(self) -> OrchestratorStats:
        return self._stats

    async def start(self, options: ScrapeOptions | None = None) -> ScrapeReport:
        return await self.start_comprehensive_scraping(options)

    async def start_comprehensive_scraping(
        self,
        options: ScrapeOptions | None = None,
    ) -> ScrapeReport:
        options = options or ScrapeOptions()
        if self._running:
            current = self._current_job.category if self._current_job else None
            log_event(logger, logging.WARNING, "scrape_job_rejected", current_category=current)
            raise ScrapeJobAlreadyRunningError(current)

        self._running = True
        self._stop_requested = False
        self._stats.start_time = _utcnow()
        self._stats.total_jobs += 1
        started = time.perf_counter()

        try:
            groups = group_by_category(self._url_source(options))
            batches = [(category, urls) for category, urls in groups.items() if urls]
            log_event(
                logger,
                logging.INFO,
                "scrape_job_started",
                priority_only=options.priority_only,
                total_urls=sum(len(urls) for _, urls in batches),
                categories=[category for category, _ in batches],
                max_concurrent=options.max_concurrent,
            )

            results: dict[str, BulkResult] = {}
            for index, (category, urls) in enumerate(batches):
                if self._stop_requested:
                    log_event(
                        logger,
                        logging.INFO,
                        "scrape_batches_skipped",
                        skipped=[name for name, _ in batches[index:]],
                    )
                    break

                results[category] = await self._run_batch(category, urls, options)

                is_last = index == len(batches) - 1
                if (
                    not is_last
                    and not self._stop_requested
                    and options.delay_between_batches_seconds > 0
                ):
                    await self._sleep(options.delay_between_batches_seconds)

            report = build_report(
                results,
                duration_ms=int((time.perf_counter() - started) * 1000),
            )
            await self._archive(report)

            self._stats.successful_jobs += 1
            self._stats.last_job_time = _utcnow()
            log_event(
                logger,
                logging.INFO,
                "scrape_job_completed",
                total_urls=report.summary.total_urls,
                successful=report.summary.successful,
                failed=report.summary.failed,
                success_rate_pct=report.summary.success_rate_pct,
                duration_ms=report.summary.duration_ms,
            )
            return report
        except Exception as exc:
            self._stats.failed_jobs += 1
            log_event(
                logger,
                logging.ERROR,
                "scrape_job_failed",
                error=str(exc),
                error_type=exc.__class__.__name__,
            )
            raise
        finally:
            self._running = False
            self._stop_requested = False
            self._current_job = None

    async def run_if_idle(
        self,
        options: ScrapeOptions | None = None,
        *,
        trigger: str,
    ) -> ScrapeReport | None:
        """
        Fire-and-forget entry point for timers and background tasks.

        Skips (returns None) when a run is already active; a failed run is
        logged here because nothing awaits the result.
        """

        if self._running:
            log_event(logger, logging.INFO, "scrape_run_skipped", trigger=trigger)
            return None
        try:
            return await self.start_comprehensive_scraping(options)
        except ScrapeJobAlreadyRunningError:
            log_event(logger, logging.INFO, "scrape_run_skipped", trigger=trigger)
        except Exception as exc:  # noqa: BLE001
            log_event(
                logger,
                logging.ERROR,
                "scrape_run_failed",
                trigger=trigger,
                error=str(exc),
                exc_info=True,
            )
        return None

    def stop(self) -> bool:
        """
        Request that no further batches start. Returns False when idle.
        """

        if not self._running:
            return False
        self._stop_requested = True
        log_event(logger, logging.INFO, "scrape_job_stop_requested")
        return True

    def stop_job(self) -> bool:
        return self.stop()

    def _job_snapshot(self) -> ScrapeJob | None:
        return replace(self._current_job) if self._current_job is not None else None

    def get_job_status(self) -> JobStatus:
        return JobStatus(
            is_running=self._running,
            stop_requested=self._stop_requested,
            current_job=self._job_snapshot(),
            stats=replace(self._stats),
        )

    async def get_scraping_statistics(self) -> ScrapingStatistics:
        try:
            recent_reports = await self._store.recent_reports(RECENT_REPORT_LIMIT)
            crawled_pages = await self._service.get_crawling_stats()
        except RecordStoreError as exc:
            log_event(logger, logging.ERROR, "scraping_statistics_failed", error=str(exc))
            return ScrapingStatistics(
                orchestrator=replace(self._stats),
                current_job=self._job_snapshot(),
                error=str(exc),
            )
        return ScrapingStatistics(
            orchestrator=replace(self._stats),
            recent_reports=recent_reports,
            crawled_pages=crawled_pages,
            current_job=self._job_snapshot(),
        )

    def schedule_regular_scraping(
        self,
        scheduler: CrawlScheduler,
        *,
        interval: timedelta = timedelta(hours=24),
        priority_interval: timedelta = timedelta(hours=6),
        auto_start: bool = True,
        initial_delay: timedelta = timedelta(seconds=5),
    ) -> ScheduledScraping:
        """
        Register a recurring full run and a recurring priority-only run.

        A fire that lands while a run is active is skipped, not queued. With
        `auto_start` the first priority run fires after `initial_delay`.
        """

        async def run_priority() -> None:
            await self.run_if_idle(
                ScrapeOptions(priority_only=True),
                trigger="scheduled_priority",
            )

        async def run_full() -> None:
            await self.run_if_idle(ScrapeOptions(), trigger="scheduled_full")

        first_priority_run = _utcnow() + (initial_delay if auto_start else priority_interval)
        scheduler.schedule_recurring(
            run_priority,
            priority_interval,
            job_id=PRIORITY_JOB_ID,
            name="Priority URL scrape",
            first_run=first_priority_run,
        )
        scheduler.schedule_recurring(
            run_full,
            interval,
            job_id=FULL_JOB_ID,
            name="Full catalog scrape",
        )
        return ScheduledScraping(
            scheduler=scheduler,
            full_job_id=FULL_JOB_ID,
            priority_job_id=PRIORITY_JOB_ID,
        )

    async def _run_batch(
        self,
        category: str,
        urls: list[str],
        options: ScrapeOptions,
    ) -> BulkResult:
        job = ScrapeJob(category=category, total_urls=len(urls), start_time=_utcnow())
        self._current_job = job

        def advance(_result: PageScrapeResult) -> None:
            job.processed_urls += 1

        config = category_config(category)
        log_event(
            logger,
            logging.INFO,
            "scrape_batch_started",
            category=category,
            urls=len(urls),
            delay_seconds=config.delay_seconds,
            timeout_seconds=config.timeout_seconds,
            retries=config.retries,
        )
        result = await self._service.bulk(
            urls,
            BulkScrapeOptions.for_category(
                config,
                max_concurrent=options.max_concurrent,
                on_result=advance,
            ),
        )

        self._stats.total_pages += result.total
        self._stats.successful_pages += len(result.successful)
        self._stats.failed_pages += len(result.failed)
        self._current_job = None
        return result

    async def _archive(self, report: ScrapeReport) -> None:
        try:
            await self._store.insert_report(report)
        except RecordStoreError as exc:
            log_event(logger, logging.WARNING, "scrape_report_store_failed", error=str(exc))

