"""
Single-page, bulk and sitemap-driven crawl operations.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import Counter
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone

from bs4 import BeautifulSoup

from app.crawling.config.models import CategoryConfig
from app.crawling.errors import RecordStoreError
from app.crawling.fetching.fetcher import PageFetcher
from app.crawling.hashing import content_hash
from app.crawling.limiter import LimiterFactory, create_limiter
from app.crawling.logging_utils import log_event
from app.crawling.parsing import ContentExtractor, ReviewParser, is_review_url
from app.crawling.rate_limiter import DomainRateLimiter
from app.crawling.sitemap import SitemapCollector
from app.crawling.storage.base import RecordStore
from app.crawling.types import (
    BulkResult,
    CrawlingStats,
    CrawlQuery,
    CrawlRecord,
    FetchAttemptResult,
    PageScrapeResult,
    PageType,
    ReviewData,
    SitemapScrapeResult,
    format_rate,
)

logger = logging.getLogger(__name__)

FETCH_ERROR_TYPE = "FetchError"
RECENT_WINDOW = timedelta(hours=24)

ResultCallback = Callable[[PageScrapeResult], None]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class BulkScrapeOptions:
    """
    Per-call tuning for a bulk scrape.

    `timeout_seconds` and `retries` override the fetcher defaults for the
    proxy tier; `headers` go to the direct tiers. `delay_seconds` spaces
    requests to the same domain.
    """

    max_concurrent: int = 5
    timeout_seconds: float | None = None
    retries: int | None = None
    headers: Mapping[str, str] = field(default_factory=dict)
    delay_seconds: float = 0.0
    use_review_detection: bool = True
    on_result: ResultCallback | None = None

    @classmethod
    def for_category(
        cls,
        config: CategoryConfig,
        *,
        max_concurrent: int,
        on_result: ResultCallback | None = None,
    ) -> "BulkScrapeOptions":
        return cls(
            max_concurrent=max_concurrent,
            timeout_seconds=config.timeout_seconds,
            retries=config.retries,
            headers=dict(config.headers),
            delay_seconds=config.delay_seconds,
            on_result=on_result,
        )


class CrawlService:
    """
    Fetches, extracts and persists pages.

    Every attempt is written to the record store keyed by URL, failures
    included. Store write failures are logged and the in-memory result is
    still returned.
    """

    def __init__(
        self,
        *,
        fetcher: PageFetcher,
        store: RecordStore,
        extractor: type[ContentExtractor] = ContentExtractor,
        review_parser: ReviewParser | None = None,
        limiter_factory: LimiterFactory = create_limiter,
        sitemap_collector: SitemapCollector | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._store = store
        self._extractor = extractor
        self._review_parser = review_parser or ReviewParser(extractor)
        self._limiter_factory = limiter_factory
        self._sitemap_collector = sitemap_collector or SitemapCollector(
            client=fetcher.client,
            fallback_fetcher=fetcher,
        )

    @property
    def store(self) -> RecordStore:
        return self._store

    async def scrape_page(
        self,
        url: str,
        *,
        timeout_seconds: float | None = None,
        retries: int | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> PageScrapeResult:
        return await self._scrape(
            url,
            timeout_seconds=timeout_seconds,
            retries=retries,
            headers=headers,
            detect_reviews=False,
        )

    async def scrape_page_with_review_detection(
        self,
        url: str,
        *,
        timeout_seconds: float | None = None,
        retries: int | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> PageScrapeResult:
        """
        Scrape `url` and, when its path looks like a broker review, attach
        the parsed review annotation.
        """

        return await self._scrape(
            url,
            timeout_seconds=timeout_seconds,
            retries=retries,
            headers=headers,
            detect_reviews=True,
        )

    async def bulk(
        self,
        urls: Sequence[str],
        options: BulkScrapeOptions | None = None,
    ) -> BulkResult:
        """
        Scrape every URL with at most `options.max_concurrent` in flight.

        One URL failing, even with an unexpected exception, never aborts the
        others. Result order within `successful`/`failed` is completion
        dependent.
        """

        options = options or BulkScrapeOptions()
        limiter = self._limiter_factory(options.max_concurrent)
        pacer = DomainRateLimiter(min_interval_seconds=options.delay_seconds)
        started_at = _utcnow()
        started = time.perf_counter()

        log_event(
            logger,
            logging.INFO,
            "bulk_scrape_started",
            urls=len(urls),
            max_concurrent=options.max_concurrent,
            review_detection=options.use_review_detection,
        )

        async def run_one(url: str) -> PageScrapeResult:
            try:
                await pacer.wait(url)
                async with limiter:
                    result = await self._scrape(
                        url,
                        timeout_seconds=options.timeout_seconds,
                        retries=options.retries,
                        headers=options.headers,
                        detect_reviews=options.use_review_detection,
                    )
            except Exception as exc:
                result = await self._unexpected_failure(url, exc)

            if options.on_result is not None:
                try:
                    options.on_result(result)
                except Exception as exc:
                    log_event(
                        logger,
                        logging.ERROR,
                        "bulk_result_callback_failed",
                        url=url,
                        error=str(exc) or exc.__class__.__name__,
                        exc_info=True,
                    )
            return result

        results = await asyncio.gather(*(run_one(url) for url in urls))

        successful = [result for result in results if result.success]
        failed = [result for result in results if not result.success]
        method_stats = Counter(result.fetch_strategy for result in results)
        review_pages = sum(1 for result in results if result.page_type == PageType.BROKER_REVIEW)
        finished_at = _utcnow()
        duration_ms = int((time.perf_counter() - started) * 1000)

        bulk_result = BulkResult(
            successful=successful,
            failed=failed,
            total=len(urls),
            review_pages=review_pages,
            method_stats=dict(method_stats),
            started_at=started_at,
            finished_at=finished_at,
            duration_ms=duration_ms,
            success_rate_pct=format_rate(len(successful), len(urls)),
        )
        log_event(
            logger,
            logging.INFO,
            "bulk_scrape_completed",
            total=bulk_result.total,
            successful=len(successful),
            failed=len(failed),
            review_pages=review_pages,
            method_stats=bulk_result.method_stats,
            success_rate_pct=bulk_result.success_rate_pct,
            duration_ms=duration_ms,
            peak_in_flight=limiter.peak_in_flight,
        )
        return bulk_result

    async def scrape_sitemap(
        self,
        sitemap_url: str,
        *,
        filter_domain: str | None = None,
        max_urls: int | None = None,
        prioritize_reviews: bool = True,
        options: BulkScrapeOptions | None = None,
    ) -> SitemapScrapeResult:
        """
        Collect a sitemap's URLs, narrow them down and bulk scrape them with
        review detection enabled.
        """

        discovered = sorted(await self._sitemap_collector.collect(sitemap_url))
        selected = discovered
        if filter_domain:
            selected = [url for url in selected if url.startswith(filter_domain)]
        if prioritize_reviews:
            reviews = [url for url in selected if is_review_url(url)]
            others = [url for url in selected if not is_review_url(url)]
            selected = reviews + others
        if max_urls is not None and max_urls >= 0:
            selected = selected[:max_urls]

        review_urls = sum(1 for url in selected if is_review_url(url))
        log_event(
            logger,
            logging.INFO,
            "sitemap_scrape_selected",
            sitemap_url=sitemap_url,
            discovered=len(discovered),
            selected=len(selected),
            review_urls=review_urls,
        )

        bulk_options = replace(options or BulkScrapeOptions(), use_review_detection=True)
        bulk_result = await self.bulk(selected, bulk_options)
        return SitemapScrapeResult(
            bulk=bulk_result,
            sitemap_url=sitemap_url,
            total_sitemap_urls=len(discovered),
            filtered_urls=len(selected),
            review_urls=review_urls,
        )

    async def get_crawled_page(self, url: str) -> CrawlRecord | None:
        return await self._store.get(url)

    async def search_crawled_pages(
        self,
        query: str | None = None,
        *,
        limit: int = 10,
        offset: int = 0,
        status: int | None = 200,
        fetched_from: datetime | None = None,
        fetched_to: datetime | None = None,
    ) -> list[CrawlRecord]:
        return await self._store.query(
            CrawlQuery(
                text=query,
                status=status,
                fetched_from=fetched_from,
                fetched_to=fetched_to,
                limit=limit,
                offset=offset,
            )
        )

    async def get_crawling_stats(self, *, now: datetime | None = None) -> CrawlingStats:
        """
        Status breakdown of every stored record; only HTTP 200 counts as
        successful.
        """

        rows = await self._store.status_rows()
        cutoff = (now or _utcnow()) - RECENT_WINDOW
        status_codes = Counter(status for status, _ in rows)
        successful = status_codes.get(200, 0)
        return CrawlingStats(
            total=len(rows),
            successful=successful,
            failed=len(rows) - successful,
            last_24_hours=sum(1 for _, fetched_at in rows if fetched_at and fetched_at > cutoff),
            status_codes=dict(status_codes),
            success_rate_pct=format_rate(successful, len(rows)),
        )

    async def _scrape(
        self,
        url: str,
        *,
        timeout_seconds: float | None,
        retries: int | None,
        headers: Mapping[str, str] | None,
        detect_reviews: bool,
    ) -> PageScrapeResult:
        fetched = await self._fetcher.fetch(
            url,
            timeout_seconds=timeout_seconds,
            max_retries=retries,
            headers=headers,
        )
        if not fetched.succeeded:
            return await self._fetch_failure(fetched, detect_reviews=detect_reviews)

        document = self._extractor.parse_document(fetched.html_body)
        text = self._extractor.extract_text(document)
        record = CrawlRecord(
            url=url,
            http_status=fetched.http_status,
            raw_html=fetched.html_body,
            text_content=text,
            metadata=self._extractor.extract_metadata(document),
            structured_data=self._extractor.extract_structured_data(document, url).to_dict(),
            content_hash=content_hash(fetched.html_body),
            fetch_strategy=fetched.strategy_used,
            fetched_at=_utcnow(),
        )
        await self._persist(record)

        page_type = None
        review = None
        if detect_reviews:
            page_type = PageType.GENERAL
            if is_review_url(url):
                review = self._parse_review(document, url)
                page_type = PageType.BROKER_REVIEW

        return PageScrapeResult(
            url=url,
            success=True,
            status=fetched.http_status,
            fetch_strategy=fetched.strategy_used,
            record=record,
            page_type=page_type,
            review=review,
            content_length=len(fetched.html_body),
            text_length=len(text),
        )

    def _parse_review(self, document: BeautifulSoup, url: str) -> ReviewData:
        review = self._review_parser.parse(document, url)
        log_event(
            logger,
            logging.INFO,
            "review_page_parsed",
            url=url,
            title=review.title,
            rating=review.rating,
            sections=len(review.sections),
        )
        return review

    async def _fetch_failure(
        self,
        fetched: FetchAttemptResult,
        *,
        detect_reviews: bool,
    ) -> PageScrapeResult:
        message = fetched.error_message or "Fetch failed"
        record = _failure_record(
            fetched.url,
            status=fetched.http_status,
            message=message,
            error_type=FETCH_ERROR_TYPE,
            fetch_strategy=fetched.strategy_used,
        )
        await self._persist(record)
        return PageScrapeResult(
            url=fetched.url,
            success=False,
            status=fetched.http_status,
            fetch_strategy=fetched.strategy_used,
            record=record,
            page_type=PageType.GENERAL if detect_reviews else None,
            error=message,
            error_type=FETCH_ERROR_TYPE,
        )

    async def _unexpected_failure(self, url: str, exc: Exception) -> PageScrapeResult:
        message = str(exc) or exc.__class__.__name__
        log_event(
            logger,
            logging.ERROR,
            "page_scrape_crashed",
            url=url,
            error=message,
            error_type=exc.__class__.__name__,
            exc_info=True,
        )
        record = _failure_record(
            url,
            status=0,
            message=message,
            error_type=exc.__class__.__name__,
            fetch_strategy="unknown",
        )
        await self._persist(record)
        return PageScrapeResult(
            url=url,
            success=False,
            status=0,
            fetch_strategy=record.fetch_strategy,
            record=record,
            error=message,
            error_type=exc.__class__.__name__,
        )

    async def _persist(self, record: CrawlRecord) -> None:
        try:
            await self._store.upsert(record)
        except RecordStoreError as exc:
            log_event(
                logger,
                logging.WARNING,
                "crawl_record_store_failed",
                url=record.url,
                error=str(exc),
            )


def _failure_record(
    url: str,
    *,
    status: int,
    message: str,
    error_type: str,
    fetch_strategy: str,
) -> CrawlRecord:
    return CrawlRecord(
        url=url,
        http_status=status,
        raw_html=None,
        text_content=None,
        metadata={"error": message},
        structured_data={"error": message, "error_type": error_type},
        content_hash=None,
        fetch_strategy=fetch_strategy,
        fetched_at=_utcnow(),
    )
