"""
tests/test_orchestrator.py

Pytest unit tests for ScrapeOrchestrator.

Every URL uses its own host so per-domain spacing never sleeps; the
between-batch sleep is replaced by a recorder.

Coverage
--------
- URL catalog selection and category grouping
- Batches run in the fixed category order with per-category tuning
- Sleep between batches, never after the last one
- Only one run at a time; a rejected start leaves stats untouched
- Cooperative stop skips later batches
- Failed runs re-raise, count as failed and leave the orchestrator idle
- Reports archived to the record store
- Job status and statistics snapshots
- run_if_idle skip and failure containment
- Recurring schedule registration
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from app.crawling.errors import RecordStoreError, ScrapeJobAlreadyRunningError
from app.crawling.orchestrator import (
    FULL_JOB_ID,
    PRIORITY_JOB_ID,
    ScrapeOptions,
    ScrapeOrchestrator,
    default_url_source,
    group_by_category,
)
from app.crawling.service import CrawlService
from app.crawling.storage import InMemoryRecordStore
from app.crawling.targets import PRIORITY_URLS
from app.crawling.types import UrlCategory, UrlTarget
from tests.support import build_client, build_direct_fetcher, html_response


class RecordingService(CrawlService):
    """CrawlService that remembers every bulk call."""

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self.calls: list[tuple[list[str], object]] = []

    async def bulk(self, urls, options=None):
        self.calls.append((list(urls), options))
        return await super().bulk(urls, options)


class SleepRecorder:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class FakeScheduler:
    def __init__(self) -> None:
        self.jobs: dict[str, dict] = {}
        self.cancelled = False

    def schedule_recurring(self, task, period, *, job_id, name=None, first_run=None):
        self.jobs[job_id] = {"task": task, "period": period, "first_run": first_run}
        return job_id

    def cancel_all(self) -> int:
        self.cancelled = True
        return len(self.jobs)


class BrokenReportStore(InMemoryRecordStore):
    async def recent_reports(self, limit: int = 10):
        raise RecordStoreError("reports table missing")


def _targets(*pairs: tuple[str, str]) -> list[UrlTarget]:
    return [
        UrlTarget(url=f"https://{host}.example.com/", category=category)
        for host, category in pairs
    ]


def _service(store: InMemoryRecordStore, handler=None) -> RecordingService:
    handler = handler or (lambda request: html_response())
    return RecordingService(fetcher=build_direct_fetcher(build_client(handler)), store=store)


def _gated_handler(gate: asyncio.Event):
    async def handler(request: httpx.Request) -> httpx.Response:
        await gate.wait()
        return html_response()

    return handler


async def _until_running(orchestrator: ScrapeOrchestrator) -> None:
    for _ in range(100):
        if orchestrator.get_job_status().current_job is not None:
            return
        await asyncio.sleep(0)
    raise AssertionError("orchestrator never started a batch")


# ---------------------------------------------------------------------------
# URL selection
# ---------------------------------------------------------------------------


class TestUrlSelection:
    def test_priority_only(self) -> None:
        targets = default_url_source(ScrapeOptions(priority_only=True, include_news=True))

        assert [target.url for target in targets] == list(PRIORITY_URLS)
        assert {target.category for target in targets} == {UrlCategory.PRIORITY}

    def test_default_selection(self) -> None:
        categories = {target.category for target in default_url_source(ScrapeOptions())}
        assert categories == {UrlCategory.BROKER, UrlCategory.REVIEW}

    def test_everything_selected(self) -> None:
        options = ScrapeOptions(include_regulatory=True, include_news=True)
        categories = {target.category for target in default_url_source(options)}
        assert categories == {
            UrlCategory.BROKER,
            UrlCategory.REVIEW,
            UrlCategory.REGULATORY,
            UrlCategory.NEWS,
        }

    def test_group_by_category_treats_unknown_as_broker(self) -> None:
        groups = group_by_category(
            _targets(("n1", "news"), ("b1", "broker"), ("x1", "forum"))
        )

        assert list(groups) == list(UrlCategory.ORDER)
        assert groups["broker"] == ["https://b1.example.com/", "https://x1.example.com/"]
        assert groups["news"] == ["https://n1.example.com/"]
        assert groups["review"] == []


# ---------------------------------------------------------------------------
# Comprehensive runs
# ---------------------------------------------------------------------------


class TestComprehensiveScraping:
    @pytest.mark.asyncio
    async def test_batches_follow_category_order(self, store) -> None:
        service = _service(store)
        sleeper = SleepRecorder()
        orchestrator = ScrapeOrchestrator(
            service,
            url_source=lambda options: _targets(
                ("p1", "priority"),
                ("n1", "news"),
                ("r1", "review"),
                ("b1", "broker"),
                ("g1", "regulatory"),
            ),
            sleep=sleeper,
        )

        report = await orchestrator.start_comprehensive_scraping()

        assert [urls for urls, _ in service.calls] == [
            ["https://b1.example.com/"],
            ["https://r1.example.com/"],
            ["https://g1.example.com/"],
            ["https://n1.example.com/"],
            ["https://p1.example.com/"],
        ]
        assert list(report.per_category) == ["broker", "review", "regulatory", "news", "priority"]
        assert sleeper.delays == [5.0, 5.0, 5.0, 5.0]
        assert report.summary.total_urls == 5
        assert report.summary.success_rate_pct == "100.00"

    @pytest.mark.asyncio
    async def test_category_tuning_applied(self, store) -> None:
        service = _service(store)
        orchestrator = ScrapeOrchestrator(
            service,
            url_source=lambda options: _targets(("b1", "broker"), ("r1", "review")),
            sleep=SleepRecorder(),
        )

        await orchestrator.start(ScrapeOptions(max_concurrent=4))

        broker_options = service.calls[0][1]
        review_options = service.calls[1][1]
        assert broker_options.max_concurrent == 4
        assert (broker_options.timeout_seconds, broker_options.retries) == (30.0, 3)
        assert broker_options.delay_seconds == 2.0
        assert "Chrome/91" in broker_options.headers["User-Agent"]
        assert (review_options.timeout_seconds, review_options.retries) == (25.0, 2)
        assert review_options.delay_seconds == 1.5

    @pytest.mark.asyncio
    async def test_single_batch_never_sleeps(self, store) -> None:
        sleeper = SleepRecorder()
        orchestrator = ScrapeOrchestrator(
            _service(store),
            url_source=lambda options: _targets(("b1", "broker"), ("b2", "broker")),
            sleep=sleeper,
        )

        await orchestrator.start()

        assert sleeper.delays == []

    @pytest.mark.asyncio
    async def test_zero_delay_never_sleeps(self, store) -> None:
        sleeper = SleepRecorder()
        orchestrator = ScrapeOrchestrator(
            _service(store),
            url_source=lambda options: _targets(("b1", "broker"), ("r1", "review")),
            sleep=sleeper,
        )

        await orchestrator.start(ScrapeOptions(delay_between_batches_seconds=0))

        assert sleeper.delays == []

    @pytest.mark.asyncio
    async def test_stats_and_report_archive(self, store) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "down.example.com":
                return html_response("down", status_code=503)
            return html_response()

        orchestrator = ScrapeOrchestrator(
            _service(store, handler),
            url_source=lambda options: _targets(("b1", "broker"), ("down", "review")),
            sleep=SleepRecorder(),
        )

        report = await orchestrator.start()

        stats = orchestrator.stats
        assert (stats.total_jobs, stats.successful_jobs, stats.failed_jobs) == (1, 1, 0)
        assert (stats.total_pages, stats.successful_pages, stats.failed_pages) == (2, 1, 1)
        assert stats.start_time is not None
        assert stats.last_job_time is not None
        assert report.summary.success_rate_pct == "50.00"
        assert [item.error for item in report.top_errors] == [
            "Request failed with status code 503"
        ]

        archived = await store.recent_reports()
        assert len(archived) == 1
        assert archived[0]["summary"]["total_urls"] == 2

    @pytest.mark.asyncio
    async def test_empty_catalog_produces_empty_report(self, store) -> None:
        orchestrator = ScrapeOrchestrator(_service(store), url_source=lambda options: [])

        report = await orchestrator.start()

        assert report.summary.total_urls == 0
        assert report.summary.success_rate_pct == "0.00"
        assert len(report.per_category) == 0


# ---------------------------------------------------------------------------
# Run lifecycle
# ---------------------------------------------------------------------------


class TestRunLifecycle:
    @pytest.mark.asyncio
    async def test_second_start_rejected_without_side_effects(self, store) -> None:
        gate = asyncio.Event()
        orchestrator = ScrapeOrchestrator(
            _service(store, _gated_handler(gate)),
            url_source=lambda options: _targets(("b1", "broker")),
            sleep=SleepRecorder(),
        )

        task = asyncio.create_task(orchestrator.start())
        await _until_running(orchestrator)

        stats_before = (orchestrator.stats.total_jobs, orchestrator.stats.start_time)
        with pytest.raises(ScrapeJobAlreadyRunningError):
            await orchestrator.start()
        assert (orchestrator.stats.total_jobs, orchestrator.stats.start_time) == stats_before
        assert orchestrator.is_running is True

        gate.set()
        await task
        assert orchestrator.is_running is False
        assert orchestrator.stats.successful_jobs == 1

    @pytest.mark.asyncio
    async def test_job_status_while_running(self, store) -> None:
        gate = asyncio.Event()
        orchestrator = ScrapeOrchestrator(
            _service(store, _gated_handler(gate)),
            url_source=lambda options: _targets(("b1", "broker"), ("b2", "broker")),
            sleep=SleepRecorder(),
        )

        task = asyncio.create_task(orchestrator.start())
        await _until_running(orchestrator)

        status = orchestrator.get_job_status()
        assert status.is_running is True
        assert status.stop_requested is False
        assert status.current_job.category == "broker"
        assert status.current_job.total_urls == 2
        assert status.current_job.processed_urls == 0

        gate.set()
        await task
        idle = orchestrator.get_job_status()
        assert idle.is_running is False
        assert idle.current_job is None

        # Earlier status is a point-in-time copy.
        assert status.current_job.processed_urls == 0
        assert status.stats.successful_jobs == 0
        assert orchestrator.stats.successful_jobs == 1
        assert idle.stats is not orchestrator.stats

    @pytest.mark.asyncio
    async def test_stop_skips_remaining_batches(self, store) -> None:
        gate = asyncio.Event()
        sleeper = SleepRecorder()
        service = _service(store, _gated_handler(gate))
        orchestrator = ScrapeOrchestrator(
            service,
            url_source=lambda options: _targets(
                ("b1", "broker"), ("r1", "review"), ("n1", "news")
            ),
            sleep=sleeper,
        )

        task = asyncio.create_task(orchestrator.start())
        await _until_running(orchestrator)

        assert orchestrator.stop() is True
        assert orchestrator.get_job_status().stop_requested is True
        gate.set()
        report = await task

        assert len(service.calls) == 1
        assert list(report.per_category) == ["broker"]
        assert sleeper.delays == []
        assert orchestrator.get_job_status().stop_requested is False

    def test_stop_when_idle(self, store) -> None:
        orchestrator = ScrapeOrchestrator(_service(store))
        assert orchestrator.stop() is False
        assert orchestrator.stop_job() is False

    @pytest.mark.asyncio
    async def test_failed_run_reraises_and_recovers(self, store) -> None:
        calls = {"count": 0}

        def url_source(options: ScrapeOptions) -> list[UrlTarget]:
            calls["count"] += 1
            if calls["count"] == 1:
                raise RuntimeError("catalog unavailable")
            return _targets(("b1", "broker"))

        orchestrator = ScrapeOrchestrator(_service(store), url_source=url_source)

        with pytest.raises(RuntimeError, match="catalog unavailable"):
            await orchestrator.start()

        assert orchestrator.is_running is False
        assert orchestrator.stats.failed_jobs == 1

        report = await orchestrator.start()
        assert report.summary.total_urls == 1
        assert orchestrator.stats.total_jobs == 2
        assert orchestrator.stats.successful_jobs == 1

    @pytest.mark.asyncio
    async def test_run_if_idle_skips_and_contains_failures(self, store) -> None:
        gate = asyncio.Event()
        orchestrator = ScrapeOrchestrator(
            _service(store, _gated_handler(gate)),
            url_source=lambda options: _targets(("b1", "broker")),
        )

        task = asyncio.create_task(orchestrator.start())
        await _until_running(orchestrator)
        assert await orchestrator.run_if_idle(trigger="test") is None
        gate.set()
        await task

        def broken(options: ScrapeOptions) -> list[UrlTarget]:
            raise RuntimeError("boom")

        failing = ScrapeOrchestrator(_service(store), url_source=broken)
        assert await failing.run_if_idle(trigger="test") is None
        assert failing.stats.failed_jobs == 1


# ---------------------------------------------------------------------------
# Statistics and scheduling
# ---------------------------------------------------------------------------


class TestStatisticsAndScheduling:
    @pytest.mark.asyncio
    async def test_scraping_statistics(self, store) -> None:
        orchestrator = ScrapeOrchestrator(
            _service(store),
            url_source=lambda options: _targets(("b1", "broker")),
        )
        await orchestrator.start()

        statistics = await orchestrator.get_scraping_statistics()

        assert statistics.error is None
        assert len(statistics.recent_reports) == 1
        assert statistics.crawled_pages.total == 1
        assert statistics.orchestrator.total_jobs == 1
        assert statistics.current_job is None

    @pytest.mark.asyncio
    async def test_scraping_statistics_store_failure(self) -> None:
        orchestrator = ScrapeOrchestrator(_service(BrokenReportStore()))

        statistics = await orchestrator.get_scraping_statistics()

        assert statistics.error == "reports table missing"
        assert statistics.recent_reports == []
        assert statistics.crawled_pages is None

    @pytest.mark.asyncio
    async def test_schedule_regular_scraping(self, store) -> None:
        seen: list[ScrapeOptions] = []

        def url_source(options: ScrapeOptions) -> list[UrlTarget]:
            seen.append(options)
            return []

        orchestrator = ScrapeOrchestrator(_service(store), url_source=url_source)
        scheduler = FakeScheduler()
        before = datetime.now(timezone.utc)

        handle = orchestrator.schedule_regular_scraping(scheduler)

        priority = scheduler.jobs[PRIORITY_JOB_ID]
        full = scheduler.jobs[FULL_JOB_ID]
        assert priority["period"] == timedelta(hours=6)
        assert full["period"] == timedelta(hours=24)
        assert full["first_run"] is None
        assert before + timedelta(seconds=4) < priority["first_run"]
        assert priority["first_run"] < before + timedelta(seconds=60)

        await priority["task"]()
        await full["task"]()
        assert [options.priority_only for options in seen] == [True, False]

        assert handle.stop() == 2
        assert scheduler.cancelled is True

    def test_schedule_without_auto_start(self, store) -> None:
        orchestrator = ScrapeOrchestrator(_service(store))
        scheduler = FakeScheduler()
        before = datetime.now(timezone.utc)

        orchestrator.schedule_regular_scraping(
            scheduler,
            priority_interval=timedelta(hours=2),
            auto_start=False,
        )

        first_run = scheduler.jobs[PRIORITY_JOB_ID]["first_run"]
        assert first_run >= before + timedelta(hours=2)
