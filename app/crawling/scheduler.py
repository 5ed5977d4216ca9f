"""
Recurring crawl scheduling on top of APScheduler.

Call ``schedule_recurring`` for each periodic run, ``start()`` from inside the
running event loop (the FastAPI lifespan or the CLI), and ``cancel_all()`` or
``shutdown()`` on exit. Jobs never overlap themselves: APScheduler keeps at
most one instance of each job and coalesces missed fires.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta
from typing import Any

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from app.crawling.logging_utils import log_event

logger = logging.getLogger(__name__)

MISFIRE_GRACE_SECONDS = 3600

RecurringTask = Callable[[], Awaitable[Any]]


class CrawlScheduler:
    def __init__(self, scheduler: AsyncIOScheduler | None = None) -> None:
        self._scheduler = scheduler or AsyncIOScheduler(timezone="UTC")
        self._job_ids: list[str] = []

    @property
    def job_ids(self) -> list[str]:
        return list(self._job_ids)

    @property
    def running(self) -> bool:
        return bool(self._scheduler.running)

    def schedule_recurring(
        self,
        task: RecurringTask,
        period: timedelta,
        *,
        job_id: str,
        name: str | None = None,
        first_run: datetime | None = None,
    ) -> str:
        """
        Run `task` every `period`. The first fire is `first_run` when given,
        otherwise one period from now.
        """

        if period.total_seconds() <= 0:
            raise ValueError("period must be positive")

        options: dict[str, Any] = {}
        if first_run is not None:
            options["next_run_time"] = first_run

        self._scheduler.add_job(
            task,
            trigger="interval",
            seconds=period.total_seconds(),
            id=job_id,
            name=name or job_id,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=MISFIRE_GRACE_SECONDS,
            **options,
        )
        if job_id not in self._job_ids:
            self._job_ids.append(job_id)
        log_event(
            logger,
            logging.INFO,
            "crawl_job_scheduled",
            job_id=job_id,
            period_seconds=period.total_seconds(),
            first_run=first_run,
        )
        return job_id

    def cancel_all(self) -> int:
        """
        Remove every job registered through this scheduler; returns how many
        were still present.
        """

        removed = 0
        for job_id in self._job_ids:
            try:
                self._scheduler.remove_job(job_id)
                removed += 1
            except JobLookupError:
                continue
        self._job_ids.clear()
        log_event(logger, logging.INFO, "crawl_jobs_cancelled", removed=removed)
        return removed

    def start(self) -> None:
        if not self._scheduler.running:
            self._scheduler.start()

    def shutdown(self, *, wait: bool = False) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=wait)
