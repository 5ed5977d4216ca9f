"""
Record store interface for crawl outcomes and run reports.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from app.crawling.types import CrawlQuery, CrawlRecord, ScrapeReport


class RecordStore(ABC):
    """
    Key-addressed persistence for crawl records, keyed by URL.

    `upsert` is idempotent: writing the same URL twice leaves exactly one
    record holding the latest values.
    """

    @abstractmethod
    async def upsert(self, record: CrawlRecord) -> CrawlRecord:
        """
        Insert or overwrite the record for `record.url`.
        """

    @abstractmethod
    async def get(self, url: str) -> CrawlRecord | None:
        """
        Return the stored record for `url`, if any.
        """

    @abstractmethod
    async def query(self, filters: CrawlQuery) -> list[CrawlRecord]:
        """
        Return records matching `filters`, newest first.
        """

    @abstractmethod
    async def insert_report(self, report: ScrapeReport) -> None:
        """
        Archive one orchestrator run report.
        """

    @abstractmethod
    async def recent_reports(self, limit: int = 10) -> list[dict[str, Any]]:
        """
        Return the most recently archived reports as plain dicts.
        """

    @abstractmethod
    async def status_rows(self) -> list[tuple[int, Any]]:
        """
        Return `(http_status, fetched_at)` for every stored record.
        """
