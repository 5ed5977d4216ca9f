"""
In-process record store.
"""

from __future__ import annotations

import asyncio
from typing import Any

from app.crawling.storage.base import RecordStore
from app.crawling.types import CrawlQuery, CrawlRecord, ScrapeReport


class InMemoryRecordStore(RecordStore):
    """
    Dict-backed store used for local runs and tests.
    """

    def __init__(self) -> None:
        self._records: dict[str, CrawlRecord] = {}
        self._reports: list[dict[str, Any]] = []
        self._lock = asyncio.Lock()

    @property
    def records(self) -> dict[str, CrawlRecord]:
        return dict(self._records)

    async def upsert(self, record: CrawlRecord) -> CrawlRecord:
        async with self._lock:
            self._records[record.url] = record
        return record

    async def get(self, url: str) -> CrawlRecord | None:
        return self._records.get(url)

    async def query(self, filters: CrawlQuery) -> list[CrawlRecord]:
        needle = (filters.text or "").strip().lower()
        matched: list[CrawlRecord] = []
        for record in self._records.values():
            if filters.status is not None and record.http_status != filters.status:
                continue
            if filters.fetched_from is not None and record.fetched_at < filters.fetched_from:
                continue
            if filters.fetched_to is not None and record.fetched_at > filters.fetched_to:
                continue
            if needle:
                title = str(record.metadata.get("title", "")).lower()
                text = (record.text_content or "").lower()
                if needle not in text and needle not in title:
                    continue
            matched.append(record)

        matched.sort(key=lambda item: item.fetched_at, reverse=True)
        start = max(0, filters.offset)
        return matched[start : start + max(0, filters.limit)]

    async def insert_report(self, report: ScrapeReport) -> None:
        async with self._lock:
            self._reports.append(report.to_dict())

    async def recent_reports(self, limit: int = 10) -> list[dict[str, Any]]:
        return list(reversed(self._reports))[: max(0, limit)]

    async def status_rows(self) -> list[tuple[int, Any]]:
        return [(record.http_status, record.fetched_at) for record in self._records.values()]
