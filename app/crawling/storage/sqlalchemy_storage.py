"""
PostgreSQL-backed record store for crawl outcomes and run reports.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy import or_, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.crawling.errors import RecordStoreError
from app.crawling.storage.base import RecordStore
from app.crawling.types import CrawlQuery, CrawlRecord, ScrapeReport
from db.models import CrawledPage, ScrapingReport


class SQLAlchemyRecordStore(RecordStore):
    """
    Persist crawl records in `crawled_pages`, upserting on the URL key.
    """

    def __init__(self, *, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def upsert(self, record: CrawlRecord) -> CrawlRecord:
        values = _record_values(record)
        stmt = insert(CrawledPage).values(id=uuid.uuid4(), **values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[CrawledPage.url],
            set_={
                **{name: getattr(stmt.excluded, name) for name in values if name != "url"},
                "updated_at": datetime.now(timezone.utc),
            },
        )

        async with self._session_factory() as session:
            try:
                await session.execute(stmt)
                await session.commit()
            except SQLAlchemyError as exc:
                await session.rollback()
                raise RecordStoreError(f"Failed to upsert crawl record for {record.url}") from exc
        return record

    async def get(self, url: str) -> CrawlRecord | None:
        async with self._session_factory() as session:
            try:
                row = await session.scalar(select(CrawledPage).where(CrawledPage.url == url))
            except SQLAlchemyError as exc:
                raise RecordStoreError(f"Failed to load crawl record for {url}") from exc
        return _to_record(row) if row is not None else None

    async def query(self, filters: CrawlQuery) -> list[CrawlRecord]:
        stmt = select(CrawledPage)
        if filters.status is not None:
            stmt = stmt.where(CrawledPage.status == filters.status)
        if filters.fetched_from is not None:
            stmt = stmt.where(CrawledPage.fetched_at >= filters.fetched_from)
        if filters.fetched_to is not None:
            stmt = stmt.where(CrawledPage.fetched_at <= filters.fetched_to)
        needle = (filters.text or "").strip()
        if needle:
            pattern = f"%{needle}%"
            stmt = stmt.where(
                or_(
                    CrawledPage.text_content.ilike(pattern),
                    CrawledPage.meta["title"].astext.ilike(pattern),
                )
            )
        stmt = (
            stmt.order_by(CrawledPage.fetched_at.desc())
            .offset(max(0, filters.offset))
            .limit(max(0, filters.limit))
        )

        async with self._session_factory() as session:
            try:
                rows = (await session.scalars(stmt)).all()
            except SQLAlchemyError as exc:
                raise RecordStoreError("Failed to search crawl records") from exc
        return [_to_record(row) for row in rows]

    async def insert_report(self, report: ScrapeReport) -> None:
        summary = report.summary
        row = ScrapingReport(
            id=uuid.uuid4(),
            report_data=report.to_dict(),
            total_urls=summary.total_urls,
            successful_urls=summary.successful,
            failed_urls=summary.failed,
            success_rate=Decimal(summary.success_rate_pct),
            duration_ms=summary.duration_ms,
        )
        async with self._session_factory() as session:
            try:
                session.add(row)
                await session.commit()
            except SQLAlchemyError as exc:
                await session.rollback()
                raise RecordStoreError("Failed to archive scraping report") from exc

    async def recent_reports(self, limit: int = 10) -> list[dict[str, Any]]:
        stmt = (
            select(ScrapingReport)
            .order_by(ScrapingReport.created_at.desc())
            .limit(max(0, limit))
        )
        async with self._session_factory() as session:
            try:
                rows = (await session.scalars(stmt)).all()
            except SQLAlchemyError as exc:
                raise RecordStoreError("Failed to load scraping reports") from exc
        return [dict(row.report_data) for row in rows]

    async def status_rows(self) -> list[tuple[int, Any]]:
        async with self._session_factory() as session:
            try:
                result = await session.execute(select(CrawledPage.status, CrawledPage.fetched_at))
            except SQLAlchemyError as exc:
                raise RecordStoreError("Failed to load crawl status rows") from exc
        return [(int(status), fetched_at) for status, fetched_at in result.all()]


def _record_values(record: CrawlRecord) -> dict[str, Any]:
    return {
        "url": record.url,
        "status": record.http_status,
        "fetched_at": record.fetched_at,
        "sha256": record.content_hash,
        "html": record.raw_html,
        "text_content": record.text_content,
        "fetch_strategy": record.fetch_strategy,
        "meta": dict(record.metadata),
        "data": dict(record.structured_data),
    }


def _to_record(row: CrawledPage) -> CrawlRecord:
    return CrawlRecord(
        url=row.url,
        http_status=row.status,
        raw_html=row.html,
        text_content=row.text_content,
        metadata=dict(row.meta or {}),
        structured_data=dict(row.data or {}),
        content_hash=row.sha256,
        fetch_strategy=row.fetch_strategy,
        fetched_at=row.fetched_at,
    )
