"""
db/models/scraping_report.py

Persisted summary of one orchestrator run.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, Index, Integer, Numeric, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base


class ScrapingReport(Base):
    __tablename__ = "scraping_reports"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    report_data: Mapped[dict[str, Any]] = mapped_column(
        JSONB,
        nullable=False,
    )
    total_urls: Mapped[int] = mapped_column(Integer, nullable=False)
    successful_urls: Mapped[int] = mapped_column(Integer, nullable=False)
    failed_urls: Mapped[int] = mapped_column(Integer, nullable=False)
    success_rate: Mapped[float] = mapped_column(
        Numeric(5, 2),
        nullable=False,
        comment="Percentage 0-100",
    )
    duration_ms: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    __table_args__ = (
        Index("ix_scraping_reports_created_at", "created_at"),
    )
