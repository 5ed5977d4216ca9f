"""
db/models/crawled_page.py

Latest fetch outcome per URL. One row per URL, overwritten on every scrape.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin


class CrawledPage(Base, TimestampMixin):
    __tablename__ = "crawled_pages"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    url: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        unique=True,
    )
    status: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="HTTP status of the latest fetch; 0 when no response was received",
    )
    fetched_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    sha256: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
    )
    html: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    text_content: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    fetch_strategy: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
    )
    meta: Mapped[dict[str, Any]] = mapped_column(
        JSONB,
        nullable=False,
        default=dict,
        comment="Page metadata, or the error message for failed fetches",
    )
    data: Mapped[dict[str, Any]] = mapped_column(
        JSONB,
        nullable=False,
        default=dict,
        comment="Structured extraction payload, or error details for failed fetches",
    )

    __table_args__ = (
        Index("ix_crawled_pages_status", "status"),
        Index("ix_crawled_pages_fetched_at", "fetched_at"),
        Index("ix_crawled_pages_data", "data", postgresql_using="gin"),
    )
