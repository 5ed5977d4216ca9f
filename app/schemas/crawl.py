"""
Request and response schemas for crawl endpoints.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class CrawlJobRequest(BaseModel):
    include_brokers: bool = True
    include_reviews: bool = True
    include_regulatory: bool = False
    include_news: bool = False
    priority_only: bool = False
    max_concurrent: int = Field(default=3, ge=1, le=50)
    delay_between_batches_seconds: float = Field(default=5.0, ge=0.0, le=600.0)


class CrawlJobAcceptedResponse(BaseModel):
    accepted: bool
    priority_only: bool


class CrawlJobStopResponse(BaseModel):
    stop_requested: bool


class ScrapeJobResponse(BaseModel):
    model_config = {"from_attributes": True}

    category: str
    total_urls: int = Field(..., ge=0)
    processed_urls: int = Field(..., ge=0)
    start_time: datetime


class OrchestratorStatsResponse(BaseModel):
    model_config = {"from_attributes": True}

    total_jobs: int = Field(..., ge=0)
    successful_jobs: int = Field(..., ge=0)
    failed_jobs: int = Field(..., ge=0)
    total_pages: int = Field(..., ge=0)
    successful_pages: int = Field(..., ge=0)
    failed_pages: int = Field(..., ge=0)
    start_time: datetime | None = None
    last_job_time: datetime | None = None


class CrawlJobStatusResponse(BaseModel):
    model_config = {"from_attributes": True}

    is_running: bool
    stop_requested: bool
    current_job: ScrapeJobResponse | None = None
    stats: OrchestratorStatsResponse


class CrawledPageResponse(BaseModel):
    """
    One stored crawl record. Failed fetches carry `metadata.error`.
    """

    model_config = {"from_attributes": True}

    url: str
    http_status: int
    fetch_strategy: str
    fetched_at: datetime
    content_hash: str | None = None
    text_content: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    structured_data: dict[str, Any] = Field(default_factory=dict)


class CrawledPageSearchResponse(BaseModel):
    pages: list[CrawledPageResponse] = Field(default_factory=list)


class CrawlingStatsResponse(BaseModel):
    model_config = {"from_attributes": True}

    total: int = Field(..., ge=0)
    successful: int = Field(..., ge=0)
    failed: int = Field(..., ge=0)
    last_24_hours: int = Field(..., ge=0)
    status_codes: dict[int, int] = Field(default_factory=dict)
    success_rate_pct: str


class CrawlStatisticsResponse(BaseModel):
    model_config = {"from_attributes": True}

    orchestrator: OrchestratorStatsResponse
    recent_reports: list[dict[str, Any]] = Field(default_factory=list)
    crawled_pages: CrawlingStatsResponse | None = None
    current_job: ScrapeJobResponse | None = None
    error: str | None = None
