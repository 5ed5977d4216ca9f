"""
Shared crawl runtime data models.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any


class FetchStrategyName:
    PRIMARY_PROXY = "primary_proxy"
    ENHANCED_DIRECT = "enhanced_direct"
    BASIC_DIRECT = "basic_direct"
    ALL_METHODS_FAILED = "all_methods_failed"


class PageType:
    BROKER_REVIEW = "broker_review"
    GENERAL = "general"


class UrlCategory:
    BROKER = "broker"
    REVIEW = "review"
    REGULATORY = "regulatory"
    NEWS = "news"
    PRIORITY = "priority"

    ORDER: tuple[str, ...] = (BROKER, REVIEW, REGULATORY, NEWS, PRIORITY)


@dataclass(frozen=True)
class FetchAttemptResult:
    """
    Outcome of fetching one URL through the strategy chain.
    """

    url: str
    succeeded: bool
    html_body: str
    http_status: int
    strategy_used: str
    error_message: str | None = None
    attempts: int = 1


@dataclass
class ContactInfo:
    emails: list[str] = field(default_factory=list)
    phones: list[str] = field(default_factory=list)
    social_links: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "emails": list(self.emails),
            "phones": list(self.phones),
            "social_links": dict(self.social_links),
        }


@dataclass
class StructuredPayload:
    """
    Structured signals extracted from one page.
    """

    url: str
    extracted_at: datetime
    json_ld_blocks: list[Any] = field(default_factory=list)
    broker_signals: dict[str, list[str]] = field(default_factory=dict)
    element_text: dict[str, str] = field(default_factory=dict)
    contact: ContactInfo = field(default_factory=ContactInfo)
    ratings: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "extracted_at": self.extracted_at.isoformat(),
            "json_ld": list(self.json_ld_blocks),
            "broker_specific": {**self.broker_signals, **self.element_text},
            "contact": self.contact.to_dict(),
            "ratings": dict(self.ratings),
        }


@dataclass(frozen=True)
class CrawlRecord:
    """
    Persisted outcome of the latest fetch of one URL.
    """

    url: str
    http_status: int
    raw_html: str | None
    text_content: str | None
    metadata: dict[str, Any]
    structured_data: dict[str, Any]
    content_hash: str | None
    fetch_strategy: str
    fetched_at: datetime

    @property
    def is_failure(self) -> bool:
        return self.raw_html is None


@dataclass(frozen=True)
class ReviewData:
    """
    Best-effort annotation of a broker review page.
    """

    url: str
    title: str
    rating: float
    last_updated: str
    sections: dict[str, str] = field(default_factory=dict)
    pros: list[str] = field(default_factory=list)
    cons: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class PageScrapeResult:
    """
    Outcome for one URL within a scrape call.
    """

    url: str
    success: bool
    status: int
    fetch_strategy: str
    record: CrawlRecord | None = None
    page_type: str | None = None
    review: ReviewData | None = None
    error: str | None = None
    error_type: str | None = None
    content_length: int = 0
    text_length: int = 0


@dataclass
class BulkResult:
    """
    Aggregated outcome of one bulk scrape call.
    """

    successful: list[PageScrapeResult]
    failed: list[PageScrapeResult]
    total: int
    review_pages: int
    method_stats: dict[str, int]
    started_at: datetime
    finished_at: datetime
    duration_ms: int
    success_rate_pct: str


@dataclass
class SitemapScrapeResult:
    """
    Bulk result annotated with the sitemap selection that produced it.
    """

    bulk: BulkResult
    sitemap_url: str
    total_sitemap_urls: int
    filtered_urls: int
    review_urls: int


@dataclass(frozen=True)
class UrlTarget:
    """
    One entry of the crawl URL catalog.
    """

    url: str
    category: str = UrlCategory.BROKER
    label: str | None = None
    region: str | None = None
    regulation: str | None = None


@dataclass
class ScrapeJob:
    """
    Active category batch of an orchestrator run.
    """

    category: str
    total_urls: int
    start_time: datetime
    processed_urls: int = 0


@dataclass(frozen=True)
class CrawlQuery:
    """
    Filters for searching stored crawl records.
    """

    text: str | None = None
    status: int | None = 200
    fetched_from: datetime | None = None
    fetched_to: datetime | None = None
    limit: int = 10
    offset: int = 0


@dataclass(frozen=True)
class CrawlingStats:
    total: int
    successful: int
    failed: int
    last_24_hours: int
    status_codes: dict[int, int]
    success_rate_pct: str


def format_rate(numerator: int, denominator: int) -> str:
    """
    Percentage with two decimals, "0.00" when nothing was attempted.
    """

    if denominator <= 0:
        return "0.00"
    return f"{numerator / denominator * 100:.2f}"


@dataclass(frozen=True)
class ReportSummary:
    total_categories: int
    total_urls: int
    successful: int
    failed: int
    success_rate_pct: str
    duration_ms: int


@dataclass(frozen=True)
class CategoryReport:
    total: int
    successful: int
    failed: int
    success_rate_pct: str
    duration_ms: int
    avg_response_ms: float


@dataclass(frozen=True)
class ErrorCount:
    error: str
    count: int


@dataclass(frozen=True)
class Recommendation:
    type: str
    priority: str
    message: str


@dataclass(frozen=True)
class NextStep:
    step: str
    description: str
    priority: str
    estimated_time: str


@dataclass(frozen=True)
class ScrapeReport:
    """
    Immutable summary of one orchestrator run.
    """

    timestamp: datetime
    summary: ReportSummary
    per_category: Mapping[str, CategoryReport]
    top_errors: tuple[ErrorCount, ...]
    recommendations: tuple[Recommendation, ...]
    next_steps: tuple[NextStep, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "summary": asdict(self.summary),
            "categories": {
                name: asdict(category) for name, category in self.per_category.items()
            },
            "top_errors": [asdict(item) for item in self.top_errors],
            "recommendations": [asdict(item) for item in self.recommendations],
            "next_steps": [asdict(item) for item in self.next_steps],
        }
