"""
Run report construction for orchestrator runs.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from types import MappingProxyType

from app.crawling.types import (
    BulkResult,
    CategoryReport,
    ErrorCount,
    NextStep,
    Recommendation,
    ReportSummary,
    ScrapeReport,
    format_rate,
)

TOP_ERROR_LIMIT = 5
OVERALL_RATE_THRESHOLD = 80.0
CATEGORY_RATE_THRESHOLD = 70.0
UNKNOWN_ERROR = "Unknown error"

NEXT_STEPS: tuple[NextStep, ...] = (
    NextStep(
        step="data_analysis",
        description="Analyze scraped data for broker insights and trends",
        priority="high",
        estimated_time="2-4 hours",
    ),
    NextStep(
        step="error_resolution",
        description="Review and resolve failed scraping attempts",
        priority="medium",
        estimated_time="1-2 hours",
    ),
    NextStep(
        step="data_validation",
        description="Validate extracted broker information for accuracy",
        priority="high",
        estimated_time="3-5 hours",
    ),
    NextStep(
        step="schedule_automation",
        description="Set up automated daily/weekly scraping schedules",
        priority="medium",
        estimated_time="1 hour",
    ),
)


def build_report(
    category_results: Mapping[str, BulkResult],
    *,
    duration_ms: int,
    timestamp: datetime | None = None,
) -> ScrapeReport:
    """
    Summarize per-category bulk results into an immutable run report.
    """

    per_category = {
        category: _category_report(result) for category, result in category_results.items()
    }
    total = sum(item.total for item in per_category.values())
    successful = sum(item.successful for item in per_category.values())
    failed = sum(item.failed for item in per_category.values())

    summary = ReportSummary(
        total_categories=len(per_category),
        total_urls=total,
        successful=successful,
        failed=failed,
        success_rate_pct=format_rate(successful, total),
        duration_ms=duration_ms,
    )
    top_errors = top_error_counts(category_results.values())

    return ScrapeReport(
        timestamp=timestamp or datetime.now(timezone.utc),
        summary=summary,
        per_category=MappingProxyType(per_category),
        top_errors=top_errors,
        recommendations=build_recommendations(summary, per_category, top_errors),
        next_steps=NEXT_STEPS,
    )


def top_error_counts(results: Iterable[BulkResult]) -> tuple[ErrorCount, ...]:
    """
    Most frequent failure messages by exact string, most common first.
    """

    counts: Counter[str] = Counter()
    for result in results:
        counts.update(item.error or UNKNOWN_ERROR for item in result.failed)
    return tuple(
        ErrorCount(error=error, count=count)
        for error, count in counts.most_common(TOP_ERROR_LIMIT)
    )


def build_recommendations(
    summary: ReportSummary,
    per_category: Mapping[str, CategoryReport],
    top_errors: tuple[ErrorCount, ...],
) -> tuple[Recommendation, ...]:
    recommendations: list[Recommendation] = []

    if summary.total_urls > 0 and float(summary.success_rate_pct) < OVERALL_RATE_THRESHOLD:
        recommendations.append(
            Recommendation(
                type="performance",
                priority="high",
                message=(
                    "Overall success rate is below 80%. Consider reducing concurrent "
                    "requests or increasing timeouts."
                ),
            )
        )

    for item in top_errors:
        lowered = item.error.lower()
        if "timeout" in lowered:
            recommendations.append(
                Recommendation(
                    type="timeout",
                    priority="medium",
                    message=(
                        f"{item.count} timeout errors detected. Consider increasing "
                        "timeout values."
                    ),
                )
            )
        if "rate limit" in lowered or "429" in lowered:
            recommendations.append(
                Recommendation(
                    type="rate_limit",
                    priority="high",
                    message=(
                        f"{item.count} rate limit errors detected. Reduce concurrent "
                        "requests and increase delays."
                    ),
                )
            )

    for category, report in per_category.items():
        if report.total > 0 and float(report.success_rate_pct) < CATEGORY_RATE_THRESHOLD:
            recommendations.append(
                Recommendation(
                    type="category_performance",
                    priority="medium",
                    message=(
                        f"{category} category has low success rate "
                        f"({report.success_rate_pct}%). Review site-specific configurations."
                    ),
                )
            )

    return tuple(recommendations)


def _category_report(result: BulkResult) -> CategoryReport:
    avg_response_ms = round(result.duration_ms / result.total, 2) if result.total else 0.0
    return CategoryReport(
        total=result.total,
        successful=len(result.successful),
        failed=len(result.failed),
        success_rate_pct=format_rate(len(result.successful), result.total),
        duration_ms=result.duration_ms,
        avg_response_ms=avg_response_ms,
    )
