"""
tests/test_reporting.py

Pytest unit tests for run report construction.

All tests are pure Python: bulk results are built by hand.

Coverage
--------
- Summary totals and two-decimal success rate
- Performance recommendation threshold (below 80%, never for empty runs)
- Timeout and rate-limit recommendations from top errors
- Category recommendation below 70%
- Top errors ranked and capped at five
- Fixed next steps
- Report immutability and serialization
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from app.crawling.reporting import NEXT_STEPS, build_report, top_error_counts
from app.crawling.types import BulkResult, PageScrapeResult

STARTED = datetime(2026, 1, 1, tzinfo=timezone.utc)


def _page(index: int, *, success: bool, error: str | None = None) -> PageScrapeResult:
    return PageScrapeResult(
        url=f"https://site.test/{index}",
        success=success,
        status=200 if success else 0,
        fetch_strategy="enhanced_direct" if success else "all_methods_failed",
        error=error,
    )


def _bulk(successful: int, errors: list[str | None], *, duration_ms: int = 1000) -> BulkResult:
    ok = [_page(index, success=True) for index in range(successful)]
    failed = [
        _page(successful + index, success=False, error=error) for index, error in enumerate(errors)
    ]
    total = len(ok) + len(failed)
    return BulkResult(
        successful=ok,
        failed=failed,
        total=total,
        review_pages=0,
        method_stats={},
        started_at=STARTED,
        finished_at=STARTED,
        duration_ms=duration_ms,
        success_rate_pct="0.00",
    )


def _types(report) -> list[str]:
    return [item.type for item in report.recommendations]


# ---------------------------------------------------------------------------
# Summary and recommendations
# ---------------------------------------------------------------------------


class TestSummary:
    def test_rate_above_threshold_has_no_performance_recommendation(self) -> None:
        report = build_report(
            {"broker": _bulk(82, ["Request failed with status code 500"] * 18)},
            duration_ms=5000,
        )

        assert report.summary.total_urls == 100
        assert report.summary.successful == 82
        assert report.summary.failed == 18
        assert report.summary.success_rate_pct == "82.00"
        assert report.summary.total_categories == 1
        assert report.summary.duration_ms == 5000
        assert "performance" not in _types(report)

    def test_rate_below_threshold_recommends_performance(self) -> None:
        report = build_report({"broker": _bulk(70, ["boom"] * 30)}, duration_ms=1)

        assert report.summary.success_rate_pct == "70.00"
        performance = [item for item in report.recommendations if item.type == "performance"]
        assert len(performance) == 1
        assert performance[0].priority == "high"

    def test_empty_run(self) -> None:
        report = build_report({}, duration_ms=0)

        assert report.summary.total_urls == 0
        assert report.summary.success_rate_pct == "0.00"
        assert report.recommendations == ()
        assert report.top_errors == ()
        assert report.next_steps == NEXT_STEPS

    def test_rates_across_categories(self) -> None:
        report = build_report(
            {"broker": _bulk(2, []), "review": _bulk(1, ["x"])},
            duration_ms=1,
        )

        assert report.summary.success_rate_pct == "75.00"
        assert report.per_category["broker"].success_rate_pct == "100.00"
        assert report.per_category["review"].success_rate_pct == "50.00"


class TestRecommendations:
    def test_timeout_errors_case_insensitive(self) -> None:
        report = build_report(
            {"broker": _bulk(10, ["Connect TIMEOUT after 30s"] * 2)},
            duration_ms=1,
        )

        timeout = [item for item in report.recommendations if item.type == "timeout"]
        assert len(timeout) == 1
        assert timeout[0].message.startswith("2 timeout errors detected")

    @pytest.mark.parametrize(
        "error",
        ["Request failed with status code 429", "Rate limit exceeded"],
    )
    def test_rate_limit_errors(self, error: str) -> None:
        report = build_report({"broker": _bulk(10, [error])}, duration_ms=1)

        rate_limit = [item for item in report.recommendations if item.type == "rate_limit"]
        assert len(rate_limit) == 1
        assert rate_limit[0].priority == "high"

    def test_category_below_seventy(self) -> None:
        report = build_report(
            {"broker": _bulk(20, []), "news": _bulk(1, ["x", "y"])},
            duration_ms=1,
        )

        category = [item for item in report.recommendations if item.type == "category_performance"]
        assert len(category) == 1
        assert category[0].message.startswith("news category has low success rate (33.33%)")

    def test_empty_category_is_not_flagged(self) -> None:
        report = build_report({"broker": _bulk(5, []), "news": _bulk(0, [])}, duration_ms=1)

        assert "category_performance" not in _types(report)


# ---------------------------------------------------------------------------
# Top errors, next steps, shape
# ---------------------------------------------------------------------------


class TestReportShape:
    def test_top_errors_ranked_and_capped(self) -> None:
        errors: list[str | None] = ["a"] * 4 + ["b"] * 3 + ["c"] * 2 + ["d", "e", "f"]
        errors += [None] * 5

        top = top_error_counts([_bulk(0, errors)])

        assert len(top) == 5
        assert (top[0].error, top[0].count) == ("Unknown error", 5)
        assert (top[1].error, top[1].count) == ("a", 4)
        assert (top[2].error, top[2].count) == ("b", 3)

    def test_next_steps_are_fixed(self) -> None:
        good = build_report({"broker": _bulk(10, [])}, duration_ms=1)
        bad = build_report({"broker": _bulk(0, ["x"] * 10)}, duration_ms=1)

        assert good.next_steps == bad.next_steps == NEXT_STEPS
        assert [step.step for step in NEXT_STEPS] == [
            "data_analysis",
            "error_resolution",
            "data_validation",
            "schedule_automation",
        ]

    def test_category_average_response(self) -> None:
        report = build_report({"broker": _bulk(3, [], duration_ms=1000)}, duration_ms=1)

        assert report.per_category["broker"].avg_response_ms == 333.33

    def test_report_is_immutable(self) -> None:
        report = build_report({"broker": _bulk(1, [])}, duration_ms=1)

        with pytest.raises(TypeError):
            report.per_category["review"] = report.per_category["broker"]  # type: ignore[index]
        with pytest.raises((AttributeError, TypeError)):
            report.summary.total_urls = 5  # type: ignore[misc]

    def test_to_dict(self) -> None:
        timestamp = datetime(2026, 2, 3, tzinfo=timezone.utc)
        payload = build_report(
            {"broker": _bulk(1, ["x"])},
            duration_ms=7,
            timestamp=timestamp,
        ).to_dict()

        assert payload["timestamp"] == timestamp.isoformat()
        assert payload["summary"]["success_rate_pct"] == "50.00"
        assert payload["categories"]["broker"]["failed"] == 1
        assert payload["top_errors"] == [{"error": "x", "count": 1}]
        assert len(payload["next_steps"]) == 4
