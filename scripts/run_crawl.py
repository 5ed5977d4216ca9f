"""
Run a broker crawl from CLI.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
from typing import Any

from app.crawling.config import get_crawl_settings
from app.crawling.orchestrator import ScrapeOptions
from app.crawling.service import BulkScrapeOptions
from app.crawling.storage import InMemoryRecordStore, RecordStore, SQLAlchemyRecordStore
from app.crawling.types import SitemapScrapeResult
from app.services.crawl_runtime_service import CrawlRuntime
from db.session import dispose_engine, get_session_factory


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Crawl broker, review, regulatory and news pages.")
    parser.add_argument(
        "--mode",
        choices=("full", "priority", "sitemap"),
        default="full",
        help="full: catalog run; priority: priority URLs only; sitemap: crawl a sitemap.",
    )
    parser.add_argument("--sitemap-url", default=None, help="Sitemap or sitemap index URL.")
    parser.add_argument("--filter-domain", default=None, help="Keep sitemap URLs with this prefix.")
    parser.add_argument("--max-urls", type=int, default=None, help="Cap on sitemap URLs crawled.")
    parser.add_argument("--no-brokers", action="store_true", help="Skip broker URLs.")
    parser.add_argument("--no-reviews", action="store_true", help="Skip review site URLs.")
    parser.add_argument("--include-regulatory", action="store_true", help="Add regulator URLs.")
    parser.add_argument("--include-news", action="store_true", help="Add news site URLs.")
    parser.add_argument(
        "--max-concurrent",
        type=int,
        default=None,
        help="Concurrent fetches per batch (default: CRAWL_MAX_CONCURRENT).",
    )
    parser.add_argument(
        "--delay-between-batches",
        type=float,
        default=5.0,
        help="Seconds to wait between category batches.",
    )
    parser.add_argument(
        "--memory",
        action="store_true",
        help="Keep records in memory instead of the database.",
    )
    return parser


def _sitemap_payload(result: SitemapScrapeResult) -> dict[str, Any]:
    bulk = result.bulk
    return {
        "sitemap_url": result.sitemap_url,
        "total_sitemap_urls": result.total_sitemap_urls,
        "filtered_urls": result.filtered_urls,
        "review_urls": result.review_urls,
        "total": bulk.total,
        "successful": len(bulk.successful),
        "failed": len(bulk.failed),
        "review_pages": bulk.review_pages,
        "method_stats": bulk.method_stats,
        "success_rate_pct": bulk.success_rate_pct,
        "duration_ms": bulk.duration_ms,
        "errors": sorted({item.error for item in bulk.failed if item.error}),
    }


async def _run(args: argparse.Namespace) -> dict[str, Any]:
    store: RecordStore
    if args.memory:
        store = InMemoryRecordStore()
    else:
        store = SQLAlchemyRecordStore(session_factory=get_session_factory())

    settings = get_crawl_settings()
    max_concurrent = args.max_concurrent or settings.max_concurrent
    runtime = CrawlRuntime(settings=settings, store=store)
    try:
        if args.mode == "sitemap":
            result = await runtime.service.scrape_sitemap(
                args.sitemap_url,
                filter_domain=args.filter_domain,
                max_urls=args.max_urls,
                options=BulkScrapeOptions(max_concurrent=max_concurrent),
            )
            return _sitemap_payload(result)

        report = await runtime.orchestrator.start_comprehensive_scraping(
            ScrapeOptions(
                include_brokers=not args.no_brokers,
                include_reviews=not args.no_reviews,
                include_regulatory=args.include_regulatory,
                include_news=args.include_news,
                priority_only=args.mode == "priority",
                max_concurrent=max_concurrent,
                delay_between_batches_seconds=args.delay_between_batches,
            )
        )
        return report.to_dict()
    finally:
        await runtime.aclose()
        if not args.memory:
            await dispose_engine()


def main() -> int:
    parser = _build_parser()
    args = parser.parse_args()
    if args.mode == "sitemap" and not args.sitemap_url:
        parser.error("--sitemap-url is required with --mode sitemap")
    if args.max_concurrent is not None and args.max_concurrent < 1:
        parser.error("--max-concurrent must be >= 1")

    logging.basicConfig(
        level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").strip().upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    payload = asyncio.run(_run(args))
    print(json.dumps(payload, indent=2, default=str))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
