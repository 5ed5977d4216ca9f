"""
app/api/routers/crawl.py

Crawl job control and crawled page lookup endpoints.
"""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status

from app.crawling.errors import RecordStoreError
from app.crawling.orchestrator import ScrapeOptions
from app.schemas.crawl import (
    CrawledPageResponse,
    CrawledPageSearchResponse,
    CrawlJobAcceptedResponse,
    CrawlJobRequest,
    CrawlJobStatusResponse,
    CrawlJobStopResponse,
    CrawlStatisticsResponse,
)
from app.services.crawl_runtime_service import CrawlRuntime, get_crawl_runtime

router = APIRouter(prefix="/crawl", tags=["crawl"])


@router.post(
    "/jobs",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=CrawlJobAcceptedResponse,
)
async def start_crawl_job(
    background_tasks: BackgroundTasks,
    request: CrawlJobRequest | None = None,
    runtime: CrawlRuntime = Depends(get_crawl_runtime),
) -> CrawlJobAcceptedResponse:
    """
    Start a comprehensive scrape in the background. Rejected while a run is active.
    """

    if runtime.orchestrator.is_running:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Scraping job is already running",
        )

    options = ScrapeOptions(**(request or CrawlJobRequest()).model_dump())
    background_tasks.add_task(runtime.orchestrator.run_if_idle, options, trigger="api")
    return CrawlJobAcceptedResponse(accepted=True, priority_only=options.priority_only)


@router.post("/jobs/stop", response_model=CrawlJobStopResponse)
async def stop_crawl_job(
    runtime: CrawlRuntime = Depends(get_crawl_runtime),
) -> CrawlJobStopResponse:
    return CrawlJobStopResponse(stop_requested=runtime.orchestrator.stop())


@router.get("/jobs/status", response_model=CrawlJobStatusResponse)
async def get_crawl_job_status(
    runtime: CrawlRuntime = Depends(get_crawl_runtime),
) -> CrawlJobStatusResponse:
    return CrawlJobStatusResponse.model_validate(runtime.orchestrator.get_job_status())


@router.get("/pages", response_model=CrawledPageResponse)
async def get_crawled_page(
    url: str = Query(..., min_length=1, description="Exact URL of the crawled page"),
    runtime: CrawlRuntime = Depends(get_crawl_runtime),
) -> CrawledPageResponse:
    try:
        record = await runtime.service.get_crawled_page(url)
    except RecordStoreError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(exc),
        ) from exc

    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No crawled page stored for {url}",
        )
    return CrawledPageResponse.model_validate(record)


@router.get("/pages/search", response_model=CrawledPageSearchResponse)
async def search_crawled_pages(
    q: str | None = Query(default=None, description="Text matched against page text and title"),
    status_code: int | None = Query(default=200, alias="status", description="HTTP status filter"),
    fetched_from: datetime | None = Query(default=None),
    fetched_to: datetime | None = Query(default=None),
    limit: int = Query(default=10, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    runtime: CrawlRuntime = Depends(get_crawl_runtime),
) -> CrawledPageSearchResponse:
    try:
        records = await runtime.service.search_crawled_pages(
            q,
            limit=limit,
            offset=offset,
            status=status_code,
            fetched_from=fetched_from,
            fetched_to=fetched_to,
        )
    except RecordStoreError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(exc),
        ) from exc

    return CrawledPageSearchResponse(
        pages=[CrawledPageResponse.model_validate(record) for record in records]
    )


@router.get("/statistics", response_model=CrawlStatisticsResponse)
async def get_crawl_statistics(
    runtime: CrawlRuntime = Depends(get_crawl_runtime),
) -> CrawlStatisticsResponse:
    statistics = await runtime.orchestrator.get_scraping_statistics()
    return CrawlStatisticsResponse.model_validate(statistics)
