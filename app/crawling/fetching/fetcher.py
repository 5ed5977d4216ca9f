"""
Multi-tier page fetcher with retry and fallback.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping, Sequence
from urllib.parse import urlparse

import httpx

from app.crawling.config.models import CrawlSettings
from app.crawling.errors import FetchConfigurationError
from app.crawling.fetching.strategies import (
    ENHANCED_MAX_REDIRECTS,
    BasicDirectStrategy,
    EnhancedDirectStrategy,
    FetchStrategy,
    ProxyFetchStrategy,
)
from app.crawling.logging_utils import log_event
from app.crawling.types import FetchAttemptResult, FetchStrategyName

logger = logging.getLogger(__name__)


class PageFetcher:
    """
    Fetches one URL through an ordered chain of strategies.

    Retryable strategies are attempted up to `max_retries` times with capped
    exponential backoff; the rest are attempted once. The first successful
    attempt wins. Remote failures are returned as data, never raised.
    """

    def __init__(
        self,
        *,
        strategies: Sequence[FetchStrategy],
        client: httpx.AsyncClient | None = None,
        max_retries: int = 3,
        backoff_initial_seconds: float = 1.0,
        backoff_max_seconds: float = 10.0,
    ) -> None:
        if not strategies:
            raise FetchConfigurationError("PageFetcher requires at least one fetch strategy.")
        if max_retries < 1:
            raise FetchConfigurationError("max_retries must be >= 1")

        self._strategies = list(strategies)
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(max_redirects=ENHANCED_MAX_REDIRECTS)
        self._max_retries = max_retries
        self._backoff_initial_seconds = max(0.0, backoff_initial_seconds)
        self._backoff_max_seconds = max(0.0, backoff_max_seconds)

    @classmethod
    def from_settings(
        cls,
        settings: CrawlSettings,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> "PageFetcher":
        strategies: list[FetchStrategy] = [
            ProxyFetchStrategy(
                endpoint=settings.proxy_endpoint,
                api_key=settings.proxy_api_key,
                zone=settings.proxy_zone,
                timeout_seconds=settings.proxy_timeout_seconds,
            ),
            EnhancedDirectStrategy(timeout_seconds=settings.enhanced_timeout_seconds),
            BasicDirectStrategy(timeout_seconds=settings.basic_timeout_seconds),
        ]
        return cls(
            strategies=strategies,
            client=client,
            max_retries=settings.max_retries,
            backoff_initial_seconds=settings.backoff_initial_seconds,
            backoff_max_seconds=settings.backoff_max_seconds,
        )

    @property
    def client(self) -> httpx.AsyncClient:
        return self._client

    @property
    def strategies(self) -> list[FetchStrategy]:
        return list(self._strategies)

    async def __aenter__(self) -> "PageFetcher":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def backoff_seconds(self, attempt: int) -> float:
        """
        Delay after failed attempt number `attempt` (1-based).
        """

        return min(
            self._backoff_initial_seconds * (2 ** (attempt - 1)),
            self._backoff_max_seconds,
        )

    async def fetch(
        self,
        url: str,
        *,
        timeout_seconds: float | None = None,
        max_retries: int | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> FetchAttemptResult:
        """
        Fetch `url`, falling through the strategy chain until one succeeds.

        `timeout_seconds` applies to retryable strategies only; fallback
        tiers keep their own timeouts.
        """

        self._validate_url(url)
        retries = self._max_retries if max_retries is None else max_retries
        if retries < 1:
            raise FetchConfigurationError("max_retries must be >= 1")

        last_error: str | None = None
        last_status = 0
        total_attempts = 0

        for strategy in self._strategies:
            if not strategy.available:
                log_event(
                    logger,
                    logging.DEBUG,
                    "fetch_strategy_unavailable",
                    url=url,
                    strategy=strategy.name,
                )
                continue

            attempts = retries if strategy.retryable else 1
            for attempt in range(1, attempts + 1):
                total_attempts += 1
                result = await strategy.attempt(
                    self._client,
                    url,
                    timeout_seconds=timeout_seconds if strategy.retryable else None,
                    headers=None if strategy.retryable else headers,
                )
                if result.succeeded:
                    log_event(
                        logger,
                        logging.INFO,
                        "fetch_succeeded",
                        url=url,
                        strategy=strategy.name,
                        attempt=attempt,
                        status_code=result.http_status,
                    )
                    return FetchAttemptResult(
                        url=url,
                        succeeded=True,
                        html_body=result.html_body,
                        http_status=result.http_status,
                        strategy_used=strategy.name,
                        attempts=total_attempts,
                    )

                last_error = result.error_message
                if result.http_status:
                    last_status = result.http_status
                log_event(
                    logger,
                    logging.WARNING,
                    "fetch_attempt_failed",
                    url=url,
                    strategy=strategy.name,
                    attempt=attempt,
                    max_attempts=attempts,
                    status_code=result.http_status,
                    error=result.error_message,
                )

                if attempt < attempts:
                    delay = self.backoff_seconds(attempt)
                    if delay > 0:
                        await asyncio.sleep(delay)

        log_event(
            logger,
            logging.ERROR,
            "fetch_all_methods_failed",
            url=url,
            attempts=total_attempts,
            error=last_error,
        )
        return FetchAttemptResult(
            url=url,
            succeeded=False,
            html_body="",
            http_status=last_status,
            strategy_used=FetchStrategyName.ALL_METHODS_FAILED,
            error_message=last_error or "All fetch methods failed after multiple attempts",
            attempts=total_attempts,
        )

    @staticmethod
    def _validate_url(url: str) -> None:
        parsed = urlparse(url or "")
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            raise FetchConfigurationError(f"Unsupported URL for fetching: {url!r}")
