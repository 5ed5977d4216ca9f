"""
Fetch strategies tried in order by the page fetcher.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping

import httpx

from app.crawling.types import FetchAttemptResult, FetchStrategyName

ENHANCED_HEADERS: dict[str, str] = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": (
        "text/html,application/xhtml+xml,application/xml;q=0.9,"
        "image/avif,image/webp,image/apng,*/*;q=0.8"
    ),
    "Accept-Language": "en-US,en;q=0.9",
    "Accept-Encoding": "gzip, deflate, br",
    "Connection": "keep-alive",
    "Upgrade-Insecure-Requests": "1",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "none",
    "Cache-Control": "max-age=0",
}
BASIC_USER_AGENT = "Mozilla/5.0 (compatible; BrokerAnalysis/1.0)"
ENHANCED_MAX_REDIRECTS = 5


class FetchStrategy(ABC):
    """
    One way of retrieving a page body.

    `attempt` performs a single network try and reports the outcome as data;
    transport errors never escape it.
    """

    name: str
    retryable: bool = False

    def __init__(self, *, timeout_seconds: float) -> None:
        self.timeout_seconds = timeout_seconds

    @property
    def available(self) -> bool:
        return True

    @abstractmethod
    async def attempt(
        self,
        client: httpx.AsyncClient,
        url: str,
        *,
        timeout_seconds: float | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> FetchAttemptResult:
        """
        Try to fetch `url` once.
        """

    def _success(self, url: str, body: str, status: int) -> FetchAttemptResult:
        return FetchAttemptResult(
            url=url,
            succeeded=True,
            html_body=body,
            http_status=status,
            strategy_used=self.name,
        )

    def _failure(self, url: str, error: str, status: int = 0) -> FetchAttemptResult:
        return FetchAttemptResult(
            url=url,
            succeeded=False,
            html_body="",
            http_status=status,
            strategy_used=self.name,
            error_message=error,
        )


class ProxyFetchStrategy(FetchStrategy):
    """
    Render-and-return proxy service reached over an authenticated POST.
    """

    name = FetchStrategyName.PRIMARY_PROXY
    retryable = True

    def __init__(
        self,
        *,
        endpoint: str,
        api_key: str | None,
        zone: str | None = None,
        timeout_seconds: float = 120.0,
    ) -> None:
        super().__init__(timeout_seconds=timeout_seconds)
        self.endpoint = endpoint
        self._api_key = api_key
        self._zone = zone

    @property
    def available(self) -> bool:
        return bool(self._api_key)

    async def attempt(
        self,
        client: httpx.AsyncClient,
        url: str,
        *,
        timeout_seconds: float | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> FetchAttemptResult:
        payload: dict[str, str] = {"url": url, "format": "raw"}
        if self._zone:
            payload["zone"] = self._zone

        try:
            response = await client.post(
                self.endpoint,
                json=payload,
                headers={
                    "Authorization": f"Bearer {self._api_key}",
                    "Content-Type": "application/json",
                },
                timeout=timeout_seconds or self.timeout_seconds,
            )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            return self._failure(url, _describe_error(exc))

        if response.status_code >= 400:
            return self._failure(
                url,
                f"Fetch proxy returned status {response.status_code}",
                response.status_code,
            )

        body = _proxy_body(response)
        if not body:
            return self._failure(url, "Empty response from fetch proxy", response.status_code)
        return self._success(url, body, response.status_code)


class DirectFetchStrategy(FetchStrategy):
    """
    Plain GET against the target site.
    """

    base_headers: Mapping[str, str] = {}
    max_accepted_status = 400

    async def attempt(
        self,
        client: httpx.AsyncClient,
        url: str,
        *,
        timeout_seconds: float | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> FetchAttemptResult:
        request_headers = {**self.base_headers, **(headers or {})}
        try:
            response = await client.get(
                url,
                headers=request_headers,
                timeout=timeout_seconds or self.timeout_seconds,
                follow_redirects=True,
            )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            return self._failure(url, _describe_error(exc))

        if response.status_code >= self.max_accepted_status:
            return self._failure(
                url,
                f"Request failed with status code {response.status_code}",
                response.status_code,
            )
        if not response.text:
            return self._failure(url, "Empty response body", response.status_code)
        return self._success(url, response.text, response.status_code)


class EnhancedDirectStrategy(DirectFetchStrategy):
    name = FetchStrategyName.ENHANCED_DIRECT
    base_headers = ENHANCED_HEADERS
    max_accepted_status = 400

    def __init__(self, *, timeout_seconds: float = 60.0) -> None:
        super().__init__(timeout_seconds=timeout_seconds)


class BasicDirectStrategy(DirectFetchStrategy):
    name = FetchStrategyName.BASIC_DIRECT
    base_headers = {"User-Agent": BASIC_USER_AGENT}
    max_accepted_status = 500

    def __init__(self, *, timeout_seconds: float = 30.0) -> None:
        super().__init__(timeout_seconds=timeout_seconds)


def _proxy_body(response: httpx.Response) -> str:
    content_type = response.headers.get("content-type", "").lower()
    if "application/json" in content_type:
        try:
            parsed = response.json()
        except ValueError:
            return response.text
        if isinstance(parsed, dict):
            body = parsed.get("body")
            return body if isinstance(body, str) else ""
        if isinstance(parsed, str):
            return parsed
    return response.text


def _describe_error(exc: httpx.HTTPError | httpx.InvalidURL) -> str:
    if isinstance(exc, httpx.TimeoutException):
        return f"timeout: {exc}" if str(exc) else "timeout"
    return str(exc) or exc.__class__.__name__
