"""
tests/support.py

Builders shared by the crawl engine tests.

Network access is replaced by ``httpx.MockTransport`` handlers and backoff
delays are zeroed so no test sleeps between attempts.
"""

from __future__ import annotations

from collections.abc import Callable

import httpx

from app.crawling.fetching import BasicDirectStrategy, EnhancedDirectStrategy, PageFetcher

Handler = Callable[[httpx.Request], httpx.Response]


SAMPLE_PAGE = """
<html lang="en">
  <head>
    <title>  Example Broker | Forex Trading  </title>
    <meta name="description" content="Trade forex and CFDs.">
    <meta property="og:title" content="Example Broker">
  </head>
  <body>
    <h1>Example Broker</h1>
    <p>Regulated by the FCA. Minimum deposit $100.</p>
    <script>var hidden = "not visible";</script>
  </body>
</html>
"""


def build_client(handler: Handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def build_direct_fetcher(client: httpx.AsyncClient, **kwargs) -> PageFetcher:
    """PageFetcher with both direct tiers, no proxy tier and no backoff."""
    kwargs.setdefault("backoff_initial_seconds", 0.0)
    kwargs.setdefault("backoff_max_seconds", 0.0)
    return PageFetcher(
        strategies=[EnhancedDirectStrategy(), BasicDirectStrategy()],
        client=client,
        **kwargs,
    )


def html_response(body: str = SAMPLE_PAGE, status_code: int = 200) -> httpx.Response:
    return httpx.Response(
        status_code,
        text=body,
        headers={"content-type": "text/html; charset=utf-8"},
    )
