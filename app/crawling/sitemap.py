"""
Recursive sitemap and sitemap-index URL discovery.
"""

from __future__ import annotations

import gzip
import logging
import xml.etree.ElementTree as ET
import zlib
from dataclasses import dataclass, field

import httpx

from app.crawling.fetching.fetcher import PageFetcher
from app.crawling.logging_utils import log_event

logger = logging.getLogger(__name__)

DEFAULT_SITEMAP_USER_AGENT = "BrokerAnalysis-Crawler/1.0"
SITEMAP_HEADERS = {
    "Accept": "application/xml, text/xml, */*",
    "Accept-Encoding": "gzip, deflate",
}
BLOCKED_STATUS_CODES = {403, 429}
GZIP_MAGIC = b"\x1f\x8b"


class SitemapFetchError(Exception):
    """Raised internally when one sitemap document cannot be retrieved."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass
class ParsedSitemap:
    kind: str
    locations: list[str] = field(default_factory=list)


class SitemapCollector:
    """
    Walks a sitemap graph and returns every page URL it lists.

    Each sitemap URL is visited at most once per `collect` call, so indexes
    that reference each other (or list a child twice) still terminate.
    """

    def __init__(
        self,
        *,
        client: httpx.AsyncClient,
        timeout_seconds: float = 60.0,
        fallback_fetcher: PageFetcher | None = None,
        max_depth: int = 10,
        user_agent: str = DEFAULT_SITEMAP_USER_AGENT,
    ) -> None:
        self._client = client
        self._timeout_seconds = timeout_seconds
        self._fallback_fetcher = fallback_fetcher
        self._max_depth = max(1, max_depth)
        self._headers = {**SITEMAP_HEADERS, "User-Agent": user_agent}

    async def collect(self, sitemap_url: str) -> set[str]:
        visited: set[str] = set()
        urls: set[str] = set()
        await self._walk(sitemap_url, visited=visited, urls=urls, depth=0)
        log_event(
            logger,
            logging.INFO,
            "sitemap_collected",
            sitemap_url=sitemap_url,
            sitemaps_visited=len(visited),
            urls=len(urls),
        )
        return urls

    async def _walk(
        self,
        sitemap_url: str,
        *,
        visited: set[str],
        urls: set[str],
        depth: int,
    ) -> None:
        if sitemap_url in visited:
            return
        visited.add(sitemap_url)

        if depth >= self._max_depth:
            log_event(
                logger,
                logging.WARNING,
                "sitemap_depth_exceeded",
                sitemap_url=sitemap_url,
                depth=depth,
            )
            return

        try:
            document = await self._fetch_xml(sitemap_url)
            parsed = parse_sitemap(document)
        except (SitemapFetchError, ET.ParseError) as exc:
            log_event(
                logger,
                logging.WARNING,
                "sitemap_node_failed",
                sitemap_url=sitemap_url,
                error=str(exc),
            )
            return

        if parsed.kind == "sitemapindex":
            for child in parsed.locations:
                await self._walk(child, visited=visited, urls=urls, depth=depth + 1)
        elif parsed.kind == "urlset":
            urls.update(parsed.locations)
        else:
            log_event(
                logger,
                logging.WARNING,
                "sitemap_unrecognized_root",
                sitemap_url=sitemap_url,
                root=parsed.kind,
            )

    async def _fetch_xml(self, sitemap_url: str) -> bytes:
        try:
            response = await self._client.get(
                sitemap_url,
                headers=self._headers,
                timeout=self._timeout_seconds,
                follow_redirects=True,
            )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise SitemapFetchError(str(exc) or exc.__class__.__name__) from exc

        if response.status_code in BLOCKED_STATUS_CODES and self._fallback_fetcher is not None:
            return await self._fetch_via_fallback(
                self._fallback_fetcher, sitemap_url, response.status_code
            )
        if response.status_code >= 400:
            raise SitemapFetchError(
                f"Sitemap request failed with status {response.status_code}",
                response.status_code,
            )
        if not response.content:
            raise SitemapFetchError("Empty sitemap response", response.status_code)
        return _maybe_decompress(response.content)

    async def _fetch_via_fallback(
        self,
        fetcher: PageFetcher,
        sitemap_url: str,
        status_code: int,
    ) -> bytes:
        log_event(
            logger,
            logging.INFO,
            "sitemap_fallback_fetch",
            sitemap_url=sitemap_url,
            blocked_status=status_code,
        )
        result = await fetcher.fetch(sitemap_url)
        if not result.succeeded:
            raise SitemapFetchError(
                f"Blocked ({status_code}) and fallback failed: {result.error_message}",
                status_code,
            )
        return result.html_body.encode("utf-8")


def parse_sitemap(document: bytes | str) -> ParsedSitemap:
    """
    Classify a sitemap document and list its `<loc>` entries.
    """

    data = document.encode("utf-8") if isinstance(document, str) else document
    root = ET.fromstring(data.strip())
    kind = _local_name(root.tag)
    entry_tag = {"sitemapindex": "sitemap", "urlset": "url"}.get(kind)
    if entry_tag is None:
        return ParsedSitemap(kind=kind)

    locations: list[str] = []
    for entry in root:
        if _local_name(entry.tag) != entry_tag:
            continue
        for child in entry:
            if _local_name(child.tag) == "loc" and child.text and child.text.strip():
                locations.append(child.text.strip())
    return ParsedSitemap(kind=kind, locations=locations)


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1].lower()


def _maybe_decompress(content: bytes) -> bytes:
    if content[:2] != GZIP_MAGIC:
        return content
    try:
        return gzip.decompress(content)
    except (OSError, EOFError, zlib.error) as exc:
        raise SitemapFetchError(f"Corrupt gzip sitemap: {exc}") from exc
