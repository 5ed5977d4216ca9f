"""
Heuristic parser for broker review pages.
"""

from __future__ import annotations

import re
from urllib.parse import urlparse

from bs4 import BeautifulSoup, Tag

from app.crawling.parsing.content_extractor import ContentExtractor, Document
from app.crawling.types import ReviewData

REVIEW_PATH_MARKERS = ("/broker-reviews/", "/review/", "/brokers/")
SECTION_HEADINGS = ("h2", "h3")
SECTION_KEY_MAX_CHARS = 60
MAX_LIST_ITEMS = 50

PRO_LABELS = frozenset({"pro", "pros"})
CON_LABELS = frozenset({"con", "cons"})

NUMBER_REGEX = re.compile(r"\d+(?:\.\d+)?")
LABEL_TOKEN_REGEX = re.compile(r"[\s_\-]+")


def is_review_url(url: str) -> bool:
    """
    Path-shape heuristic for broker review pages.

    Listing pages under `/brokers/` match too; callers treat the result as a
    hint, not a classification.
    """

    path = (urlparse(url).path or url).lower()
    return any(marker in path for marker in REVIEW_PATH_MARKERS)


class ReviewParser:
    """
    Best-effort extraction of title, rating, sections and pros/cons.
    """

    def __init__(self, extractor: type[ContentExtractor] = ContentExtractor) -> None:
        self._extractor = extractor

    def parse(self, document: Document, url: str) -> ReviewData:
        soup = (
            document
            if isinstance(document, BeautifulSoup)
            else self._extractor.parse_document(document)
        )
        return ReviewData(
            url=url,
            title=self._title(soup),
            rating=self._rating(soup),
            last_updated=self._last_updated(soup),
            sections=self._sections(soup),
            pros=self._labelled_items(soup, PRO_LABELS),
            cons=self._labelled_items(soup, CON_LABELS),
        )

    @staticmethod
    def _title(soup: BeautifulSoup) -> str:
        heading = soup.find("h1")
        if heading is None:
            return ""
        return _clean(heading.get_text(" ", strip=True))

    @staticmethod
    def _rating(soup: BeautifulSoup) -> float:
        for node in soup.find_all(_has_rating_marker):
            match = NUMBER_REGEX.search(node.get_text(" ", strip=True))
            if match is not None:
                return float(match.group(0))
        return 0.0

    @staticmethod
    def _last_updated(soup: BeautifulSoup) -> str:
        node = soup.select_one('[data-test*="updated"], time[datetime]')
        if node is None:
            return ""
        return (node.get("datetime") or node.get_text(" ", strip=True) or "").strip()

    @staticmethod
    def _sections(soup: BeautifulSoup) -> dict[str, str]:
        sections: dict[str, str] = {}
        for heading in soup.find_all(SECTION_HEADINGS):
            key = re.sub(r"\s+", "_", _clean(heading.get_text(" ", strip=True)).lower())
            key = key[:SECTION_KEY_MAX_CHARS]
            if not key:
                continue

            parts: list[str] = []
            for sibling in heading.next_siblings:
                if isinstance(sibling, Tag):
                    if sibling.name in SECTION_HEADINGS:
                        break
                    parts.append(sibling.get_text(" ", strip=True))
                else:
                    parts.append(str(sibling))
            content = _clean(" ".join(parts))
            if content:
                sections[key] = content
        return sections

    @staticmethod
    def _labelled_items(soup: BeautifulSoup, labels: frozenset[str]) -> list[str]:
        items: list[str] = []
        seen: set[int] = set()
        for container in soup.find_all(lambda tag: _has_label(tag, labels)):
            for item in container.find_all("li"):
                if id(item) in seen:
                    continue
                seen.add(id(item))
                text = _clean(item.get_text(" ", strip=True))
                if text:
                    items.append(text)
                if len(items) >= MAX_LIST_ITEMS:
                    return items
        return items


def _has_rating_marker(tag: Tag) -> bool:
    classes = tag.get("class") or []
    if any("rating" in value.lower() for value in classes):
        return True
    return "rating" in (tag.get("id") or "").lower()


def _has_label(tag: Tag, labels: frozenset[str]) -> bool:
    raw_values: list[str] = list(tag.get("class") or [])
    raw_values.append(tag.get("id") or "")
    raw_values.append(tag.get("aria-label") or "")
    for raw in raw_values:
        tokens = LABEL_TOKEN_REGEX.split(raw.strip().lower())
        if labels.intersection(tokens):
            return True
    return False


def _clean(value: str) -> str:
    return re.sub(r"\s+", " ", value).strip()
