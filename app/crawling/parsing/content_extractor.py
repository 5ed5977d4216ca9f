"""
BeautifulSoup-based content extraction for fetched pages.
"""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timezone
from typing import Any

from bs4 import BeautifulSoup, Tag
from bs4.element import Comment, Declaration, Doctype, ProcessingInstruction

from app.crawling.logging_utils import log_event
from app.crawling.types import ContactInfo, StructuredPayload

logger = logging.getLogger(__name__)

Document = str | BeautifulSoup

NON_CONTENT_TAGS = ("script", "style", "noscript")

BROKER_SIGNAL_KEYWORDS: dict[str, tuple[str, ...]] = {
    "regulation": ("regulation", "regulated", "license", "authorized"),
    "spreads": ("spread", "pip", "commission"),
    "platforms": ("platform", "mt4", "mt5", "trading platform"),
    "instruments": ("instrument", "asset", "forex", "cfd", "stock"),
    "leverage": ("leverage", "margin"),
    "deposit": ("deposit", "minimum deposit", "funding"),
}
SIGNAL_CONTEXT_CHARS = 50

ELEMENT_TEXT_SELECTORS: dict[str, str] = {
    "regulation_text": '[class*="regulation"], [id*="regulation"], [data-regulation]',
    "spread_text": '[class*="spread"], [id*="spread"], [data-spread]',
}

SOCIAL_PLATFORMS: dict[str, str] = {
    "facebook": "facebook.com",
    "twitter": "twitter.com",
    "linkedin": "linkedin.com",
    "instagram": "instagram.com",
}

RATING_SELECTOR = '[class*="rating"], [class*="score"], [class*="star"], [data-rating]'

EMAIL_REGEX = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
PHONE_REGEX = re.compile(r"(?<![\d+])\+?\d{7,15}(?!\d)")
RATING_FRACTION_REGEX = re.compile(r"(\d+(?:\.\d+)?)\s*/\s*(\d+)")
REVIEW_COUNT_REGEX = re.compile(r"[0-9][0-9,]*\s*(?:review|rating)s?", flags=re.IGNORECASE)
WHITESPACE_REGEX = re.compile(r"\s+")


class ContentExtractor:
    """
    Pure extraction helpers over an HTML document.

    Every public method accepts either raw HTML or an already parsed
    `BeautifulSoup` tree and never mutates the tree it is given.
    """

    @staticmethod
    def parse_document(html: str) -> BeautifulSoup:
        return BeautifulSoup(html or "", "html.parser")

    @classmethod
    def extract_text(cls, document: Document) -> str:
        """
        Visible body text with script/style/noscript removed, whitespace collapsed.
        """

        soup = cls._soup(document)
        root = soup.body or soup
        chunks: list[str] = []
        for node in root.find_all(string=True):
            if node.find_parent(NON_CONTENT_TAGS) is not None:
                continue
            if isinstance(node, (Comment, Declaration, Doctype, ProcessingInstruction)):
                continue
            chunks.append(str(node))
        return cls._clean_text(" ".join(chunks))

    @classmethod
    def extract_metadata(cls, document: Document) -> dict[str, str]:
        soup = cls._soup(document)
        metadata: dict[str, str] = {}

        title = soup.find("title")
        if title is not None:
            title_text = cls._clean_text(title.get_text())
            if title_text:
                metadata["title"] = title_text

        for field_name in ("description", "keywords"):
            value = cls._meta_content(soup, name=field_name)
            if value:
                metadata[field_name] = value

        for meta in soup.find_all("meta"):
            key = (meta.get("property") or meta.get("name") or "").strip()
            content = (meta.get("content") or "").strip()
            if not key or not content:
                continue
            if key.startswith("og:"):
                metadata["og_" + key[3:]] = content
            elif key.startswith("twitter:"):
                metadata["twitter_" + key[8:]] = content

        canonical = soup.find("link", rel=lambda value: value and "canonical" in value)
        if canonical is not None and canonical.get("href"):
            metadata["canonical"] = canonical["href"].strip()

        language = None
        html_tag = soup.find("html")
        if html_tag is not None:
            language = (html_tag.get("lang") or "").strip() or None
        if language is None:
            meta_language = soup.find(
                "meta",
                attrs={"http-equiv": lambda value: value and value.lower() == "content-language"},
            )
            if meta_language is not None:
                language = (meta_language.get("content") or "").strip() or None
        if language:
            metadata["language"] = language

        return metadata

    @classmethod
    def extract_structured_data(cls, document: Document, url: str) -> StructuredPayload:
        soup = cls._soup(document)
        text = cls.extract_text(soup)
        return StructuredPayload(
            url=url,
            extracted_at=datetime.now(timezone.utc),
            json_ld_blocks=cls.extract_json_ld(soup, url=url),
            broker_signals=cls.extract_broker_signals(text),
            element_text=cls.extract_element_text(soup),
            contact=cls.extract_contact(soup, text=text),
            ratings=cls.extract_ratings(soup, text=text),
        )

    @classmethod
    def extract_json_ld(cls, document: Document, *, url: str = "") -> list[Any]:
        soup = cls._soup(document)
        blocks: list[Any] = []
        for script in soup.find_all("script", attrs={"type": "application/ld+json"}):
            raw = script.string if script.string is not None else script.get_text()
            try:
                blocks.append(json.loads(raw))
            except (TypeError, ValueError) as exc:
                log_event(
                    logger,
                    logging.WARNING,
                    "json_ld_parse_failed",
                    url=url,
                    error=str(exc),
                )
        return blocks

    @staticmethod
    def extract_broker_signals(text: str) -> dict[str, list[str]]:
        """
        Keyword hits per broker category with ~100 chars of surrounding context.
        """

        lowered = text.lower()
        signals: dict[str, list[str]] = {}
        for category, keywords in BROKER_SIGNAL_KEYWORDS.items():
            matches: list[str] = []
            for keyword in keywords:
                for hit in re.finditer(re.escape(keyword), lowered):
                    start = max(0, hit.start() - SIGNAL_CONTEXT_CHARS)
                    end = hit.end() + SIGNAL_CONTEXT_CHARS
                    matches.append(lowered[start:end])
            if matches:
                signals[category] = matches
        return signals

    @classmethod
    def extract_element_text(cls, document: Document) -> dict[str, str]:
        soup = cls._soup(document)
        found: dict[str, str] = {}
        for key, selector in ELEMENT_TEXT_SELECTORS.items():
            text = cls._clean_text(
                " ".join(node.get_text(" ", strip=True) for node in soup.select(selector))
            )
            if text:
                found[key] = text
        return found

    @classmethod
    def extract_contact(cls, document: Document, *, text: str | None = None) -> ContactInfo:
        soup = cls._soup(document)
        body_text = text if text is not None else cls.extract_text(soup)

        social_links: dict[str, str] = {}
        for anchor in soup.find_all("a", href=True):
            href = anchor["href"].strip()
            for platform, domain in SOCIAL_PLATFORMS.items():
                if domain in href and platform not in social_links:
                    social_links[platform] = href

        return ContactInfo(
            emails=_unique(EMAIL_REGEX.findall(body_text)),
            phones=_unique(PHONE_REGEX.findall(body_text)),
            social_links=social_links,
        )

    @classmethod
    def extract_ratings(cls, document: Document, *, text: str | None = None) -> dict[str, Any]:
        soup = cls._soup(document)
        ratings: dict[str, Any] = {}

        index = 0
        for node in soup.select(RATING_SELECTOR):
            node_text = cls._clean_text(node.get_text(" ", strip=True))
            match = RATING_FRACTION_REGEX.search(node_text)
            if match is None:
                continue
            ratings[f"rating_{index}"] = {
                "score": float(match.group(1)),
                "max": int(match.group(2)),
                "text": node_text,
            }
            index += 1

        body_text = text if text is not None else cls.extract_text(soup)
        review_counts = REVIEW_COUNT_REGEX.findall(body_text)
        if review_counts:
            ratings["review_counts"] = review_counts
        return ratings

    @classmethod
    def _soup(cls, document: Document) -> BeautifulSoup:
        if isinstance(document, BeautifulSoup):
            return document
        return cls.parse_document(document)

    @staticmethod
    def _meta_content(soup: BeautifulSoup, *, name: str) -> str | None:
        meta = soup.find("meta", attrs={"name": name})
        if not isinstance(meta, Tag):
            return None
        content = (meta.get("content") or "").strip()
        return content or None

    @staticmethod
    def _clean_text(value: str) -> str:
        return WHITESPACE_REGEX.sub(" ", value).strip()


def _unique(values: list[str]) -> list[str]:
    seen: set[str] = set()
    ordered: list[str] = []
    for value in values:
        if value in seen:
            continue
        seen.add(value)
        ordered.append(value)
    return ordered
