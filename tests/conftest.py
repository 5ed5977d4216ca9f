"""
tests/conftest.py

Shared fixtures for crawl engine tests.
"""

from __future__ import annotations

from collections.abc import Callable

import pytest

from app.crawling.service import CrawlService
from app.crawling.storage import InMemoryRecordStore
from tests.support import Handler, build_client, build_direct_fetcher


@pytest.fixture()
def store() -> InMemoryRecordStore:
    """Fresh in-memory record store for each test."""
    return InMemoryRecordStore()


@pytest.fixture()
def make_service(store: InMemoryRecordStore) -> Callable[[Handler], CrawlService]:
    """Factory building a CrawlService whose HTTP traffic goes to `handler`."""

    def _make(handler: Handler) -> CrawlService:
        return CrawlService(fetcher=build_direct_fetcher(build_client(handler)), store=store)

    return _make
