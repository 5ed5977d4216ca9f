"""
tests/test_targets.py

Pytest unit tests for the built-in URL catalog and category tuning.
"""

from __future__ import annotations

from app.crawling.targets import (
    BROKER_CONFIG,
    PRIORITY_URLS,
    all_targets,
    broker_targets,
    category_config,
    priority_targets,
    review_targets,
)
from app.crawling.types import UrlCategory


def test_catalog_urls_are_absolute() -> None:
    for target in all_targets():
        assert target.url.startswith(("http://", "https://")), target.url


def test_broker_targets_carry_labels() -> None:
    targets = broker_targets()

    assert targets
    assert all(target.category == UrlCategory.BROKER for target in targets)
    assert all(target.label for target in targets)


def test_review_targets_category() -> None:
    assert {target.category for target in review_targets()} == {UrlCategory.REVIEW}


def test_priority_targets() -> None:
    targets = priority_targets()

    assert len(targets) == len(PRIORITY_URLS) == 9
    assert len({target.url for target in targets}) == 9


def test_category_config_values() -> None:
    review = category_config(UrlCategory.REVIEW)
    regulatory = category_config(UrlCategory.REGULATORY)
    news = category_config(UrlCategory.NEWS)

    assert (review.delay_seconds, review.timeout_seconds, review.retries) == (1.5, 25.0, 2)
    assert (regulatory.delay_seconds, regulatory.timeout_seconds, regulatory.retries) == (
        3.0,
        45.0,
        2,
    )
    assert (news.delay_seconds, news.timeout_seconds, news.retries) == (1.0, 20.0, 2)


def test_unknown_and_priority_use_broker_config() -> None:
    assert category_config(UrlCategory.PRIORITY) is BROKER_CONFIG
    assert category_config("forum") is BROKER_CONFIG
