"""
tests/test_hashing.py

Pytest unit tests for content fingerprinting.
"""

from __future__ import annotations

import hashlib

from app.crawling.hashing import content_hash


def test_known_digest() -> None:
    assert content_hash("abc") == (
        "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"
    )


def test_text_and_bytes_agree() -> None:
    body = "<p>Spreads from 0.6 pips • ünïcode</p>"
    assert content_hash(body) == content_hash(body.encode("utf-8"))


def test_digest_is_hex_sha256() -> None:
    digest = content_hash("<html></html>")
    assert len(digest) == 64
    assert digest == hashlib.sha256(b"<html></html>").hexdigest()


def test_different_bodies_differ() -> None:
    assert content_hash("<p>a</p>") != content_hash("<p>b</p>")
