"""
Content fingerprinting for crawl records.
"""

from __future__ import annotations

import hashlib


def content_hash(content: str | bytes) -> str:
    """
    Hex SHA-256 digest of the raw page body.

    Text is encoded as UTF-8 so the digest is identical whether the caller
    holds the decoded page or its original bytes.
    """

    data = content.encode("utf-8") if isinstance(content, str) else content
    return hashlib.sha256(data).hexdigest()
