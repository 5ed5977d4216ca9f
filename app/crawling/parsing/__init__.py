"""
HTML parsing layer exports.
"""

from app.crawling.parsing.content_extractor import ContentExtractor
from app.crawling.parsing.review_parser import ReviewParser, is_review_url

__all__ = ["ContentExtractor", "ReviewParser", "is_review_url"]
