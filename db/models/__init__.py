"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.crawled_page import CrawledPage
from db.models.scraping_report import ScrapingReport

__all__ = [
    "CrawledPage",
    "ScrapingReport",
]
