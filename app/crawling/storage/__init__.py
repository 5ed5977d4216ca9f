"""
Record store exports.
"""

from app.crawling.storage.base import RecordStore
from app.crawling.storage.memory import InMemoryRecordStore
from app.crawling.storage.sqlalchemy_storage import SQLAlchemyRecordStore

__all__ = ["InMemoryRecordStore", "RecordStore", "SQLAlchemyRecordStore"]
