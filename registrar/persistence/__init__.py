"""
Persistence module for data storage.
"""

from .database import DatabaseManager, SQLiteDatabase, PostgreSQLDatabase, DatabaseFactory
from .record_store import SqlRecordStore

__all__ = [
    "DatabaseManager",
    "SQLiteDatabase",
    "PostgreSQLDatabase",
    "DatabaseFactory",
    "SqlRecordStore",
]
