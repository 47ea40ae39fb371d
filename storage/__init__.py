"""
Storage layer for Coffee Diary.

Provides a SQLite key-value cache for the processed coffee document.
"""

from .sqlite_store import (
    CacheStore,
    STORAGE_KEYS,
    SOURCE_HASH_KEY,
    open_conn,
    ensure_schema,
)

__all__ = [
    "CacheStore",
    "STORAGE_KEYS",
    "SOURCE_HASH_KEY",
    "open_conn",
    "ensure_schema",
]
