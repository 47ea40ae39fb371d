# storage/sqlite_store.py
"""
SQLite cache for the processed coffee document.

The document is stored as JSON values under fixed keys, so any simple
key-value layer could stand in for this one.
"""
from __future__ import annotations

import json
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

STORAGE_KEYS = {
    "coffee_transactions": "coffee-diary-coffee-data",
    "coffee_by_date": "coffee-diary-coffee-by-date",
    "statistics": "coffee-diary-statistics",
    "processed_at": "coffee-diary-processed-at",
}
SOURCE_HASH_KEY = "coffee-diary-source-hash"

CREATE_CACHE = """
CREATE TABLE IF NOT EXISTS cache (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
"""

UPSERT = """
INSERT INTO cache (key, value, updated_at) VALUES (?, ?, ?)
ON CONFLICT(key) DO UPDATE SET value = excluded.value,
                               updated_at = excluded.updated_at
"""


def open_conn(path: str = "data/coffee-diary.sqlite") -> sqlite3.Connection:
    """Open a database connection with row factory."""
    if path != ":memory:":
        Path(path).parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(path)
    conn.row_factory = sqlite3.Row
    return conn


def ensure_schema(conn: sqlite3.Connection) -> None:
    conn.execute(CREATE_CACHE)
    conn.commit()


class CacheStore:
    """Key-value store for the processed document."""

    def __init__(self, db_path: str = "data/coffee-diary.sqlite"):
        self.db_path = db_path
        self._conn: Optional[sqlite3.Connection] = None

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = open_conn(self.db_path)
            ensure_schema(self._conn)
        return self._conn

    def close(self) -> None:
        if self._conn:
            self._conn.close()
            self._conn = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    # ------------------------------------------------------------------
    # Raw key-value access
    # ------------------------------------------------------------------

    def get(self, key: str) -> Optional[Any]:
        row = self.conn.execute(
            "SELECT value FROM cache WHERE key = ?", (key,)
        ).fetchone()
        return json.loads(row["value"]) if row else None

    def set(self, key: str, value: Any) -> None:
        self.conn.execute(
            UPSERT,
            (key, json.dumps(value, ensure_ascii=False), datetime.now().isoformat()),
        )
        self.conn.commit()

    def keys(self) -> List[str]:
        return [r["key"] for r in self.conn.execute("SELECT key FROM cache ORDER BY key")]

    def clear(self) -> int:
        cur = self.conn.execute("DELETE FROM cache")
        self.conn.commit()
        return cur.rowcount

    # ------------------------------------------------------------------
    # Document
    # ------------------------------------------------------------------

    def save_document(self, doc: Dict[str, Any], source_hash: Optional[str] = None) -> None:
        """Write every document key (and the hash) in one transaction."""
        now = datetime.now().isoformat()
        rows = [
            (key, json.dumps(doc.get(field), ensure_ascii=False), now)
            for field, key in STORAGE_KEYS.items()
        ]
        if source_hash is not None:
            rows.append((SOURCE_HASH_KEY, json.dumps(source_hash), now))
        with self.conn:
            self.conn.executemany(UPSERT, rows)

    def load_document(self) -> Optional[Dict[str, Any]]:
        """The cached document, or None unless every part is present."""
        doc: Dict[str, Any] = {}
        for field, key in STORAGE_KEYS.items():
            value = self.get(key)
            if value is None:
                return None
            doc[field] = value
        return doc

    def source_hash(self) -> Optional[str]:
        return self.get(SOURCE_HASH_KEY)
