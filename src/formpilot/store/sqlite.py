"""SQLite-backed document store (the default, local-first backend)."""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path

from formpilot.errors import StoreError
from formpilot.store.base import DocumentStore, merge_documents

log = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS documents (
    path TEXT PRIMARY KEY,
    data TEXT NOT NULL,
    updated_at TEXT NOT NULL
)
"""


class SqliteDocumentStore(DocumentStore):
    """One JSON document per row. Connections are per thread."""

    def __init__(self, db_path: Path | str) -> None:
        self.db_path = Path(db_path)
        self._local = threading.local()

    def get_connection(self) -> sqlite3.Connection:
        conn = getattr(self._local, "conn", None)
        if conn is None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(str(self.db_path), timeout=30)
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute(_SCHEMA)
            conn.commit()
            self._local.conn = conn
        return conn

    def get(self, path: str) -> dict | None:
        row = self.get_connection().execute("SELECT data FROM documents WHERE path = ?", (path,)).fetchone()
        if row is None:
            return None
        return json.loads(row["data"])

    def set(self, path: str, doc: dict, merge: bool = False) -> None:
        conn = self.get_connection()
        now = datetime.now(timezone.utc).isoformat()
        try:
            conn.execute("BEGIN IMMEDIATE")
            if merge:
                row = conn.execute("SELECT data FROM documents WHERE path = ?", (path,)).fetchone()
                doc = merge_documents(json.loads(row["data"]) if row else None, doc)
            conn.execute(
                """
                INSERT INTO documents (path, data, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(path) DO UPDATE SET data = excluded.data, updated_at = excluded.updated_at
            """,
                (path, json.dumps(doc, ensure_ascii=False), now),
            )
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise StoreError(f"Failed to write {path}: {e}") from e

    def delete(self, path: str) -> None:
        conn = self.get_connection()
        conn.execute("DELETE FROM documents WHERE path = ?", (path,))
        conn.commit()

    def list(self, collection: str) -> list[dict]:
        prefix = collection.rstrip("/") + "/"
        rows = self.get_connection().execute(
            "SELECT path, data FROM documents WHERE substr(path, 1, ?) = ? ORDER BY path",
            (len(prefix), prefix),
        ).fetchall()
        return [json.loads(r["data"]) for r in rows if "/" not in r["path"][len(prefix):]]
