"""Local "needs sync" queue.

Every committed signature appends one event naming the record kind. The
component that pushes changes upstream drains the queue; that side is not
part of this package.
"""
from __future__ import annotations

from pathlib import Path
from typing import Dict, List

from core.common.db_interface import SQLiteRepository
from core.contracts.sync import ISyncSink
from core.helpers.date_time_helper import utc_now_iso


class SQLiteSyncQueue(SQLiteRepository, ISyncSink):
    def __init__(self, db_path: Path | str) -> None:
        super().__init__(db_path)
        with self._lock:
            self.conn.execute(
                """
                CREATE TABLE IF NOT EXISTS sync_queue (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    kind TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
                """
            )

    def enqueue(self, kind: str) -> None:
        with self._lock:
            self.conn.execute(
                "INSERT INTO sync_queue (kind, created_at) VALUES (?, ?)", (str(kind), utc_now_iso())
            )

    def pending_count(self) -> int:
        with self._lock:
            row = self.conn.execute("SELECT COUNT(*) AS n FROM sync_queue").fetchone()
        return int(row["n"])

    def drain(self) -> List[Dict[str, str]]:
        """Remove and return all queued events, oldest first."""
        with self.transaction() as conn:
            rows = conn.execute("SELECT id, kind, created_at FROM sync_queue ORDER BY id").fetchall()
            conn.execute("DELETE FROM sync_queue")
        return [{"kind": r["kind"], "created_at": r["created_at"]} for r in rows]
