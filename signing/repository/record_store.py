"""SQLite implementation of IRecordStore.

Documents are stored as JSON in one table, partitioned by collection. Each
row carries a version that is bumped on every write; ``put`` with an
``expected_version`` is a compare-and-set.
"""
from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

from core.common.db_interface import SQLiteRepository
from core.contracts.storage import IRecordStore, StoredDocument
from signing.exceptions.errors import ConcurrentModification

logger = logging.getLogger(__name__)

_FIELD_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class SQLiteRecordStore(SQLiteRepository, IRecordStore):
    def __init__(self, db_path: Path | str) -> None:
        super().__init__(db_path)
        self._ensure_schema()

    def _ensure_schema(self) -> None:
        with self._lock:
            self.conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS records (
                    collection TEXT NOT NULL,
                    key TEXT NOT NULL,
                    version INTEGER NOT NULL,
                    body TEXT NOT NULL,
                    PRIMARY KEY (collection, key)
                );
                """
            )

    # ------------------------------------------------------------------ #
    def get(self, collection: str, key: str) -> Optional[StoredDocument]:
        with self._lock:
            row = self.conn.execute(
                "SELECT key, version, body FROM records WHERE collection = ? AND key = ?",
                (collection, key),
            ).fetchone()
        return self._to_doc(row) if row else None

    def put(
        self,
        collection: str,
        key: str,
        body: Dict[str, Any],
        *,
        expected_version: Optional[int] = None,
    ) -> int:
        payload = json.dumps(body, ensure_ascii=False)
        with self.transaction() as conn:
            row = conn.execute(
                "SELECT version FROM records WHERE collection = ? AND key = ?",
                (collection, key),
            ).fetchone()
            current = int(row["version"]) if row else 0
            if expected_version is not None and current != expected_version:
                logger.debug("CAS miss on %s/%s (expected %s, found %s)",
                             collection, key, expected_version, current)
                raise ConcurrentModification(collection, key)
            new_version = current + 1
            conn.execute(
                """
                INSERT INTO records (collection, key, version, body) VALUES (?, ?, ?, ?)
                ON CONFLICT(collection, key) DO UPDATE SET version = excluded.version, body = excluded.body
                """,
                (collection, key, new_version, payload),
            )
        return new_version

    def query(self, collection: str, field: str, value: Any) -> List[StoredDocument]:
        """Match ``field`` by equality; list-valued fields match if they contain ``value``."""
        if not _FIELD_NAME.match(field):
            raise ValueError(f"Invalid field name: {field!r}")
        with self._lock:
            rows = self.conn.execute(
                f"""
                SELECT key, version, body FROM records
                WHERE collection = ?
                  AND EXISTS (SELECT 1 FROM json_each(body, '$.{field}') WHERE value = ?)
                ORDER BY key
                """,
                (collection, value),
            ).fetchall()
        return [self._to_doc(r) for r in rows]

    @staticmethod
    def _to_doc(row) -> StoredDocument:
        return StoredDocument(key=row["key"], version=int(row["version"]), body=json.loads(row["body"]))
