"""Append-only SQLite store for generated certificates."""
from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from typing import List, Optional

from core.common.db_interface import SQLiteRepository
from core.helpers.date_time_helper import from_iso, to_iso
from signing.exceptions.errors import DuplicateCertificate
from signing.models.certificate_record import CertificateRecord, certificate_key

logger = logging.getLogger(__name__)


class CertificateStore(SQLiteRepository):
    """
    Certificates keyed by ``entityId_workerId_token``.

    There is no update and no delete; a second ``put`` for an existing key
    raises DuplicateCertificate.
    """

    def __init__(self, db_path: Path | str) -> None:
        super().__init__(db_path)
        self._ensure_schema()

    def _ensure_schema(self) -> None:
        with self._lock:
            self.conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS certificates (
                    key TEXT PRIMARY KEY,
                    entity_id TEXT NOT NULL,
                    worker_id TEXT NOT NULL,
                    token TEXT NOT NULL,
                    kind TEXT NOT NULL DEFAULT '',
                    file_name TEXT NOT NULL,
                    mime_type TEXT NOT NULL,
                    content BLOB NOT NULL,
                    created_at TEXT NOT NULL
                );
                CREATE INDEX IF NOT EXISTS idx_certificates_entity ON certificates(entity_id);
                """
            )

    def put(self, record: CertificateRecord) -> CertificateRecord:
        try:
            with self._lock:
                self.conn.execute(
                    """
                    INSERT INTO certificates
                        (key, entity_id, worker_id, token, kind, file_name, mime_type, content, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        record.key,
                        record.entity_id,
                        record.worker_id,
                        record.token,
                        record.kind,
                        record.file_name,
                        record.mime_type,
                        sqlite3.Binary(record.content),
                        to_iso(record.created_at),
                    ),
                )
        except sqlite3.IntegrityError as ex:
            raise DuplicateCertificate(record.key) from ex
        logger.debug("Stored certificate %s (%s, %d bytes)", record.key, record.file_name, len(record.content))
        return record

    def get(self, entity_id: str, worker_id: str, token: str) -> Optional[CertificateRecord]:
        with self._lock:
            row = self.conn.execute(
                "SELECT * FROM certificates WHERE key = ?",
                (certificate_key(entity_id, worker_id, token),),
            ).fetchone()
        return self._to_record(row) if row else None

    def list_for_entity(self, entity_id: str) -> List[CertificateRecord]:
        with self._lock:
            rows = self.conn.execute(
                "SELECT * FROM certificates WHERE entity_id = ? ORDER BY created_at, key", (entity_id,)
            ).fetchall()
        return [self._to_record(r) for r in rows]

    def list_all(self) -> List[CertificateRecord]:
        with self._lock:
            rows = self.conn.execute("SELECT * FROM certificates ORDER BY created_at, key").fetchall()
        return [self._to_record(r) for r in rows]

    @staticmethod
    def _to_record(row: sqlite3.Row) -> CertificateRecord:
        return CertificateRecord(
            entity_id=row["entity_id"],
            worker_id=row["worker_id"],
            token=row["token"],
            file_name=row["file_name"],
            content=bytes(row["content"]),
            kind=row["kind"],
            mime_type=row["mime_type"],
            created_at=from_iso(row["created_at"]),
        )
