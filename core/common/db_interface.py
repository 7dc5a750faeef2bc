"""
core/common/db_interface.py
===========================

Shared helpers for SQLite-backed repositories.
"""
from __future__ import annotations

import os
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional


def create_sqlite_connection(
    db_path: Path | str,
    *,
    check_same_thread: bool = False,
) -> sqlite3.Connection:
    """Create a sqlite3 connection with common defaults.

    ``isolation_level=None`` puts the connection in autocommit mode; multi
    statement units go through :meth:`SQLiteRepository.transaction`.
    """
    path = str(db_path)
    if path != ":memory:":
        os.makedirs(Path(path).parent, exist_ok=True)
    conn = sqlite3.connect(path, check_same_thread=check_same_thread, isolation_level=None)
    conn.row_factory = sqlite3.Row
    return conn


class SQLiteRepository:
    """Base for repositories sharing one lazily created connection."""

    def __init__(self, db_path: Path | str) -> None:
        self._db_path = db_path if str(db_path) == ":memory:" else Path(db_path)
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = threading.RLock()

    @property
    def db_path(self) -> Path | str:
        return self._db_path

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            with self._lock:
                if self._conn is None:
                    self._conn = create_sqlite_connection(self._db_path)
        return self._conn

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Run a block inside BEGIN IMMEDIATE ... COMMIT, rolling back on error."""
        with self._lock:
            conn = self.conn
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            else:
                conn.execute("COMMIT")

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                try:
                    self._conn.close()
                finally:
                    self._conn = None
