"""core/contracts/storage.py
========================

Persistent record store contract.

The signing engine only needs a document store with get-by-id, put
(insert-or-replace) and query-by-field. Each stored document carries a
store-managed version number so writers can do a compare-and-set.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class StoredDocument:
    key: str
    version: int
    body: Dict[str, Any]


class IRecordStore(ABC):
    """Key/value document store, partitioned into named collections."""

    @abstractmethod
    def get(self, collection: str, key: str) -> Optional[StoredDocument]:
        """Return the stored document or None."""

    @abstractmethod
    def put(
        self,
        collection: str,
        key: str,
        body: Dict[str, Any],
        *,
        expected_version: Optional[int] = None,
    ) -> int:
        """Insert or replace a document and return its new version.

        If ``expected_version`` is given, the write only succeeds when the
        stored version still equals it (0 = must not exist yet); otherwise
        ``ConcurrentModification`` is raised.
        """

    @abstractmethod
    def query(self, collection: str, field: str, value: Any) -> List[StoredDocument]:
        """Return all documents whose top-level ``field`` equals ``value``."""
