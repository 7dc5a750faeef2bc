"""core/contracts/sync.py
=====================

Outbound "needs sync" sink. The network side that drains it lives elsewhere.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class ISyncSink(ABC):
    """Append-only list of {kind, created_at} events."""

    @abstractmethod
    def enqueue(self, kind: str) -> None:
        """Record that records of ``kind`` changed locally."""
