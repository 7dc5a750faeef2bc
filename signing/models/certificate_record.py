from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from core.helpers.date_time_helper import utc_now

from .attachment import PDF_MIME


def certificate_key(entity_id: str, worker_id: str, token: str) -> str:
    """Composite storage key ``entityId_workerId_token``."""
    return f"{entity_id}_{worker_id}_{token}"


@dataclass(frozen=True)
class CertificateRecord:
    """
    Stored certificate of one signature event. Append-only: created once,
    when the assignment transitions to signed, never updated or deleted.
    """
    entity_id: str
    worker_id: str
    token: str
    file_name: str
    content: bytes
    kind: str = ""
    mime_type: str = PDF_MIME
    created_at: datetime = field(default_factory=utc_now)

    @property
    def key(self) -> str:
        return certificate_key(self.entity_id, self.worker_id, self.token)
