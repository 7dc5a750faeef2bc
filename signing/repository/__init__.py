"""SQLite persistence for the signing feature."""

from signing.repository.certificate_store import CertificateStore
from signing.repository.record_store import SQLiteRecordStore
from signing.repository.signable_repository import SignableRepository, collection_for
from signing.repository.sync_queue import SQLiteSyncQueue

__all__ = [
    "CertificateStore",
    "SQLiteRecordStore",
    "SQLiteSyncQueue",
    "SignableRepository",
    "collection_for",
]
