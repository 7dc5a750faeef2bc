"""Signing feature exceptions.

Every failure of the signing flow is a :class:`SigningError` with a
human-readable message that callers can surface verbatim.
"""
from __future__ import annotations


class SigningError(Exception):
    """Base exception for the signing feature."""


class EntityNotFound(SigningError):
    def __init__(self, entity_id: str) -> None:
        super().__init__(f"Record '{entity_id}' was not found.")
        self.entity_id = entity_id


class AssignmentNotFound(SigningError):
    def __init__(self, entity_id: str, worker_id: str) -> None:
        super().__init__(f"Record '{entity_id}' is not assigned to worker '{worker_id}'.")
        self.entity_id = entity_id
        self.worker_id = worker_id


class AlreadySigned(SigningError):
    def __init__(self, entity_id: str, worker_id: str) -> None:
        super().__init__(f"Record '{entity_id}' was already signed by worker '{worker_id}'.")
        self.entity_id = entity_id
        self.worker_id = worker_id


class SignatureMissing(SigningError):
    """Raised when the captured signature image is empty."""

    def __init__(self) -> None:
        super().__init__("A signature is required.")


class VerificationRequired(SigningError):
    """Raised when a challenge exists but no (complete) answers were given."""

    def __init__(self, message: str = "Both verification questions must be answered before signing.") -> None:
        super().__init__(message)


class VerificationFailed(SigningError):
    def __init__(self, message: str = "Incorrect answers. Review the record before signing.") -> None:
        super().__init__(message)


class AttachmentNotYetViewed(SigningError):
    def __init__(self) -> None:
        super().__init__("The attached file must be opened or downloaded before continuing.")


class AttachmentFormatUnsupported(SigningError):
    def __init__(self, file_name: str, mime_type: str) -> None:
        super().__init__(f"Unsupported format for '{file_name}' ({mime_type}). Only PDF or Word (.doc/.docx).")
        self.file_name = file_name
        self.mime_type = mime_type


class AttachmentMissing(SigningError):
    def __init__(self, message: str = "The required attachment must be added before signing.") -> None:
        super().__init__(message)


class CertificationFailed(SigningError):
    """The signature was committed but its certificate could not be stored.

    The assignment stays in the pending-certificate state; certification is
    retried by ``SigningTransaction.resume_pending``.
    """

    def __init__(self, entity_id: str, worker_id: str, cause: BaseException | None = None) -> None:
        detail = f": {cause}" if cause else ""
        super().__init__(f"Certificate for record '{entity_id}' / worker '{worker_id}' could not be generated{detail}")
        self.entity_id = entity_id
        self.worker_id = worker_id


class DuplicateCertificate(SigningError):
    def __init__(self, key: str) -> None:
        super().__init__(f"A certificate with key '{key}' already exists.")
        self.key = key


class ConcurrentModification(SigningError):
    def __init__(self, collection: str, key: str) -> None:
        super().__init__(f"'{collection}/{key}' was modified concurrently.")
        self.collection = collection
        self.key = key
