"""Error taxonomy of the signing feature."""

from signing.exceptions.errors import (
    AlreadySigned,
    AssignmentNotFound,
    AttachmentFormatUnsupported,
    AttachmentMissing,
    AttachmentNotYetViewed,
    CertificationFailed,
    ConcurrentModification,
    DuplicateCertificate,
    EntityNotFound,
    SignatureMissing,
    SigningError,
    VerificationFailed,
    VerificationRequired,
)

__all__ = [
    "AlreadySigned",
    "AssignmentNotFound",
    "AttachmentFormatUnsupported",
    "AttachmentMissing",
    "AttachmentNotYetViewed",
    "CertificationFailed",
    "ConcurrentModification",
    "DuplicateCertificate",
    "EntityNotFound",
    "SignatureMissing",
    "SigningError",
    "VerificationFailed",
    "VerificationRequired",
]
