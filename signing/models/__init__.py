"""Domain models of the signing feature (no IO)."""

from signing.models.attachment import Attachment, GeoPoint, PDF_MIME
from signing.models.certificate_record import CertificateRecord, certificate_key
from signing.models.render_metadata import RenderMetadata
from signing.models.signable import FitnessQuestion, SignableEntity, WorkerAssignment, new_token
from signing.models.signing_enums import (
    CertificateState,
    QuestionShape,
    RenderPath,
    SignableKind,
    SigningState,
)
from signing.models.stamp_layout import StampLayout, SynthLayout
from signing.models.verification import (
    FreeTextQuestion,
    MultipleChoiceQuestion,
    VerificationChallenge,
    VerificationRecord,
)

__all__ = [
    "Attachment",
    "CertificateRecord",
    "CertificateState",
    "FitnessQuestion",
    "FreeTextQuestion",
    "GeoPoint",
    "MultipleChoiceQuestion",
    "PDF_MIME",
    "QuestionShape",
    "RenderMetadata",
    "RenderPath",
    "SignableEntity",
    "SignableKind",
    "SigningState",
    "StampLayout",
    "SynthLayout",
    "VerificationChallenge",
    "VerificationRecord",
    "WorkerAssignment",
    "certificate_key",
    "new_token",
]
