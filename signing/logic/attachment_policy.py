"""Attachment format rules (no IO).

``is_pdf_attachment`` is the single predicate deciding whether an attachment
can be stamped. ``ensure_supported_attachment`` runs when a record is
submitted, not when it is signed.
"""
from __future__ import annotations

from typing import Optional

from signing.exceptions.errors import AttachmentFormatUnsupported
from signing.models.attachment import PDF_MIME, Attachment

DOC_MIME = "application/msword"
DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
OCTET_STREAM = "application/octet-stream"

_SUPPORTED_MIMES = {PDF_MIME, DOC_MIME, DOCX_MIME}
_SUPPORTED_SUFFIXES = (".pdf", ".doc", ".docx")


def is_pdf_attachment(attachment: Optional[Attachment]) -> bool:
    """True if the mime type says PDF or the file name ends in ``.pdf``."""
    if attachment is None or not attachment.content:
        return False
    mime = (attachment.mime_type or "").strip().lower()
    if mime == PDF_MIME:
        return True
    return (attachment.file_name or "").strip().lower().endswith(".pdf")


def infer_mime_type(file_name: str, provided_mime_type: Optional[str] = None) -> str:
    mime = (provided_mime_type or "").strip()
    if mime:
        return mime
    lower = (file_name or "").lower()
    if lower.endswith(".pdf"):
        return PDF_MIME
    if lower.endswith(".doc"):
        return DOC_MIME
    if lower.endswith(".docx"):
        return DOCX_MIME
    return OCTET_STREAM


def ensure_supported_attachment(file_name: str, mime_type: Optional[str], content: bytes) -> Attachment:
    """
    Validate an uploaded file and return it as an Attachment.
    Only PDF and Word files are accepted (by mime type or suffix).
    """
    mime = infer_mime_type(file_name, mime_type)
    lower = (file_name or "").lower()
    if mime not in _SUPPORTED_MIMES and not lower.endswith(_SUPPORTED_SUFFIXES):
        raise AttachmentFormatUnsupported(file_name, mime)
    return Attachment(file_name=file_name, mime_type=mime, content=bytes(content))
