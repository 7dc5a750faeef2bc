"""Attachment rules, kind profiles, signature vault and geolocation."""
from __future__ import annotations

import time

import pytest
from cryptography.fernet import Fernet, InvalidToken

from signing.exceptions.errors import AttachmentFormatUnsupported
from signing.logic.attachment_policy import (
    DOCX_MIME,
    ensure_supported_attachment,
    is_pdf_attachment,
)
from signing.logic.geolocation import acquire_geo
from signing.logic.kind_profiles import default_fitness_questions, profile_for
from signing.logic.signature_vault import SignatureVault
from signing.models.attachment import PDF_MIME, Attachment, GeoPoint
from signing.models.signable import SignableEntity
from signing.models.signing_enums import SignableKind


# --------------------------------------------------------------------------- #
#  Attachments
# --------------------------------------------------------------------------- #

def test_pdf_predicate_accepts_mime_or_suffix() -> None:
    assert is_pdf_attachment(Attachment("scan", PDF_MIME, b"%PDF"))
    assert is_pdf_attachment(Attachment("scan.PDF", "application/octet-stream", b"%PDF"))
    assert not is_pdf_attachment(Attachment("scan.docx", DOCX_MIME, b"PK"))
    assert not is_pdf_attachment(Attachment("empty.pdf", PDF_MIME, b""))
    assert not is_pdf_attachment(None)


def test_only_pdf_and_word_are_accepted() -> None:
    assert ensure_supported_attachment("plan.pdf", None, b"%PDF").mime_type == PDF_MIME
    assert ensure_supported_attachment("acta.docx", "", b"PK").mime_type == DOCX_MIME
    assert ensure_supported_attachment("acta.doc", "application/msword", b"x").file_name == "acta.doc"
    with pytest.raises(AttachmentFormatUnsupported) as err:
        ensure_supported_attachment("foto.jpg", "image/jpeg", b"\xff\xd8")
    assert "foto.jpg" in str(err.value)


def test_geo_description() -> None:
    assert GeoPoint(-33.4, -70.6, 25).describe() == "lat -33.4, lng -70.6 (±25m)"
    assert GeoPoint(1.5, 2.5).describe() == "lat 1.5, lng 2.5"


# --------------------------------------------------------------------------- #
#  Kind profiles
# --------------------------------------------------------------------------- #

@pytest.mark.parametrize(
    "kind, prefix",
    [
        (SignableKind.SAFETY_TALK, "TALK"),
        (SignableKind.RISK_ANALYSIS, "ART"),
        (SignableKind.SITE_INDUCTION, "IRL"),
        (SignableKind.FITNESS_TO_WORK, "FIT_FOR_WORK"),
        (SignableKind.DOCUMENT, "DOC"),
        (SignableKind.ENROLLMENT, "ENROL"),
    ],
)
def test_every_kind_has_a_profile(kind: SignableKind, prefix: str) -> None:
    entity = SignableEntity.create(kind, worker_ids=["w1"])
    meta = profile_for(kind).render_metadata(entity, entity.assignment_for("w1"))
    assert meta.filename_prefix == prefix
    assert meta.title


def test_descriptive_rows_include_attachment() -> None:
    entity = SignableEntity.create(
        SignableKind.RISK_ANALYSIS, worker_ids=["w1"],
        fields={"site": "Norte", "date": "2024-03-05", "risks": ["Caida", "Golpe"]},
        attachment=Attachment("art.pdf", PDF_MIME, b"%PDF"),
    )
    rows = profile_for(entity.kind).descriptive_rows(entity)
    assert rows == [
        ("Site", "Norte"),
        ("Date", "2024-03-05"),
        ("Risks / controls", "Caida, Golpe"),
        ("Attached document", "art.pdf (application/pdf)"),
    ]


def test_fitness_uses_entity_questions_when_present() -> None:
    questions = default_fitness_questions()[:2]
    entity = SignableEntity.create(SignableKind.FITNESS_TO_WORK, worker_ids=["w1"], questions=questions)
    a = entity.assignment_for("w1")
    profile_for(entity.kind).apply_outcome(entity, a, {"q1": True, "q2": True, "q3": False})
    assert [r.id for r in a.responses] == ["q1", "q2"]
    assert a.outcome is True


# --------------------------------------------------------------------------- #
#  Vault
# --------------------------------------------------------------------------- #

def test_vault_round_trip_and_key_rotation(tmp_path) -> None:
    old_key = Fernet.generate_key()
    token = SignatureVault([old_key]).encrypt(b"png-bytes")

    rotated = SignatureVault([Fernet.generate_key(), old_key])
    assert rotated.decrypt(token) == b"png-bytes"
    assert rotated.decrypt(rotated.encrypt(b"again")) == b"again"
    with pytest.raises(InvalidToken):
        SignatureVault.ephemeral().decrypt(token)
    with pytest.raises(ValueError):
        SignatureVault([])


def test_vault_key_file_is_created_once(tmp_path) -> None:
    key_file = tmp_path / "keys" / "vault.key"
    first = SignatureVault.from_key_file(key_file)
    assert key_file.exists()
    token = first.encrypt(b"sig")
    assert SignatureVault.from_key_file(key_file).decrypt(token) == b"sig"


# --------------------------------------------------------------------------- #
#  Geolocation
# --------------------------------------------------------------------------- #

def test_geo_success() -> None:
    point = GeoPoint(-33.45, -70.66, 10)
    assert acquire_geo(lambda: point, timeout=1) == point


def test_geo_failures_yield_none() -> None:
    def denied():
        raise PermissionError("user denied")

    def broken():
        raise RuntimeError("no gps")

    def slow():
        time.sleep(2)
        return GeoPoint(0, 0)

    assert acquire_geo(None) is None
    assert acquire_geo(denied, timeout=1) is None
    assert acquire_geo(broken, timeout=1) is None
    started = time.monotonic()
    assert acquire_geo(slow, timeout=0.05) is None
    assert time.monotonic() - started < 1.5
