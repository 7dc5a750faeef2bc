"""
signing/tests/test_certificate_generator.py

Stamp and synthesize paths of the certificate generator. Output PDFs are
inspected with pypdf.
"""
from __future__ import annotations

import unittest
import warnings
from datetime import timezone
from io import BytesIO

import pytest
from pypdf import PdfReader
from reportlab.lib.pagesizes import letter

from signing.logic.certificate_generator import SIGNATURE_PLACEHOLDER, CertificateGenerator, fit_within
from signing.logic.kind_profiles import profile_for
from signing.models.attachment import PDF_MIME, Attachment, GeoPoint
from signing.models.signable import SignableEntity
from signing.models.signing_enums import RenderPath, SignableKind
from signing.tests.helpers import FIXED_NOW, make_generator, make_pdf, make_png


def _text(pdf: bytes) -> str:
    return "\n".join(page.extract_text() or "" for page in PdfReader(BytesIO(pdf)).pages)


def _signed(entity: SignableEntity, worker_id: str = "w1", **extra):
    a = entity.assignment_for(worker_id)
    a.signer_name = extra.get("signer_name", "Juan Pérez")
    a.signer_external_id = extra.get("signer_external_id", "12.345.678-9")
    a.signed_at = FIXED_NOW
    a.geo = extra.get("geo")
    return a


class TestStampPath(unittest.TestCase):
    def setUp(self) -> None:
        self.gen = make_generator()
        self.png = make_png()

    def test_only_last_page_is_stamped(self) -> None:
        original = make_pdf(pages=3)
        entity = SignableEntity.create(
            SignableKind.DOCUMENT, worker_ids=["w1"], fields={"title": "Plan"},
            attachment=Attachment("Plan de emergencia.pdf", PDF_MIME, original),
        )
        assignment = _signed(entity)

        out = self.gen.render(entity, assignment, self.png)

        self.assertEqual(out.path, RenderPath.STAMP)
        self.assertEqual(out.file_name, f"Plan_de_emergencia-signed_{assignment.token}.pdf")
        before = PdfReader(BytesIO(original)).pages
        after = PdfReader(BytesIO(out.content)).pages
        self.assertEqual(len(after), 3)
        for i in (0, 1):
            self.assertEqual(after[i].extract_text(), before[i].extract_text())
            self.assertNotIn("Signature", after[i].extract_text())
        last = after[2].extract_text()
        self.assertIn("Page 3 of 3", last)
        self.assertIn("Signature", last)
        self.assertIn("Juan P", last)
        self.assertIn("ID: 12.345.678-9", last)
        self.assertIn("05-03-2024 10:04", last)
        self.assertIn(assignment.token[:8], last)
        self.assertNotIn(assignment.token, last)

    def test_stamp_uses_no_deprecated_pypdf_calls(self) -> None:
        entity = SignableEntity.create(SignableKind.DOCUMENT, worker_ids=["w1"])
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            out = self.gen.stamp(make_pdf(pages=2), _signed(entity), self.png)
        self.assertEqual(len(PdfReader(BytesIO(out)).pages), 2)
        pypdf_warnings = [w for w in caught if "pypdf" in str(w.message)]
        self.assertEqual(pypdf_warnings, [])

    def test_pdf_detected_by_suffix_alone(self) -> None:
        entity = SignableEntity.create(
            SignableKind.RISK_ANALYSIS, worker_ids=["w1"],
            attachment=Attachment("art.pdf", "application/octet-stream", make_pdf(pagesize=letter)),
        )
        out = self.gen.render(entity, _signed(entity), self.png)
        self.assertEqual(out.path, RenderPath.STAMP)

    def test_box_anchored_bottom_right(self) -> None:
        self.assertEqual(self.gen.stamp_box(0, 0, 595, 842), (359, 36, 200, 160))
        # media box offset
        self.assertEqual(self.gen.stamp_box(10, 20, 605, 862), (369, 56, 200, 160))
        # narrow page keeps the left margin
        self.assertEqual(self.gen.stamp_box(0, 0, 200, 300)[0], 36)

    def test_corrupt_pdf_falls_back_to_synthesize(self) -> None:
        entity = SignableEntity.create(
            SignableKind.DOCUMENT, worker_ids=["w1"], fields={"title": "Manual"},
            attachment=Attachment("manual.pdf", PDF_MIME, b"%PDF-1.4 this is not a pdf"),
        )
        assignment = _signed(entity)
        with self.assertLogs("signing.logic.certificate_generator", level="WARNING"):
            out = self.gen.render(entity, assignment, self.png)
        self.assertEqual(out.path, RenderPath.SYNTHESIZE)
        self.assertTrue(out.file_name.startswith("DOC_Juan_Prez_12345678-9_20240305_100405_"))
        self.assertTrue(out.file_name.endswith(f"_{assignment.token}.pdf"))
        self.assertIn("manual.pdf", _text(out.content))

    def test_bad_signature_image_falls_back_with_placeholder(self) -> None:
        entity = SignableEntity.create(
            SignableKind.DOCUMENT, worker_ids=["w1"],
            attachment=Attachment("manual.pdf", PDF_MIME, make_pdf()),
        )
        out = self.gen.render(entity, _signed(entity), b"not an image")
        self.assertEqual(out.path, RenderPath.SYNTHESIZE)
        self.assertIn(SIGNATURE_PLACEHOLDER, _text(out.content))


class TestSynthesizePath(unittest.TestCase):
    def setUp(self) -> None:
        self.gen = make_generator()
        self.png = make_png()

    def test_safety_talk_rows(self) -> None:
        entity = SignableEntity.create(
            SignableKind.SAFETY_TALK, worker_ids=["w1"],
            fields={"topic": "Trabajo en altura " * 12, "held_at": "05-03-2024 08:00"},
        )
        assignment = _signed(entity, geo=GeoPoint(-33.45, -70.66, 12))
        out = self.gen.render(entity, assignment, self.png)

        self.assertEqual(out.path, RenderPath.SYNTHESIZE)
        self.assertTrue(out.file_name.startswith("TALK_"))
        text = _text(out.content)
        self.assertIn("Daily safety talk", text)
        self.assertIn("Trabajo en altura", text)
        self.assertIn("05-03-2024 10:04:05", text)
        self.assertIn(assignment.token, text)
        self.assertIn("lat -33.45, lng -70.66 (±12m)", text)
        self.assertNotIn(SIGNATURE_PLACEHOLDER, text)

    def test_fitness_verdicts(self) -> None:
        profile = profile_for(SignableKind.FITNESS_TO_WORK)

        fit = SignableEntity.create(SignableKind.FITNESS_TO_WORK, worker_ids=["w1"], fields={"shift": "Day"})
        a = _signed(fit)
        profile.apply_outcome(fit, a, {f"q{i}": True for i in range(1, 6)})
        text = _text(self.gen.render(fit, a, self.png).content)
        self.assertIn("FIT FOR WORK", text)
        self.assertNotIn("NOT FIT FOR WORK", text)

        unfit = SignableEntity.create(SignableKind.FITNESS_TO_WORK, worker_ids=["w1"])
        a = _signed(unfit)
        profile.apply_outcome(unfit, a, {"q1": True, "q2": True, "q3": False, "q4": True, "q5": True})
        out = self.gen.render(unfit, a, self.png)
        self.assertTrue(out.file_name.startswith("FIT_FOR_WORK_"))
        text = _text(out.content)
        self.assertIn("NOT FIT FOR WORK", text)
        self.assertIn("Are you free of alcohol and drugs?", text)

    def test_filename_and_body_share_the_generator_timezone(self) -> None:
        gen = CertificateGenerator(date_format="%d-%m-%Y %H:%M:%S", stamp_date_format="%d-%m-%Y %H:%M",
                                   tz=timezone.utc)
        entity = SignableEntity.create(SignableKind.DOCUMENT, worker_ids=["w1"], fields={"title": "Manual"})
        assignment = _signed(entity, signer_name="A", signer_external_id="1")
        out = gen.render(entity, assignment, self.png)
        self.assertEqual(out.file_name, f"DOC_A_1_20240305_130405_{assignment.token}.pdf")
        self.assertIn("05-03-2024 13:04:05", _text(out.content))

    def test_unsigned_assignment_is_rejected(self) -> None:
        entity = SignableEntity.create(SignableKind.DOCUMENT, worker_ids=["w1"])
        with self.assertRaises(ValueError):
            self.gen.render(entity, entity.assignment_for("w1"), self.png)


def test_fit_within_keeps_aspect_ratio() -> None:
    assert fit_within(300, 100, 180, 62) == pytest.approx((180.0, 60.0))
    assert fit_within(50, 100, 180, 62) == pytest.approx((31.0, 62.0))
    with pytest.raises(ValueError):
        fit_within(0, 100, 180, 62)


if __name__ == "__main__":
    unittest.main()
