"""
signing/tests/test_verification_gate.py

Knowledge check before signing: answer matching, the read-and-confirm
session and the derived site induction questions.
"""
from __future__ import annotations

import unittest

from signing.exceptions.errors import AttachmentNotYetViewed, VerificationFailed, VerificationRequired
from signing.logic.kind_profiles import profile_for
from signing.logic.verification_gate import VerificationGate, VerificationSession
from signing.models.attachment import PDF_MIME, Attachment
from signing.models.signable import SignableEntity
from signing.models.signing_enums import QuestionShape, SignableKind, SigningState
from signing.models.verification import VerificationChallenge


class TestVerificationGate(unittest.TestCase):
    def setUp(self) -> None:
        self.gate = VerificationGate()
        self.free = VerificationChallenge.free_text(
            ("Which site?", "Obra Central"),
            ("Which mandatory item?", "Helmet"),
        )
        self.choice = VerificationChallenge.multiple_choice(
            ("Max load?", ["10 kg", "25 kg", "50 kg"], 1),
            ("Emergency exit?", ["North", "South"], 0),
        )

    def test_free_text_is_trimmed_and_case_insensitive(self) -> None:
        self.assertTrue(self.gate.validate(self.free, {"q1": " obra central ", "q2": "HELMET"}))

    def test_free_text_requires_exact_match_after_normalization(self) -> None:
        self.assertFalse(self.gate.validate(self.free, {"q1": "Obra", "q2": "helmet"}))

    def test_multiple_choice_compares_indices(self) -> None:
        self.assertEqual(self.choice.shape, QuestionShape.MULTIPLE_CHOICE)
        self.assertTrue(self.gate.validate(self.choice, {"q1": 1, "q2": 0}))
        self.assertFalse(self.gate.validate(self.choice, {"q1": 2, "q2": 0}))

    def test_check_raises_required_when_incomplete(self) -> None:
        with self.assertRaises(VerificationRequired):
            self.gate.check(self.free, None)
        with self.assertRaises(VerificationRequired):
            self.gate.check(self.free, {"q1": "Obra Central", "q2": "   "})

    def test_check_raises_failed_on_wrong_answer(self) -> None:
        with self.assertRaises(VerificationFailed):
            self.gate.check(self.choice, {"q1": 0, "q2": 0})

    def test_challenge_needs_both_question_ids(self) -> None:
        with self.assertRaises(ValueError):
            VerificationChallenge(questions=(self.free.questions[1], self.free.questions[0]))

    def test_challenge_survives_serialization(self) -> None:
        again = VerificationChallenge.from_dict(self.choice.to_dict())
        self.assertEqual(again, self.choice)


class TestVerificationSession(unittest.TestCase):
    def _induction(self, **kwargs) -> SignableEntity:
        return SignableEntity.create(
            SignableKind.SITE_INDUCTION,
            worker_ids=["w1"],
            fields={"site": "Obra Central", "title": "Induccion general"},
            **kwargs,
        )

    def test_attachment_must_be_opened_first(self) -> None:
        entity = self._induction(attachment=Attachment("induccion.pdf", PDF_MIME, b"%PDF-1.4"))
        challenge = profile_for(entity.kind).effective_challenge(entity)
        session = VerificationSession(entity, challenge)

        self.assertFalse(session.attachment_viewed)
        self.assertEqual(session.state, SigningState.VERIFICATION_PENDING)
        with self.assertRaises(AttachmentNotYetViewed):
            session.submit({"q1": "obra central", "q2": "induccion.pdf"})

        self.assertIs(session.open_attachment(), entity.attachment)
        record = session.submit({"q1": " obra central ", "q2": "INDUCCION.PDF"})
        self.assertEqual(record.answers["q2"], "INDUCCION.PDF")
        self.assertIsNotNone(record.verified_at)
        self.assertEqual(session.state, SigningState.VERIFIED)

    def test_no_attachment_means_nothing_to_open(self) -> None:
        entity = self._induction()
        session = VerificationSession(entity, profile_for(entity.kind).effective_challenge(entity))
        self.assertTrue(session.attachment_viewed)
        # without an attachment the second question asks for the title
        session.submit({"q1": "Obra Central", "q2": "induccion GENERAL"})

    def test_empty_attachment_still_has_to_be_opened(self) -> None:
        entity = self._induction(attachment=Attachment("induccion.pdf", PDF_MIME, b""))
        session = VerificationSession(entity, profile_for(entity.kind).effective_challenge(entity))
        self.assertFalse(session.attachment_viewed)
        with self.assertRaises(AttachmentNotYetViewed):
            session.submit({"q1": "Obra Central", "q2": "induccion.pdf"})

    def test_stored_challenge_wins_over_derived_one(self) -> None:
        stored = VerificationChallenge.free_text(("a", "x"), ("b", "y"))
        entity = self._induction(challenge=stored)
        self.assertIs(profile_for(entity.kind).effective_challenge(entity), stored)

    def test_session_without_challenge(self) -> None:
        entity = SignableEntity.create(SignableKind.SAFETY_TALK, worker_ids=["w1"])
        record = VerificationSession(entity, None).submit()
        self.assertEqual(record.answers, {})


if __name__ == "__main__":
    unittest.main()
