"""
Pre-signature knowledge check.

``VerificationGate`` is pure validation and never touches assignment state.
``VerificationSession`` models the read-and-confirm step a signer goes
through before the signature pad: open the attachment (if any), answer both
questions, and receive a ``VerificationRecord`` to hand to the signing call.
"""
from __future__ import annotations

import logging
from typing import Mapping, Optional

from core.helpers.date_time_helper import utc_now
from signing.exceptions.errors import AttachmentNotYetViewed, VerificationFailed, VerificationRequired
from signing.models.attachment import Attachment
from signing.models.signable import SignableEntity
from signing.models.signing_enums import SigningState
from signing.models.verification import (
    QUESTION_IDS,
    Answer,
    FreeTextQuestion,
    MultipleChoiceQuestion,
    VerificationChallenge,
    VerificationRecord,
)

logger = logging.getLogger(__name__)


def normalize_answer(value: object) -> str:
    return ("" if value is None else str(value)).strip().lower()


class VerificationGate:
    """Decides whether a signer may proceed to sign."""

    @staticmethod
    def requires_attachment_view(entity: SignableEntity) -> bool:
        return entity.attachment is not None

    @staticmethod
    def _is_answered(given: Optional[Mapping[str, Answer]]) -> bool:
        if not given:
            return False
        for qid in QUESTION_IDS:
            value = given.get(qid)
            if value is None:
                return False
            if isinstance(value, str) and not value.strip():
                return False
        return True

    @staticmethod
    def _matches(question, value: Answer) -> bool:
        if isinstance(question, MultipleChoiceQuestion):
            if isinstance(value, bool):
                return False
            try:
                return int(value) == question.correct_option_index
            except (TypeError, ValueError):
                return False
        if isinstance(question, FreeTextQuestion):
            return normalize_answer(value) == normalize_answer(question.expected_answer)
        return False

    def validate(self, challenge: VerificationChallenge, given: Optional[Mapping[str, Answer]]) -> bool:
        """True iff both questions are answered correctly."""
        if not self._is_answered(given):
            return False
        return all(self._matches(challenge.question(qid), given[qid]) for qid in QUESTION_IDS)

    def check(self, challenge: VerificationChallenge, given: Optional[Mapping[str, Answer]]) -> None:
        """Raising form of :meth:`validate`."""
        if not self._is_answered(given):
            raise VerificationRequired()
        if not self.validate(challenge, given):
            raise VerificationFailed()


class VerificationSession:
    """
    One signer's pass through the read-and-confirm step.

    Nothing is persisted here; abandoning the session leaves no trace.
    """

    def __init__(self, entity: SignableEntity, challenge: Optional[VerificationChallenge],
                 *, gate: Optional[VerificationGate] = None) -> None:
        self._entity = entity
        self._challenge = challenge
        self._gate = gate or VerificationGate()
        self._viewed = not self._gate.requires_attachment_view(entity)
        self._record: Optional[VerificationRecord] = None

    @property
    def attachment_viewed(self) -> bool:
        return self._viewed

    @property
    def state(self) -> SigningState:
        """VERIFIED once submit() passed; the state is not persisted."""
        if self._record is not None:
            return SigningState.VERIFIED
        if self._challenge is not None or not self._viewed:
            return SigningState.VERIFICATION_PENDING
        return SigningState.UNSIGNED

    @property
    def challenge(self) -> Optional[VerificationChallenge]:
        return self._challenge

    def open_attachment(self) -> Optional[Attachment]:
        """Hand out the attachment for viewing/downloading and mark it viewed."""
        attachment = self._entity.attachment
        if attachment is not None:
            self._viewed = True
            logger.debug("Attachment %s of %s opened", attachment.file_name, self._entity.id)
        return attachment

    def submit(self, answers: Optional[Mapping[str, Answer]] = None) -> VerificationRecord:
        if not self._viewed:
            raise AttachmentNotYetViewed()
        if self._challenge is None:
            self._record = VerificationRecord(answers={}, verified_at=utc_now())
        else:
            self._gate.check(self._challenge, answers)
            self._record = VerificationRecord(answers={qid: answers[qid] for qid in QUESTION_IDS},
                                              verified_at=utc_now())
        return self._record
