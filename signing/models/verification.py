"""
Verification challenge models.

A challenge is exactly two questions (``q1``, ``q2``) of one shape: either
multiple choice (options + index of the correct option) or free text
(expected answer, compared trimmed and case-insensitive).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple, Union

from core.helpers.date_time_helper import from_iso, to_iso

from .signing_enums import QuestionShape

QUESTION_IDS: Tuple[str, str] = ("q1", "q2")

Answer = Union[int, str]


@dataclass(frozen=True)
class MultipleChoiceQuestion:
    id: str
    question: str
    options: List[str]
    correct_option_index: int

    shape = QuestionShape.MULTIPLE_CHOICE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "shape": self.shape.value,
            "question": self.question,
            "options": list(self.options),
            "correct_option_index": self.correct_option_index,
        }


@dataclass(frozen=True)
class FreeTextQuestion:
    id: str
    question: str
    expected_answer: str

    shape = QuestionShape.FREE_TEXT

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "shape": self.shape.value,
            "question": self.question,
            "expected_answer": self.expected_answer,
        }


Question = Union[MultipleChoiceQuestion, FreeTextQuestion]


def _question_from_dict(data: Dict[str, Any]) -> Question:
    if data.get("shape") == QuestionShape.MULTIPLE_CHOICE.value:
        return MultipleChoiceQuestion(
            id=data["id"],
            question=data.get("question", ""),
            options=list(data.get("options") or []),
            correct_option_index=int(data["correct_option_index"]),
        )
    return FreeTextQuestion(
        id=data["id"],
        question=data.get("question", ""),
        expected_answer=data.get("expected_answer", ""),
    )


@dataclass(frozen=True)
class VerificationChallenge:
    """Two-question knowledge check required before signing."""
    questions: Tuple[Question, Question]

    def __post_init__(self) -> None:
        ids = tuple(q.id for q in self.questions)
        if ids != QUESTION_IDS:
            raise ValueError(f"A verification challenge needs exactly questions {QUESTION_IDS}, got {ids}")

    @property
    def shape(self) -> QuestionShape:
        return self.questions[0].shape

    def question(self, qid: str) -> Question:
        for q in self.questions:
            if q.id == qid:
                return q
        raise KeyError(qid)

    @classmethod
    def free_text(cls, q1: Tuple[str, str], q2: Tuple[str, str]) -> "VerificationChallenge":
        """Build from ``(question, expected_answer)`` pairs."""
        return cls((
            FreeTextQuestion("q1", q1[0], q1[1]),
            FreeTextQuestion("q2", q2[0], q2[1]),
        ))

    @classmethod
    def multiple_choice(cls, q1: Tuple[str, List[str], int],
                        q2: Tuple[str, List[str], int]) -> "VerificationChallenge":
        """Build from ``(question, options, correct_index)`` triples."""
        return cls((
            MultipleChoiceQuestion("q1", q1[0], list(q1[1]), q1[2]),
            MultipleChoiceQuestion("q2", q2[0], list(q2[1]), q2[2]),
        ))

    def to_dict(self) -> Dict[str, Any]:
        return {"questions": [q.to_dict() for q in self.questions]}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["VerificationChallenge"]:
        if not data:
            return None
        qs = [_question_from_dict(d) for d in data.get("questions") or []]
        return cls(tuple(qs))  # type: ignore[arg-type]


@dataclass(frozen=True)
class VerificationRecord:
    """Answers given by the signer, and when the check was passed."""
    answers: Dict[str, Answer] = field(default_factory=dict)
    verified_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"answers": dict(self.answers), "verified_at": to_iso(self.verified_at)}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["VerificationRecord"]:
        if not data:
            return None
        return cls(answers=dict(data.get("answers") or {}), verified_at=from_iso(data.get("verified_at")))
