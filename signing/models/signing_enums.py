# signing/models/signing_enums.py
from __future__ import annotations
from enum import Enum


class SignableKind(str, Enum):
    """The six record kinds that collect worker signatures."""
    SAFETY_TALK = "safety_talk"
    RISK_ANALYSIS = "risk_analysis"
    SITE_INDUCTION = "site_induction"
    FITNESS_TO_WORK = "fitness_to_work"
    DOCUMENT = "document"
    ENROLLMENT = "enrollment"


class SigningState(str, Enum):
    """Lifecycle of one worker assignment."""
    UNSIGNED = "unsigned"
    VERIFICATION_PENDING = "verification_pending"
    VERIFIED = "verified"
    SIGNED = "signed"           # committed, certificate still pending
    CERTIFIED = "certified"     # terminal


class CertificateState(str, Enum):
    NONE = "none"
    PENDING = "pending"
    ISSUED = "issued"


class RenderPath(str, Enum):
    STAMP = "stamp"
    SYNTHESIZE = "synthesize"


class QuestionShape(str, Enum):
    MULTIPLE_CHOICE = "multiple_choice"
    FREE_TEXT = "free_text"
