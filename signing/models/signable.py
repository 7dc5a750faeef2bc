from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from core.helpers.date_time_helper import from_iso, to_iso, utc_now

from .attachment import Attachment, GeoPoint
from .signing_enums import CertificateState, SignableKind, SigningState
from .verification import VerificationChallenge, VerificationRecord


def new_token() -> str:
    """Mint an assignment token. Called once per assignment, never reused."""
    return str(uuid.uuid4())


@dataclass(frozen=True)
class FitnessQuestion:
    """Yes/no question of a fitness-to-work evaluation."""
    id: str
    question: str
    response: Optional[bool] = None

    def answered(self, response: bool) -> "FitnessQuestion":
        return replace(self, response=bool(response))

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "question": self.question, "response": self.response}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FitnessQuestion":
        return cls(id=data["id"], question=data.get("question", ""), response=data.get("response"))


@dataclass
class WorkerAssignment:
    """
    One (record, worker) pairing that needs exactly one signature.

    ``signed_at`` absent means unsigned. ``token`` is minted at assignment
    time and keys the certificate.
    """
    worker_id: str
    token: str = field(default_factory=new_token)
    signer_name: Optional[str] = None
    signer_external_id: Optional[str] = None
    signed_at: Optional[datetime] = None
    verification: Optional[VerificationRecord] = None
    geo: Optional[GeoPoint] = None
    responses: List[FitnessQuestion] = field(default_factory=list)
    outcome: Optional[bool] = None
    certificate_state: CertificateState = CertificateState.NONE
    retained_signature: Optional[str] = None    # encrypted, only while certificate is pending

    @property
    def is_signed(self) -> bool:
        return self.signed_at is not None

    def state(self, *, challenge_required: bool = False) -> SigningState:
        if self.signed_at is not None:
            if self.certificate_state == CertificateState.ISSUED:
                return SigningState.CERTIFIED
            return SigningState.SIGNED
        if challenge_required:
            return SigningState.VERIFICATION_PENDING
        return SigningState.UNSIGNED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "worker_id": self.worker_id,
            "token": self.token,
            "signer_name": self.signer_name,
            "signer_external_id": self.signer_external_id,
            "signed_at": to_iso(self.signed_at),
            "verification": self.verification.to_dict() if self.verification else None,
            "geo": self.geo.to_dict() if self.geo else None,
            "responses": [r.to_dict() for r in self.responses],
            "outcome": self.outcome,
            "certificate_state": self.certificate_state.value,
            "retained_signature": self.retained_signature,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WorkerAssignment":
        return cls(
            worker_id=data["worker_id"],
            token=data["token"],
            signer_name=data.get("signer_name"),
            signer_external_id=data.get("signer_external_id"),
            signed_at=from_iso(data.get("signed_at")),
            verification=VerificationRecord.from_dict(data.get("verification")),
            geo=GeoPoint.from_dict(data.get("geo")),
            responses=[FitnessQuestion.from_dict(r) for r in data.get("responses") or []],
            outcome=data.get("outcome"),
            certificate_state=CertificateState(data.get("certificate_state") or CertificateState.NONE.value),
            retained_signature=data.get("retained_signature"),
        )


@dataclass
class SignableEntity:
    """
    A record that workers sign: safety talk, risk analysis, site induction,
    fitness evaluation, document or enrollment.

    ``fields`` holds the kind-specific descriptive values in display order.
    ``version`` is managed by the record store (optimistic concurrency).
    """
    id: str
    kind: SignableKind
    fields: Dict[str, Any] = field(default_factory=dict)
    assignments: List[WorkerAssignment] = field(default_factory=list)
    attachment: Optional[Attachment] = None
    challenge: Optional[VerificationChallenge] = None
    questions: List[FitnessQuestion] = field(default_factory=list)
    created_at: datetime = field(default_factory=utc_now)
    version: int = 0

    @classmethod
    def create(
        cls,
        kind: SignableKind,
        *,
        worker_ids: Iterable[str],
        fields: Optional[Dict[str, Any]] = None,
        attachment: Optional[Attachment] = None,
        challenge: Optional[VerificationChallenge] = None,
        questions: Optional[List[FitnessQuestion]] = None,
        entity_id: Optional[str] = None,
    ) -> "SignableEntity":
        """New record with one freshly minted assignment per worker."""
        seen: set[str] = set()
        assignments: List[WorkerAssignment] = []
        for wid in worker_ids:
            if wid in seen:
                continue
            seen.add(wid)
            assignments.append(WorkerAssignment(worker_id=wid))
        return cls(
            id=entity_id or str(uuid.uuid4()),
            kind=kind,
            fields=dict(fields or {}),
            assignments=assignments,
            attachment=attachment,
            challenge=challenge,
            questions=list(questions or []),
        )

    def assignment_for(self, worker_id: str) -> Optional[WorkerAssignment]:
        for a in self.assignments:
            if a.worker_id == worker_id:
                return a
        return None

    def worker_ids(self) -> List[str]:
        return [a.worker_id for a in self.assignments]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind.value,
            "fields": dict(self.fields),
            "assignments": [a.to_dict() for a in self.assignments],
            "worker_ids": self.worker_ids(),
            "attachment": self.attachment.to_dict() if self.attachment else None,
            "challenge": self.challenge.to_dict() if self.challenge else None,
            "questions": [q.to_dict() for q in self.questions],
            "created_at": to_iso(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], *, version: int = 0) -> "SignableEntity":
        return cls(
            id=data["id"],
            kind=SignableKind(data["kind"]),
            fields=dict(data.get("fields") or {}),
            assignments=[WorkerAssignment.from_dict(a) for a in data.get("assignments") or []],
            attachment=Attachment.from_dict(data.get("attachment")),
            challenge=VerificationChallenge.from_dict(data.get("challenge")),
            questions=[FitnessQuestion.from_dict(q) for q in data.get("questions") or []],
            created_at=from_iso(data.get("created_at")) or utc_now(),
            version=version,
        )
