"""
Per-kind behavior of the signing flow.

One generic transaction and one generator serve all six record kinds; what
differs between kinds lives here: certificate title, descriptive rows,
filename prefix, the default challenge, the outcome computed from answers and
extra changes applied at commit time.
"""
from __future__ import annotations

from typing import Dict, List, Mapping, Optional, Tuple

from signing.exceptions.errors import AttachmentMissing
from signing.models.render_metadata import RenderMetadata
from signing.models.signable import FitnessQuestion, SignableEntity, WorkerAssignment
from signing.models.signing_enums import SignableKind
from signing.models.verification import VerificationChallenge

DEFAULT_FITNESS_QUESTIONS: Tuple[Tuple[str, str], ...] = (
    ("q1", "Do you feel in good health?"),
    ("q2", "Have you rested adequately (at least 6 hours)?"),
    ("q3", "Are you free of alcohol and drugs?"),
    ("q4", "Are you free of injuries or pain that could affect your work?"),
    ("q5", "Do you feel mentally prepared to work safely?"),
)


def default_fitness_questions() -> List[FitnessQuestion]:
    return [FitnessQuestion(id=qid, question=text) for qid, text in DEFAULT_FITNESS_QUESTIONS]


def _text(value: object) -> str:
    if value is None:
        return "-"
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value) or "-"
    text = str(value).strip()
    return text or "-"


class KindProfile:
    kind: SignableKind
    title: str = ""
    filename_prefix: str = ""
    # (field key, label) in display order
    field_labels: Tuple[Tuple[str, str], ...] = ()
    attachment_label: str = "Attached document"

    # ---- rendering ---------------------------------------------------------
    def descriptive_rows(self, entity: SignableEntity) -> List[Tuple[str, str]]:
        rows = [(label, _text(entity.fields.get(key))) for key, label in self.field_labels]
        if entity.attachment is not None and entity.attachment.file_name:
            mime = entity.attachment.mime_type or "application/octet-stream"
            rows.append((self.attachment_label, f"{entity.attachment.file_name} ({mime})"))
        return rows

    def render_metadata(self, entity: SignableEntity, assignment: WorkerAssignment) -> RenderMetadata:
        return RenderMetadata(
            title=self.title,
            filename_prefix=self.filename_prefix,
            rows=self.descriptive_rows(entity),
        )

    # ---- signing hooks -----------------------------------------------------
    def effective_challenge(self, entity: SignableEntity) -> Optional[VerificationChallenge]:
        return entity.challenge

    def precheck(self, entity: SignableEntity, assignment: WorkerAssignment) -> None:
        """Kind-specific preconditions, checked before anything is written."""

    def apply_outcome(self, entity: SignableEntity, assignment: WorkerAssignment,
                      responses: Optional[Mapping[str, bool]]) -> None:
        """Store the kind-specific result on the assignment."""

    def on_commit(self, entity: SignableEntity, assignment: WorkerAssignment) -> None:
        """Extra entity changes persisted together with the signature."""


class SafetyTalkProfile(KindProfile):
    kind = SignableKind.SAFETY_TALK
    title = "Daily safety talk (5 minutes)"
    filename_prefix = "TALK"
    field_labels = (("topic", "Topic"), ("held_at", "Talk date/time"))


class RiskAnalysisProfile(KindProfile):
    kind = SignableKind.RISK_ANALYSIS
    title = "Risk analysis (ART/AST)"
    filename_prefix = "ART"
    field_labels = (("site", "Site"), ("date", "Date"), ("risks", "Risks / controls"))


class SiteInductionProfile(KindProfile):
    kind = SignableKind.SITE_INDUCTION
    title = "Site induction (IRL)"
    filename_prefix = "IRL"
    field_labels = (("site", "Site"), ("date", "Induction date"),
                    ("title", "Title"), ("description", "Description"))

    def effective_challenge(self, entity: SignableEntity) -> Optional[VerificationChallenge]:
        """Stored challenge, else two free-text questions derived from the record."""
        if entity.challenge is not None:
            return entity.challenge
        site = str(entity.fields.get("site") or "")
        if entity.attachment is not None and entity.attachment.file_name:
            q2 = ("What is the name of the attached file?", entity.attachment.file_name)
        else:
            q2 = ("What is the title of the induction?", str(entity.fields.get("title") or ""))
        return VerificationChallenge.free_text(("Which site is named in the induction?", site), q2)


class FitnessToWorkProfile(KindProfile):
    kind = SignableKind.FITNESS_TO_WORK
    title = "Fitness-to-work evaluation"
    filename_prefix = "FIT_FOR_WORK"
    field_labels = (("date", "Date"), ("shift", "Shift"), ("site", "Site"))
    fit_text = "FIT FOR WORK"
    not_fit_text = "NOT FIT FOR WORK"

    def apply_outcome(self, entity: SignableEntity, assignment: WorkerAssignment,
                      responses: Optional[Mapping[str, bool]]) -> None:
        """Outcome is the AND of all answers; an unanswered question counts as "no"."""
        given: Dict[str, bool] = dict(responses or {})
        questions = entity.questions or default_fitness_questions()
        assignment.responses = [q.answered(given.get(q.id) is True) for q in questions]
        assignment.outcome = all(r.response is True for r in assignment.responses)

    def render_metadata(self, entity: SignableEntity, assignment: WorkerAssignment) -> RenderMetadata:
        fit = bool(assignment.outcome)
        return RenderMetadata(
            title=self.title,
            filename_prefix=self.filename_prefix,
            rows=self.descriptive_rows(entity),
            checklist_title="Fitness questionnaire",
            checklist=[(r.question, bool(r.response)) for r in assignment.responses],
            verdict=(self.fit_text if fit else self.not_fit_text, fit),
        )


class DocumentProfile(KindProfile):
    kind = SignableKind.DOCUMENT
    title = "Document acknowledgement"
    filename_prefix = "DOC"
    field_labels = (("site", "Site"), ("date", "Date"), ("title", "Title"),
                    ("category", "Category"), ("description", "Description"))


class EnrollmentProfile(KindProfile):
    kind = SignableKind.ENROLLMENT
    title = "Worker enrollment - signature record"
    filename_prefix = "ENROL"
    field_labels = (("name", "Name"), ("external_id", "National ID"), ("phone", "Phone"),
                    ("position", "Position"), ("site", "Site"), ("company", "Company"),
                    ("exposures", "Exposed to"))
    attachment_label = "Induction attached"

    def precheck(self, entity: SignableEntity, assignment: WorkerAssignment) -> None:
        if entity.attachment is None or not entity.attachment.content:
            raise AttachmentMissing("The induction document must be attached before the enrollment is signed.")

    def on_commit(self, entity: SignableEntity, assignment: WorkerAssignment) -> None:
        entity.fields["enabled"] = True


_PROFILES: Dict[SignableKind, KindProfile] = {
    p.kind: p for p in (
        SafetyTalkProfile(),
        RiskAnalysisProfile(),
        SiteInductionProfile(),
        FitnessToWorkProfile(),
        DocumentProfile(),
        EnrollmentProfile(),
    )
}


def profile_for(kind: SignableKind) -> KindProfile:
    return _PROFILES[SignableKind(kind)]
