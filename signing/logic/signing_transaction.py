"""
signing/logic/signing_transaction.py
====================================

One-time signing of a worker assignment, followed by certification.

``sign`` runs: load -> guards -> verification -> commit -> sync event ->
render -> store. Everything before the commit is free of side effects. The
commit marks the assignment's certificate as pending and keeps an encrypted
copy of the signature; once the certificate is stored the assignment is
marked issued and the copy is dropped. If certification fails the signature
stays committed, ``CertificationFailed`` is raised, and ``resume_pending``
(also run by ``load``) retries later.
"""
from __future__ import annotations

import logging
import threading
import weakref
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional

from core.contracts.audit import IAuditLogger
from core.contracts.sync import ISyncSink
from core.helpers.date_time_helper import utc_now
from signing.exceptions.errors import (
    AlreadySigned,
    AssignmentNotFound,
    CertificationFailed,
    ConcurrentModification,
    DuplicateCertificate,
    EntityNotFound,
    SignatureMissing,
    SigningError,
    VerificationRequired,
)
from signing.logic.certificate_generator import CertificateGenerator
from signing.logic.kind_profiles import profile_for
from signing.logic.signature_vault import SignatureVault
from signing.logic.verification_gate import VerificationGate
from signing.models.attachment import GeoPoint
from signing.models.certificate_record import CertificateRecord
from signing.models.signable import SignableEntity, WorkerAssignment
from signing.models.signing_enums import CertificateState, SignableKind, SigningState
from signing.models.verification import VerificationRecord
from signing.repository.certificate_store import CertificateStore
from signing.repository.signable_repository import SignableRepository, collection_for

logger = logging.getLogger(__name__)

FEATURE_ID = "signing"


class SigningTransaction:
    def __init__(
        self,
        entities: SignableRepository,
        certificates: CertificateStore,
        *,
        sync: ISyncSink,
        generator: Optional[CertificateGenerator] = None,
        vault: Optional[SignatureVault] = None,
        audit: Optional[IAuditLogger] = None,
        gate: Optional[VerificationGate] = None,
        clock: Callable[[], datetime] = utc_now,
        max_commit_attempts: int = 3,
    ) -> None:
        self._entities = entities
        self._certificates = certificates
        self._sync = sync
        self._generator = generator or CertificateGenerator()
        self._vault = vault or SignatureVault.ephemeral()
        self._audit_logger = audit
        self._gate = gate or VerificationGate()
        self._clock = clock
        self._max_attempts = max(1, int(max_commit_attempts))
        # entries vanish once no caller holds the lock
        self._locks: weakref.WeakValueDictionary[str, threading.RLock] = weakref.WeakValueDictionary()
        self._locks_guard = threading.Lock()

    @classmethod
    def from_config(cls, config=None) -> "SigningTransaction":
        """Wire the SQLite stores, vault and audit logger from configuration."""
        from core.config.config_service import get_config
        from core.helpers.date_time_helper import local_tz
        from core.logging.logic.logger import Logger
        from signing.repository.record_store import SQLiteRecordStore
        from signing.repository.sync_queue import SQLiteSyncQueue

        cfg = config or get_config()
        records_db = cfg.database.records
        generator = CertificateGenerator(
            date_format=cfg.signing.date_format,
            stamp_date_format=cfg.signing.stamp_date_format,
            tz=local_tz(cfg.signing.local_timezone),
        )
        vault = (SignatureVault.from_key_file(cfg.signing.vault_key_file)
                 if cfg.signing.vault_key_file else SignatureVault.ephemeral())
        return cls(
            SignableRepository(SQLiteRecordStore(records_db)),
            CertificateStore(records_db),
            sync=SQLiteSyncQueue(records_db),
            generator=generator,
            vault=vault,
            audit=Logger(cfg.database.logging),
        )

    # ------------------------------------------------------------------ #
    #  Signing                                                           #
    # ------------------------------------------------------------------ #
    def sign(
        self,
        entity_id: str,
        worker_id: str,
        signature_image: bytes,
        *,
        signer_name: str,
        signer_external_id: str,
        verification: Optional[VerificationRecord] = None,
        geo: Optional[GeoPoint] = None,
        responses: Optional[Mapping[str, bool]] = None,
    ) -> SignableEntity:
        """
        Sign the assignment of ``worker_id`` on ``entity_id`` and certify it.

        Raises EntityNotFound, AssignmentNotFound, AlreadySigned,
        SignatureMissing, VerificationRequired, VerificationFailed or
        AttachmentMissing without changing anything. Raises
        CertificationFailed when the signature was committed but its
        certificate could not be stored.
        """
        with self._lock_for(entity_id):
            entity = self._commit(entity_id, worker_id, signature_image, signer_name=signer_name,
                                  signer_external_id=signer_external_id, verification=verification,
                                  geo=geo, responses=responses)
            assignment = entity.assignment_for(worker_id)
            self._sync.enqueue(entity.kind.value)
            self._audit("SignCommitted", entity, assignment, message=f"kind={entity.kind.value}")
            logger.info("Signature committed: %s / %s", entity.id, worker_id)

            entity, _ = self._certify(entity, assignment, signature_image)
            return entity

    def _commit(self, entity_id: str, worker_id: str, signature_image: bytes, *,
                signer_name: str, signer_external_id: str,
                verification: Optional[VerificationRecord], geo: Optional[GeoPoint],
                responses: Optional[Mapping[str, bool]]) -> SignableEntity:
        """Guard, mutate and persist with compare-and-set; a lost race reloads and re-checks."""
        for attempt in range(1, self._max_attempts + 1):
            entity = self._entities.get(entity_id)
            if entity is None:
                raise EntityNotFound(entity_id)
            assignment = entity.assignment_for(worker_id)
            try:
                if assignment is None:
                    raise AssignmentNotFound(entity_id, worker_id)
                challenge = self._precheck(entity, assignment, signature_image, verification)
            except SigningError as ex:
                self._audit("SignRejected", entity, assignment, level="WARNING",
                            message=str(ex), worker_id=worker_id)
                raise

            profile = profile_for(entity.kind)
            assignment.signed_at = self._clock()
            assignment.signer_name = signer_name
            assignment.signer_external_id = signer_external_id
            assignment.geo = geo
            assignment.verification = verification if challenge is not None else None
            profile.apply_outcome(entity, assignment, responses)
            profile.on_commit(entity, assignment)
            assignment.certificate_state = CertificateState.PENDING
            assignment.retained_signature = self._vault.encrypt(signature_image)

            try:
                return self._entities.save(entity)
            except ConcurrentModification:
                logger.info("Concurrent write on %s (attempt %d); reloading", entity_id, attempt)
        raise ConcurrentModification(collection_for(entity.kind), entity_id)

    def _precheck(self, entity: SignableEntity, assignment: WorkerAssignment,
                  signature_image: bytes, verification: Optional[VerificationRecord]):
        if assignment.is_signed:
            raise AlreadySigned(entity.id, assignment.worker_id)
        if not signature_image:
            raise SignatureMissing()
        profile = profile_for(entity.kind)
        challenge = profile.effective_challenge(entity)
        if challenge is not None:
            if verification is None or verification.verified_at is None:
                raise VerificationRequired()
            self._gate.check(challenge, verification.answers)
        profile.precheck(entity, assignment)
        return challenge

    # ------------------------------------------------------------------ #
    #  Certification                                                     #
    # ------------------------------------------------------------------ #
    def _certify(self, entity: SignableEntity, assignment: WorkerAssignment,
                 signature_image: Optional[bytes]) -> tuple[SignableEntity, CertificateRecord]:
        worker_id = assignment.worker_id
        try:
            record = self._certificates.get(entity.id, worker_id, assignment.token)
            if record is None:
                if signature_image is None:
                    if not assignment.retained_signature:
                        raise ValueError("No retained signature to certify with.")
                    signature_image = self._vault.decrypt(assignment.retained_signature)
                rendered = self._generator.render(entity, assignment, signature_image)
                record = CertificateRecord(
                    entity_id=entity.id,
                    worker_id=worker_id,
                    token=assignment.token,
                    file_name=rendered.file_name,
                    content=rendered.content,
                    kind=entity.kind.value,
                )
                try:
                    self._certificates.put(record)
                except DuplicateCertificate:
                    record = self._certificates.get(entity.id, worker_id, assignment.token)
                logger.info("Certificate %s rendered via %s path", record.file_name, rendered.path.value)
        except Exception as ex:
            logger.error("Certification of %s / %s failed: %s", entity.id, worker_id, ex)
            self._audit("CertificationFailed", entity, assignment, level="ERROR", message=str(ex))
            raise CertificationFailed(entity.id, worker_id, ex) from ex

        entity = self._mark_issued(entity, worker_id)
        self._audit("CertificateIssued", entity, assignment, message=record.file_name)
        return entity, record

    def _mark_issued(self, entity: SignableEntity, worker_id: str) -> SignableEntity:
        for _ in range(self._max_attempts):
            assignment = entity.assignment_for(worker_id)
            if assignment.certificate_state == CertificateState.ISSUED:
                return entity
            assignment.certificate_state = CertificateState.ISSUED
            assignment.retained_signature = None
            try:
                return self._entities.save(entity)
            except ConcurrentModification:
                entity = self._entities.get(entity.id) or entity
        raise ConcurrentModification(collection_for(entity.kind), entity.id)

    def resume_pending(self, entity_id: str) -> List[CertificateRecord]:
        """
        Retry certification of every signed assignment whose certificate is
        still pending. Returns the certificates issued by this call;
        assignments that still fail stay pending and are logged.
        """
        issued: List[CertificateRecord] = []
        with self._lock_for(entity_id):
            entity = self._entities.get(entity_id)
            if entity is None:
                raise EntityNotFound(entity_id)
            pending = [a.worker_id for a in entity.assignments
                       if a.is_signed and a.certificate_state == CertificateState.PENDING]
            for worker_id in pending:
                assignment = entity.assignment_for(worker_id)
                try:
                    entity, record = self._certify(entity, assignment, None)
                except CertificationFailed as ex:
                    logger.warning("Certificate still pending: %s", ex)
                    continue
                issued.append(record)
        return issued

    # ------------------------------------------------------------------ #
    #  Queries                                                           #
    # ------------------------------------------------------------------ #
    def load(self, entity_id: str) -> SignableEntity:
        """Fetch a record, first retrying any pending certificates."""
        self.resume_pending(entity_id)
        entity = self._entities.get(entity_id)
        if entity is None:
            raise EntityNotFound(entity_id)
        return entity

    def get_state(self, entity_id: str, worker_id: str) -> SigningState:
        entity = self._entities.get(entity_id)
        if entity is None:
            raise EntityNotFound(entity_id)
        assignment = entity.assignment_for(worker_id)
        if assignment is None:
            raise AssignmentNotFound(entity_id, worker_id)
        challenge = profile_for(entity.kind).effective_challenge(entity)
        return assignment.state(challenge_required=challenge is not None)

    def list_for_worker(self, worker_id: str, kind: Optional[SignableKind] = None) -> List[SignableEntity]:
        return self._entities.list_for_worker(worker_id, kind)

    def certificate_for(self, entity_id: str, worker_id: str) -> Optional[CertificateRecord]:
        entity = self._entities.get(entity_id)
        if entity is None:
            raise EntityNotFound(entity_id)
        assignment = entity.assignment_for(worker_id)
        if assignment is None:
            raise AssignmentNotFound(entity_id, worker_id)
        return self._certificates.get(entity_id, worker_id, assignment.token)

    # ------------------------------------------------------------------ #
    #  Internals                                                         #
    # ------------------------------------------------------------------ #
    def _lock_for(self, entity_id: str) -> threading.RLock:
        with self._locks_guard:
            lock = self._locks.get(entity_id)
            if lock is None:
                lock = self._locks[entity_id] = threading.RLock()
            return lock

    def _audit(self, event: str, entity: SignableEntity, assignment: Optional[WorkerAssignment], *,
               level: str = "INFO", message: str = "", worker_id: Optional[str] = None,
               data: Optional[Dict[str, Any]] = None) -> None:
        if self._audit_logger is None:
            return
        try:
            self._audit_logger.log(
                FEATURE_ID,
                event,
                user_id=assignment.worker_id if assignment else worker_id,
                username=assignment.signer_name if assignment else None,
                level=level,
                reference_id=entity.id,
                message=message,
                data=data,
            )
        except Exception:
            logger.exception("Audit log write failed for %s", event)
