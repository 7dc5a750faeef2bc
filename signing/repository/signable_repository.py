"""Persistence of signable records on top of an IRecordStore."""
from __future__ import annotations

from typing import List, Optional

from core.contracts.storage import IRecordStore
from signing.models.signable import SignableEntity
from signing.models.signing_enums import SignableKind

COLLECTION_PREFIX = "signable_"


def collection_for(kind: SignableKind) -> str:
    return f"{COLLECTION_PREFIX}{SignableKind(kind).value}"


class SignableRepository:
    """
    One collection per record kind. ``save`` writes with compare-and-set on
    the entity's version and updates it on success.
    """

    def __init__(self, store: IRecordStore) -> None:
        self._store = store

    @property
    def store(self) -> IRecordStore:
        return self._store

    def get(self, entity_id: str, kind: Optional[SignableKind] = None) -> Optional[SignableEntity]:
        kinds = [SignableKind(kind)] if kind is not None else list(SignableKind)
        for k in kinds:
            doc = self._store.get(collection_for(k), entity_id)
            if doc is not None:
                return SignableEntity.from_dict(doc.body, version=doc.version)
        return None

    def save(self, entity: SignableEntity) -> SignableEntity:
        """Raises ConcurrentModification if the stored version moved on."""
        entity.version = self._store.put(
            collection_for(entity.kind), entity.id, entity.to_dict(), expected_version=entity.version,
        )
        return entity

    def list_for_worker(self, worker_id: str, kind: Optional[SignableKind] = None) -> List[SignableEntity]:
        kinds = [SignableKind(kind)] if kind is not None else list(SignableKind)
        result: List[SignableEntity] = []
        for k in kinds:
            for doc in self._store.query(collection_for(k), "worker_ids", worker_id):
                result.append(SignableEntity.from_dict(doc.body, version=doc.version))
        return result

    def list_by_kind(self, kind: SignableKind) -> List[SignableEntity]:
        docs = self._store.query(collection_for(kind), "kind", SignableKind(kind).value)
        return [SignableEntity.from_dict(d.body, version=d.version) for d in docs]
