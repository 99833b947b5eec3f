"""Magasin de documents en mémoire (utilisé pour dev/tests).

Stocke les documents dans un dict local, non persistant. Les lectures retournent des copies
profondes afin qu'aucun appelant ne puisse modifier l'état stocké par référence.
"""

from __future__ import annotations

import copy
import uuid
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from petcare.infra.store.base import (
    Clock,
    Document,
    DocumentNotFoundError,
    DocumentStore,
    Filters,
    Order,
    apply_query,
    resolve_server_values,
)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class InMemoryDocumentStore(DocumentStore):
    """Magasin de documents en mémoire, indexé par collection puis par id."""

    def __init__(self, clock: Clock | None = None):
        """Initialise une base mémoire vide."""
        self._db: dict[str, dict[str, Document]] = {}
        self._clock = clock or _utcnow

    def _collection(self, name: str) -> dict[str, Document]:
        return self._db.setdefault(name, {})

    def query(
        self,
        collection: str,
        filters: Filters | None = None,
        order: Order | None = None,
    ) -> list[Document]:
        """Filtre et trie une copie des documents de la collection."""
        docs = [copy.deepcopy(d) for d in self._collection(collection).values()]
        return apply_query(docs, filters, order)

    def get(self, collection: str, doc_id: str) -> Document | None:
        """Retourne une copie du document, ou None s'il est absent."""
        doc = self._collection(collection).get(doc_id)
        return copy.deepcopy(doc) if doc is not None else None

    def create(self, collection: str, fields: Mapping[str, Any]) -> str:
        """Crée un document sous un identifiant aléatoire."""
        doc_id = uuid.uuid4().hex
        self.set(collection, doc_id, fields)
        return doc_id

    def set(
        self,
        collection: str,
        doc_id: str,
        fields: Mapping[str, Any],
        merge: bool = False,
    ) -> None:
        """Écrit (ou fusionne) un document sous `doc_id`."""
        values = copy.deepcopy(resolve_server_values(fields, self._clock()))
        docs = self._collection(collection)
        if merge and doc_id in docs:
            docs[doc_id].update(values)
        else:
            docs[doc_id] = {**values, "id": doc_id}

    def update(self, collection: str, doc_id: str, fields: Mapping[str, Any]) -> None:
        """Met à jour un document existant, erreur s'il est absent."""
        docs = self._collection(collection)
        if doc_id not in docs:
            raise DocumentNotFoundError(
                f"{collection}/{doc_id} not found", collection=collection, op="update"
            )
        values = copy.deepcopy(resolve_server_values(fields, self._clock()))
        values.pop("id", None)
        docs[doc_id].update(values)

    def delete(self, collection: str, doc_id: str) -> None:
        """Supprime le document s'il existe."""
        self._collection(collection).pop(doc_id, None)
