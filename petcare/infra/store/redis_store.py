"""Magasin de documents adossé à Redis.

Chaque document est sérialisé en JSON sous `{collection}:{id}`; un set `{collection}:ids` indexe
les identifiants de la collection. Les requêtes chargent la collection puis filtrent/trient en
mémoire, ce qui convient aux petites collections d'un utilisateur.
"""

from __future__ import annotations

import json
import uuid
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

import redis
import structlog
from redis.exceptions import (
    AuthenticationError,
    NoPermissionError,
    RedisError,
)

from petcare.infra.store.base import (
    Clock,
    Document,
    DocumentNotFoundError,
    DocumentStore,
    Filters,
    Order,
    StorePermissionError,
    StoreUnavailableError,
    apply_query,
    resolve_server_values,
)

_DT_MARKER = "__dt__"

log = structlog.get_logger(__name__)


def _encode(value: Any) -> Any:
    if isinstance(value, datetime):
        return {_DT_MARKER: value.isoformat()}
    raise TypeError(f"Unsupported type: {type(value).__name__}")


def _decode(obj: dict[str, Any]) -> Any:
    if len(obj) == 1 and _DT_MARKER in obj:
        return datetime.fromisoformat(obj[_DT_MARKER])
    return obj


def dumps(doc: Mapping[str, Any]) -> str:
    """Sérialise un document en JSON en préservant les datetimes."""
    return json.dumps(doc, default=_encode)


def loads(raw: str) -> Document:
    """Désérialise un document JSON produit par `dumps`."""
    return json.loads(raw, object_hook=_decode)


class RedisDocumentStore(DocumentStore):
    """Magasin de documents via Redis (clé: `{collection}:{id}`)."""

    def __init__(self, url: str, clock: Clock | None = None):
        """Crée un client Redis à partir de l'URL fournie."""
        self.client = redis.Redis.from_url(url, decode_responses=True)
        self._clock = clock or (lambda: datetime.now(UTC))

    @staticmethod
    def _key(collection: str, doc_id: str) -> str:
        return f"{collection}:{doc_id}"

    @staticmethod
    def _idx(collection: str) -> str:
        return f"{collection}:ids"

    def _call(self, collection: str, op: str, fn, *args):
        """Exécute une commande Redis en traduisant les erreurs du client."""
        try:
            return fn(*args)
        except (AuthenticationError, NoPermissionError) as err:
            log.error("store_permission_error", collection=collection, op=op)
            raise StorePermissionError(
                str(err), collection=collection, op=op
            ) from err
        except RedisError as err:
            log.error("store_unavailable", collection=collection, op=op, error=str(err))
            raise StoreUnavailableError(
                str(err), collection=collection, op=op
            ) from err

    def _load_all(self, collection: str) -> list[Document]:
        ids = sorted(self._call(collection, "query", self.client.smembers, self._idx(collection)))
        if not ids:
            return []
        keys = [self._key(collection, i) for i in ids]
        raws = self._call(collection, "query", self.client.mget, keys)
        return [loads(r) for r in raws if r]

    def query(
        self,
        collection: str,
        filters: Filters | None = None,
        order: Order | None = None,
    ) -> list[Document]:
        """Charge la collection et applique filtres et tri."""
        return apply_query(self._load_all(collection), filters, order)

    def get(self, collection: str, doc_id: str) -> Document | None:
        """Charge et désérialise le document, si présent."""
        raw = self._call(collection, "get", self.client.get, self._key(collection, doc_id))
        return loads(raw) if raw else None

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
        """Écrit le document et met à jour l'index de la collection."""
        values = resolve_server_values(fields, self._clock())
        if merge:
            current = self.get(collection, doc_id) or {}
            values = {**current, **values}
        values["id"] = doc_id
        pipe = self.client.pipeline()
        pipe.set(self._key(collection, doc_id), dumps(values))
        pipe.sadd(self._idx(collection), doc_id)
        self._call(collection, "set", pipe.execute)

    def update(self, collection: str, doc_id: str, fields: Mapping[str, Any]) -> None:
        """Fusionne des champs dans un document existant."""
        current = self.get(collection, doc_id)
        if current is None:
            raise DocumentNotFoundError(
                f"{collection}/{doc_id} not found", collection=collection, op="update"
            )
        values = resolve_server_values(fields, self._clock())
        values.pop("id", None)
        current.update(values)
        self._call(
            collection, "update", self.client.set, self._key(collection, doc_id), dumps(current)
        )

    def delete(self, collection: str, doc_id: str) -> None:
        """Supprime le document et son entrée d'index."""
        pipe = self.client.pipeline()
        pipe.delete(self._key(collection, doc_id))
        pipe.srem(self._idx(collection), doc_id)
        self._call(collection, "delete", pipe.execute)
