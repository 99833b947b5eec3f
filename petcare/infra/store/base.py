"""Interface du client de données distant (magasin de documents).

Le magasin expose des collections de documents JSON adressés par identifiant, sans transaction
entre documents. Les implémentations lèvent `StoreUnavailableError` pour les erreurs réseau
transitoires et `StorePermissionError` pour les refus d'accès.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Mapping, Sequence
from datetime import datetime
from typing import Any

Document = dict[str, Any]
Filters = Mapping[str, Any]
Order = Sequence[tuple[str, str]]
Clock = Callable[[], datetime]


class _ServerTimestamp:
    """Valeur sentinelle résolue par le magasin au moment de l'écriture."""

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"

    # unique: les copies renvoient la même instance
    def __copy__(self) -> _ServerTimestamp:
        return self

    def __deepcopy__(self, memo) -> _ServerTimestamp:
        return self


SERVER_TIMESTAMP = _ServerTimestamp()


class StoreError(Exception):
    """Erreur générique remontée par un magasin de documents."""

    def __init__(
        self, message: str, *, collection: str | None = None, op: str | None = None
    ) -> None:
        super().__init__(message)
        self.collection = collection
        self.op = op


class StoreUnavailableError(StoreError):
    """Erreur transitoire (réseau, timeout); l'appelant peut réessayer."""


class StorePermissionError(StoreError):
    """Accès refusé par le magasin."""


class DocumentNotFoundError(StoreError):
    """Mise à jour d'un document inexistant."""


class DocumentStore(ABC):
    """Interface abstraite d'un magasin de documents."""

    @abstractmethod
    def query(
        self,
        collection: str,
        filters: Filters | None = None,
        order: Order | None = None,
    ) -> list[Document]:
        """Retourne les documents satisfaisant les filtres d'égalité, triés selon `order`."""
        ...

    @abstractmethod
    def get(self, collection: str, doc_id: str) -> Document | None:
        """Retourne un document (avec son `id`) ou None s'il est absent."""
        ...

    @abstractmethod
    def create(self, collection: str, fields: Mapping[str, Any]) -> str:
        """Crée un document et retourne l'identifiant attribué par le magasin."""
        ...

    @abstractmethod
    def set(
        self,
        collection: str,
        doc_id: str,
        fields: Mapping[str, Any],
        merge: bool = False,
    ) -> None:
        """Écrit un document sous un identifiant imposé (fusion optionnelle)."""
        ...

    @abstractmethod
    def update(self, collection: str, doc_id: str, fields: Mapping[str, Any]) -> None:
        """Met à jour partiellement un document existant."""
        ...

    @abstractmethod
    def delete(self, collection: str, doc_id: str) -> None:
        """Supprime un document (sans erreur s'il est absent)."""
        ...


def resolve_server_values(fields: Mapping[str, Any], now: datetime) -> Document:
    """Remplace les sentinelles `SERVER_TIMESTAMP` par l'horodatage du magasin."""
    return {k: (now if v is SERVER_TIMESTAMP else v) for k, v in fields.items()}


def _sort_key(value: Any) -> tuple[int, Any]:
    # les valeurs absentes passent en fin de tri ascendant
    if value is None:
        return (1, "")
    return (0, value)


def apply_query(
    docs: Iterable[Document],
    filters: Filters | None = None,
    order: Order | None = None,
) -> list[Document]:
    """Applique filtres d'égalité et tri multi-clés (stable) à des documents en mémoire.

    Args:
        docs: Documents candidats.
        filters: Égalités champ -> valeur à respecter.
        order: Séquence `(champ, "asc"|"desc")`, la première clé étant prioritaire.

    Returns:
        list[Document]: Documents retenus, triés.
    """
    result = [
        d for d in docs if all(d.get(k) == v for k, v in (filters or {}).items())
    ]
    for field, direction in reversed(list(order or [])):
        if direction not in ("asc", "desc"):
            raise ValueError(f"invalid_order_direction:{direction}")
        result.sort(
            key=lambda d, f=field: _sort_key(d.get(f)), reverse=direction == "desc"
        )
    return result

