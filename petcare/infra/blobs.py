"""
Stockage des fichiers binaires (documents vétérinaires).

Ce module fournit une interface de stockage par clé avec des versions en mémoire et sur système de
fichiers. `upload` retourne une URL publique que `delete` accepte en retour.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path

import structlog

log = structlog.get_logger(__name__)


class BlobStoreError(Exception):
    """Erreur d'accès au stockage de fichiers."""


class BlobNotFoundError(BlobStoreError):
    """Le fichier référencé n'existe pas."""


class BlobStore(ABC):
    """Interface abstraite d'un stockage de fichiers."""

    @abstractmethod
    def upload(self, key: str, data: bytes, content_type: str | None = None) -> str:
        """Stocke `data` sous `key` et retourne l'URL de téléchargement."""
        ...

    @abstractmethod
    def delete(self, url: str) -> None:
        """Supprime le fichier désigné par son URL."""
        ...


class InMemoryBlobStore(BlobStore):
    """Stockage de fichiers en mémoire (URL: `memory://{key}`)."""

    scheme = "memory://"

    def __init__(self):
        """Initialise un stockage vide."""
        self._blobs: dict[str, tuple[bytes, str | None]] = {}

    def upload(self, key: str, data: bytes, content_type: str | None = None) -> str:
        """Conserve le contenu et son type MIME."""
        self._blobs[key] = (bytes(data), content_type)
        return f"{self.scheme}{key}"

    def delete(self, url: str) -> None:
        """Retire le fichier, erreur s'il est absent."""
        key = url.removeprefix(self.scheme)
        if self._blobs.pop(key, None) is None:
            raise BlobNotFoundError(url)

    def read(self, url: str) -> bytes:
        """Retourne le contenu stocké (utile aux tests)."""
        key = url.removeprefix(self.scheme)
        if key not in self._blobs:
            raise BlobNotFoundError(url)
        return self._blobs[key][0]


class FileSystemBlobStore(BlobStore):
    """Stockage de fichiers sur disque, servis sous `base_url`."""

    def __init__(self, base_dir: str, base_url: str = "/files"):
        """Prépare le répertoire racine du stockage."""
        self.base_dir = Path(base_dir)
        self.base_url = base_url.rstrip("/")
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        path = (self.base_dir / key).resolve()
        if self.base_dir.resolve() not in path.parents:
            raise BlobStoreError(f"invalid_blob_key:{key}")
        return path

    def upload(self, key: str, data: bytes, content_type: str | None = None) -> str:
        """Écrit le fichier sous `base_dir/key`."""
        path = self._path(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as err:
            raise BlobStoreError(str(err)) from err
        log.debug("blob_uploaded", key=key, size=len(data), content_type=content_type)
        return f"{self.base_url}/{key}"

    def delete(self, url: str) -> None:
        """Supprime le fichier correspondant à l'URL."""
        key = url.removeprefix(f"{self.base_url}/")
        path = self._path(key)
        try:
            path.unlink()
        except FileNotFoundError as err:
            raise BlobNotFoundError(url) from err
        except OSError as err:
            raise BlobStoreError(str(err)) from err
