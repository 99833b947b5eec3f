"""
Conteneur d'injection de dépendances et configuration application.

Instancie les composants centraux (settings, magasin de documents, stockage de fichiers, comptes,
sessions) et expose un singleton `container` utilisé par le reste de l'application.
"""

import structlog

from petcare.core.settings import Settings, get_settings
from petcare.domain.accounts import AccountService
from petcare.domain.session import SessionRegistry
from petcare.infra.blobs import BlobStore, FileSystemBlobStore, InMemoryBlobStore
from petcare.infra.partners_repo import JSONPartnersRepository
from petcare.infra.store.base import DocumentStore
from petcare.infra.store.memory import InMemoryDocumentStore
from petcare.infra.store.redis_store import RedisDocumentStore

log = structlog.get_logger(__name__)


class Container:
    def __init__(self, settings: Settings | None = None, clock=None):
        self.settings = settings or get_settings()
        self.clock = clock
        self.store: DocumentStore = self._build_store()
        self.blobs: BlobStore = self._build_blobs()
        self.partners_repo = JSONPartnersRepository(self.settings.PARTNERS_SEED_PATH)
        if self.settings.SEED_PARTNERS and self.storage_backend != "redis":
            self.partners_repo.seed(self.store)
        self.accounts = AccountService(self.store, self.settings)
        self.sessions = SessionRegistry(self.store, self.blobs, self.settings, clock=clock)

    def _build_store(self) -> DocumentStore:
        if self.settings.REDIS_URL:
            try:
                store = RedisDocumentStore(self.settings.REDIS_URL, clock=self.clock)
                self.storage_backend = "redis"
                return store
            except Exception as err:
                if self.settings.REQUIRE_REDIS:
                    raise RuntimeError("Redis required but unavailable") from err
                log.warning("redis_unavailable_memory_fallback", error=str(err))
                self.storage_backend = "memory-fallback"
                return InMemoryDocumentStore(clock=self.clock)
        if self.settings.REQUIRE_REDIS:
            raise RuntimeError("Redis required but REDIS_URL not set")
        self.storage_backend = "memory"
        return InMemoryDocumentStore(clock=self.clock)

    def _build_blobs(self) -> BlobStore:
        if self.settings.BLOB_BACKEND == "filesystem":
            return FileSystemBlobStore(self.settings.BLOB_DIR, self.settings.BLOB_BASE_URL)
        return InMemoryBlobStore()


container = Container()
