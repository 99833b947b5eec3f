"""Configuration de test pour pytest.

Ce module ajoute la racine du projet au sys.path et fournit les fixtures communes: horloge figée,
magasin en mémoire, moteur premium, registre de mascottes et client HTTP sur un conteneur isolé.
"""

import os
import sys
from datetime import timedelta

import pytest

# Ensure project root is on sys.path so that
# imports like `from petcare...` resolve.
CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from fastapi.testclient import TestClient  # noqa: E402

from petcare.api.deps import get_container  # noqa: E402
from petcare.app.main import app  # noqa: E402
from petcare.core.container import Container  # noqa: E402
from petcare.core.settings import Settings  # noqa: E402
from petcare.domain.notifications import Notifier  # noqa: E402
from petcare.domain.pets import PetRegistry  # noqa: E402
from petcare.domain.state import SessionState  # noqa: E402
from petcare.infra.blobs import InMemoryBlobStore  # noqa: E402
from petcare.infra.store.memory import InMemoryDocumentStore  # noqa: E402
from tests.fakes import FakeClock  # noqa: E402
from tests.helpers import NOW, add_user, make_engine, seed_catalog  # noqa: E402


@pytest.fixture
def clock() -> FakeClock:
    """Horloge figée au 15/01/2026 12:00 UTC."""
    return FakeClock(NOW)


@pytest.fixture
def store(clock) -> InMemoryDocumentStore:
    return InMemoryDocumentStore(clock=clock)


@pytest.fixture
def catalog(store):
    seed_catalog(store)


@pytest.fixture
def premium_engine(store, clock, catalog):
    """Moteur d'un utilisateur premium dont l'abonnement expire dans 10 jours."""
    profile = add_user(store, "u1", True, NOW + timedelta(days=10))
    return make_engine(store, clock, profile)


@pytest.fixture
def blobs() -> InMemoryBlobStore:
    return InMemoryBlobStore()


@pytest.fixture
def registry(store, blobs, clock) -> PetRegistry:
    """Registre des mascottes de l'utilisateur `owner`."""
    profile = add_user(store, "owner")
    state = SessionState(user_id="owner", profile=profile)
    reg = PetRegistry(store, blobs, state, Notifier(), clock=clock)
    reg.load_user_pets()
    return reg


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        REDIS_URL=None,
        REQUIRE_REDIS=False,
        JWT_SECRET="test-secret",
        APP_DEBUG=True,
        SEED_PARTNERS=True,
        BLOB_BACKEND="memory",
    )


@pytest.fixture
def app_container(settings, clock) -> Container:
    return Container(settings, clock=clock)


@pytest.fixture
def client(app_container):
    """Client HTTP branché sur un conteneur isolé."""
    app.dependency_overrides[get_container] = lambda: app_container
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
