"""
Sessions utilisateur.

Une session est un contexte explicite créé à la connexion et détruit à la déconnexion. Elle
regroupe l'état de session (identité, profil en cache), le moteur premium, le registre des
mascottes et la file de notifications. Deux sessions d'un même utilisateur sont indépendantes.
"""

from __future__ import annotations

import threading
import uuid
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import structlog

from petcare.app.metrics import ACTIVE_SESSIONS
from petcare.domain.entities import UserProfile
from petcare.domain.errors import UserNotFoundError
from petcare.domain.notifications import Notifier
from petcare.domain.pets import PetRegistry
from petcare.domain.premium import USERS_COLLECTION, PremiumEngine
from petcare.domain.state import SessionState
from petcare.infra.blobs import BlobStore
from petcare.infra.store.base import DocumentStore

log = structlog.get_logger(__name__)


class SessionContext:
    """Contexte d'une session authentifiée."""

    def __init__(
        self,
        session_id: str,
        state: SessionState,
        store: DocumentStore,
        premium: PremiumEngine,
        pets: PetRegistry,
        notifier: Notifier,
        expires_at: datetime | None = None,
    ):
        self.session_id = session_id
        self.state = state
        self.store = store
        self.premium = premium
        self.pets = pets
        self.notifier = notifier
        self.expires_at = expires_at
        # sérialise les opérations d'une même session
        self.lock = threading.RLock()
        self.closed = False

    def expired(self, now: datetime) -> bool:
        """Indique si le token de la session a expiré."""
        return self.expires_at is not None and now >= self.expires_at

    @property
    def user_id(self) -> str | None:
        return self.state.user_id

    @property
    def profile(self) -> UserProfile | None:
        return self.state.profile

    def start(self) -> None:
        """Charge le catalogue, les réclamations (si premium) et les mascottes."""
        with self.lock:
            self.premium.load_catalog()
            self.premium.load_user_discounts()
            self.pets.load_user_pets()

    def reload_profile(self) -> UserProfile | None:
        """Relit le profil depuis le magasin puis recharge les réclamations."""
        with self.lock:
            doc = self.store.get(USERS_COLLECTION, self.state.user_id)
            if doc is None:
                raise UserNotFoundError()
            self.state.profile = UserProfile.model_validate(doc)
            self.premium.load_user_discounts()
            return self.state.profile

    def close(self) -> None:
        """Détruit les projections et l'identité de la session."""
        with self.lock:
            self.premium.reset()
            self.pets.reset()
            self.notifier.drain()
            self.state.user_id = None
            self.state.profile = None
            self.closed = True


class SessionRegistry:
    """Registre en mémoire des sessions ouvertes, indexées par identifiant de session.

    Une session vit aussi longtemps que son token d'accès (`JWT_EXPIRES_MIN`); les sessions
    expirées sont fermées à l'ouverture suivante ou à leur prochaine lecture.
    """

    def __init__(
        self,
        store: DocumentStore,
        blobs: BlobStore,
        settings,
        clock: Callable[[], datetime] | None = None,
    ):
        self.store = store
        self.blobs = blobs
        self.settings = settings
        self.clock = clock or (lambda: datetime.now(UTC))
        self._sessions: dict[str, SessionContext] = {}
        self._lock = threading.Lock()

    def open(self, user_id: str) -> SessionContext:
        """Ouvre une session pour `user_id` et charge ses données."""
        self.purge_expired()
        doc = self.store.get(USERS_COLLECTION, user_id)
        if doc is None:
            raise UserNotFoundError()
        state = SessionState(user_id=user_id, profile=UserProfile.model_validate(doc))
        notifier = Notifier(max_items=self.settings.NOTIFICATIONS_MAX, clock=self.clock)
        session = SessionContext(
            session_id=uuid.uuid4().hex,
            state=state,
            store=self.store,
            premium=PremiumEngine(
                self.store,
                state,
                notifier,
                clock=self.clock,
                premium_years=self.settings.PREMIUM_DURATION_YEARS,
            ),
            pets=PetRegistry(
                self.store,
                self.blobs,
                state,
                notifier,
                clock=self.clock,
                upcoming_window_days=self.settings.UPCOMING_VACCINES_WINDOW_DAYS,
            ),
            notifier=notifier,
            expires_at=self.clock() + timedelta(minutes=self.settings.JWT_EXPIRES_MIN),
        )
        session.start()
        with self._lock:
            self._sessions[session.session_id] = session
            ACTIVE_SESSIONS.set(len(self._sessions))
        log.info("session_opened", user_id=user_id, session_id=session.session_id)
        return session

    def get(self, session_id: str) -> SessionContext | None:
        """Retourne la session ouverte, None si absente ou expirée."""
        with self._lock:
            session = self._sessions.get(session_id)
        if session is not None and session.expired(self.clock()):
            self.close(session_id)
            return None
        return session

    def close(self, session_id: str) -> bool:
        """Ferme une session; False si elle n'existe pas."""
        with self._lock:
            session = self._sessions.pop(session_id, None)
            ACTIVE_SESSIONS.set(len(self._sessions))
        if session is None:
            return False
        user_id = session.user_id
        session.close()
        log.info("session_closed", user_id=user_id, session_id=session_id)
        return True

    def purge_expired(self) -> int:
        """Ferme les sessions dont le token a expiré; retourne leur nombre."""
        now = self.clock()
        with self._lock:
            expired = [sid for sid, s in self._sessions.items() if s.expired(now)]
        closed = sum(1 for sid in expired if self.close(sid))
        if closed:
            log.info("sessions_expired", count=closed)
        return closed

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
