"""
Gestion des comptes utilisateurs.

Inscription, authentification par email et mot de passe, mise à jour du profil et
réinitialisation du mot de passe. Les profils sont stockés dans la collection `users` sous
l'identifiant de l'utilisateur.
"""

from __future__ import annotations

import hashlib
import uuid
from collections.abc import Mapping
from typing import Any

import structlog
from pydantic.alias_generators import to_camel

from petcare.domain.auth import (
    create_access_token,
    decode_token,
    hash_password,
    verify_password,
)
from petcare.domain.entities import UserProfile
from petcare.domain.errors import (
    EmailInUseError,
    InvalidTokenError,
    UserNotFoundError,
    WeakPasswordError,
    WrongPasswordError,
)
from petcare.infra.store.base import SERVER_TIMESTAMP, Document, DocumentStore

USERS_COLLECTION = "users"
PROFILE_FIELDS = {"name", "phone", "address"}

log = structlog.get_logger(__name__)


def _fingerprint(password_hash: str) -> str:
    """Empreinte courte du hash courant (invalide les tokens de réinitialisation utilisés)."""
    return hashlib.sha256(password_hash.encode("utf-8")).hexdigest()[:16]


class AccountService:
    """Service métier des comptes.

    Paramètres:
    - store: magasin de documents (collection `users`).
    - settings: configuration (secrets JWT, durées, longueur minimale des mots de passe).
    """

    def __init__(self, store: DocumentStore, settings):
        self.store = store
        self.settings = settings

    def _find_by_email(self, email: str) -> Document | None:
        users = self.store.query(USERS_COLLECTION, {"email": email.strip().lower()})
        return users[0] if users else None

    def _check_password(self, password: str) -> None:
        if len(password) < self.settings.PASSWORD_MIN_LENGTH:
            raise WeakPasswordError()

    def signup(
        self,
        email: str,
        password: str,
        name: str,
        phone: str = "",
        address: str = "",
    ) -> UserProfile:
        """Crée un compte non premium et retourne son profil."""
        self._check_password(password)
        email = email.strip().lower()
        if self._find_by_email(email):
            raise EmailInUseError()
        user_id = uuid.uuid4().hex
        self.store.set(
            USERS_COLLECTION,
            user_id,
            {
                "email": email,
                "name": name,
                "phone": phone or "",
                "address": address or "",
                "passwordHash": hash_password(password),
                "createdAt": SERVER_TIMESTAMP,
                "isPremium": False,
                "premiumExpiry": None,
            },
        )
        log.info("user_signed_up", user_id=user_id)
        return self.load_profile(user_id)

    def authenticate(self, email: str, password: str) -> UserProfile:
        """Vérifie les identifiants et retourne le profil."""
        user = self._find_by_email(email)
        if not user:
            raise UserNotFoundError()
        if not verify_password(password, user.get("passwordHash", "")):
            log.info("login_failed", user_id=user["id"])
            raise WrongPasswordError()
        return UserProfile.model_validate(user)

    def issue_access_token(self, user_id: str, session_id: str) -> str:
        """Crée le token d'accès d'une session."""
        return create_access_token(
            secret=self.settings.JWT_SECRET,
            alg=self.settings.JWT_ALG,
            expires_min=self.settings.JWT_EXPIRES_MIN,
            payload={"sub": user_id, "sid": session_id, "purpose": "access"},
        )

    def load_profile(self, user_id: str) -> UserProfile | None:
        """Charge le profil d'un utilisateur, None s'il n'existe pas."""
        doc = self.store.get(USERS_COLLECTION, user_id)
        return UserProfile.model_validate(doc) if doc else None

    def update_profile(self, user_id: str, updates: Mapping[str, Any]) -> UserProfile:
        """Fusionne les champs de profil modifiables (nom, téléphone, adresse)."""
        fields = {to_camel(k): v for k, v in updates.items() if k in PROFILE_FIELDS}
        if self.store.get(USERS_COLLECTION, user_id) is None:
            raise UserNotFoundError()
        if fields:
            self.store.set(USERS_COLLECTION, user_id, fields, merge=True)
        return self.load_profile(user_id)

    def request_password_reset(self, email: str) -> str:
        """Émet un token de réinitialisation à usage unique.

        L'acheminement du token (email) est délégué; sa valeur n'est jamais journalisée.
        """
        user = self._find_by_email(email)
        if not user:
            raise UserNotFoundError()
        token = create_access_token(
            secret=self.settings.JWT_SECRET,
            alg=self.settings.JWT_ALG,
            expires_min=self.settings.PASSWORD_RESET_EXPIRES_MIN,
            payload={
                "sub": user["id"],
                "purpose": "password_reset",
                "pwh": _fingerprint(user.get("passwordHash", "")),
            },
        )
        log.info("password_reset_requested", user_id=user["id"])
        return token

    def reset_password(self, token: str, new_password: str) -> None:
        """Remplace le mot de passe si le token est valide et n'a pas déjà servi."""
        data = decode_token(token, self.settings.JWT_SECRET, self.settings.JWT_ALG)
        if not data or data.purpose != "password_reset":
            raise InvalidTokenError()
        user = self.store.get(USERS_COLLECTION, data.sub)
        if not user or data.pwh != _fingerprint(user.get("passwordHash", "")):
            raise InvalidTokenError()
        self._check_password(new_password)
        self.store.update(
            USERS_COLLECTION, data.sub, {"passwordHash": hash_password(new_password)}
        )
        log.info("password_reset_completed", user_id=data.sub)
