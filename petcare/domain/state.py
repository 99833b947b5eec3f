"""État de session partagé: identité courante et profil en cache."""

from __future__ import annotations

from dataclasses import dataclass

from petcare.domain.entities import UserProfile


@dataclass
class SessionState:
    """Identité authentifiée et champs de profil mis en cache pour la session."""

    user_id: str | None = None
    profile: UserProfile | None = None

    @property
    def authenticated(self) -> bool:
        return self.user_id is not None
