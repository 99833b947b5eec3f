"""Dépendances partagées pour les routes de l'API.

But du module
-------------
- Fournir le conteneur applicatif aux routes (surchargeable en test via
  `app.dependency_overrides`).
- Résoudre la session courante à partir du token `Authorization: Bearer ...`.
"""

import structlog
from fastapi import Depends, Header

from petcare.api.errors import APIError
from petcare.core.container import Container, container
from petcare.core.http_constants import HTTP_UNAUTHORIZED
from petcare.domain.auth import decode_token
from petcare.domain.session import SessionContext


def get_container() -> Container:
    """Retourne le conteneur applicatif."""
    return container


def get_current_session(
    authorization: str | None = Header(None),
    c: Container = Depends(get_container),
) -> SessionContext:
    """Extrait le token, le valide et retourne la session ouverte correspondante."""
    if not authorization or not authorization.lower().startswith("bearer "):
        raise APIError(HTTP_UNAUTHORIZED, "missing_token", "Missing bearer token")
    token = authorization.split(" ", 1)[1]
    data = decode_token(token, c.settings.JWT_SECRET, c.settings.JWT_ALG)
    if not data or data.purpose != "access" or not data.sid:
        raise APIError(HTTP_UNAUTHORIZED, "invalid_token", "Invalid or expired token")
    session = c.sessions.get(data.sid)
    if session is None or session.user_id != data.sub:
        raise APIError(HTTP_UNAUTHORIZED, "session_closed", "Session closed, sign in again")
    structlog.contextvars.bind_contextvars(user_id=data.sub)
    return session
