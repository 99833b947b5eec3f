"""
Routes d'authentification et de profil.

Inscription, connexion (ouverture d'une session), déconnexion (fermeture de la session), lecture et
mise à jour du profil, réinitialisation du mot de passe.
"""

from fastapi import APIRouter, Depends, Response

from petcare.api.deps import get_container, get_current_session
from petcare.api.schemas import (
    LoginPayload,
    PasswordResetConfirm,
    PasswordResetRequest,
    PasswordResetResponse,
    ProfileUpdate,
    SignupPayload,
    TokenResponse,
)
from petcare.core.container import Container
from petcare.core.http_constants import HTTP_CREATED, HTTP_NO_CONTENT
from petcare.domain.entities import UserProfile
from petcare.domain.session import SessionContext

router = APIRouter(prefix="/auth", tags=["auth"])
container_dep = Depends(get_container)
session_dep = Depends(get_current_session)


@router.post("/signup", response_model=UserProfile, status_code=HTTP_CREATED)
def signup(p: SignupPayload, c: Container = container_dep):
    """Inscrit un nouvel utilisateur (non premium)."""
    return c.accounts.signup(
        email=str(p.email),
        password=p.password,
        name=p.name,
        phone=p.phone,
        address=p.address,
    )


@router.post("/login", response_model=TokenResponse)
def login(p: LoginPayload, c: Container = container_dep):
    """Authentifie l'utilisateur, ouvre une session et retourne son token d'accès."""
    profile = c.accounts.authenticate(str(p.email), p.password)
    session = c.sessions.open(profile.id)
    token = c.accounts.issue_access_token(profile.id, session.session_id)
    return TokenResponse(access_token=token)


@router.post("/logout", status_code=HTTP_NO_CONTENT)
def logout(session: SessionContext = session_dep, c: Container = container_dep):
    """Ferme la session courante; le token associé devient inutilisable."""
    c.sessions.close(session.session_id)
    return Response(status_code=HTTP_NO_CONTENT)


@router.get("/me", response_model=UserProfile)
def me(refresh: bool = False, session: SessionContext = session_dep):
    """Retourne le profil en cache (ou relu depuis le magasin si `refresh`)."""
    if refresh:
        return session.reload_profile()
    return session.profile


@router.patch("/me", response_model=UserProfile)
def update_me(
    p: ProfileUpdate,
    session: SessionContext = session_dep,
    c: Container = container_dep,
):
    """Met à jour nom, téléphone et adresse."""
    with session.lock:
        profile = c.accounts.update_profile(
            session.user_id, p.model_dump(exclude_unset=True, exclude_none=True)
        )
        session.state.profile = profile
        session.notifier.success("profile_updated", "Profile updated successfully")
    return profile


@router.post("/password-reset", response_model=PasswordResetResponse)
def request_password_reset(p: PasswordResetRequest, c: Container = container_dep):
    """Émet un token de réinitialisation (renvoyé uniquement en mode debug)."""
    token = c.accounts.request_password_reset(str(p.email))
    return PasswordResetResponse(reset_token=token if c.settings.APP_DEBUG else None)


@router.post("/password-reset/confirm", status_code=HTTP_NO_CONTENT)
def confirm_password_reset(p: PasswordResetConfirm, c: Container = container_dep):
    """Remplace le mot de passe à l'aide d'un token de réinitialisation."""
    c.accounts.reset_password(p.token, p.new_password)
    return Response(status_code=HTTP_NO_CONTENT)
