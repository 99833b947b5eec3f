"""
Routes premium: abonnement, catalogue de réductions, réclamations et statistiques.

Les opérations du moteur renvoient un booléen; un échec est traduit en réponse d'erreur à partir de
la dernière notification d'échec de la session.
"""

from fastapi import APIRouter, Depends

from petcare.api.deps import get_current_session
from petcare.api.errors import raise_for_failure
from petcare.api.schemas import (
    CatalogReloadResponse,
    ClaimRequest,
    PremiumStatusResponse,
)
from petcare.core.http_constants import HTTP_CREATED
from petcare.domain.catalog import filter_by_category, filter_by_location
from petcare.domain.entities import (
    CatalogDiscount,
    Partner,
    PremiumStats,
    UserDiscountClaim,
)
from petcare.domain.session import SessionContext

router = APIRouter(prefix="/premium", tags=["premium"])
session_dep = Depends(get_current_session)


def _status(session: SessionContext) -> PremiumStatusResponse:
    profile = session.profile
    return PremiumStatusResponse(
        is_premium=bool(profile and profile.is_premium),
        is_active=session.premium.is_premium_active(),
        premium_expiry=profile.premium_expiry if profile else None,
        days_until_expiry=session.premium.days_until_expiry(),
    )


@router.get("/status", response_model=PremiumStatusResponse)
def premium_status(session: SessionContext = session_dep):
    """État de l'abonnement (actif, date d'expiration, jours restants)."""
    return _status(session)


@router.post("/activate", response_model=PremiumStatusResponse)
def activate_premium(session: SessionContext = session_dep):
    """Active un abonnement premium d'un an."""
    with session.lock:
        if not session.premium.activate_premium():
            raise_for_failure(session)
        return _status(session)


@router.get("/partners", response_model=list[Partner])
def list_partners(session: SessionContext = session_dep):
    return list(session.premium.partners)


@router.get("/discounts", response_model=list[CatalogDiscount])
def list_discounts(
    category: str | None = None,
    location: str | None = None,
    session: SessionContext = session_dep,
):
    """Catalogue aplati, filtré par catégorie ("all" = toutes) puis par localité."""
    discounts = filter_by_category(session.premium.discounts, category)
    return filter_by_location(discounts, location)


@router.post("/catalog/reload", response_model=CatalogReloadResponse)
def reload_catalog(session: SessionContext = session_dep):
    with session.lock:
        if not session.premium.load_catalog():
            raise_for_failure(session)
        return CatalogReloadResponse(
            partners=len(session.premium.partners),
            discounts=len(session.premium.discounts),
        )


@router.get("/claims", response_model=list[UserDiscountClaim])
def list_claims(session: SessionContext = session_dep):
    """Réclamations de l'utilisateur (plus récentes d'abord)."""
    return list(session.premium.user_discounts)


@router.post("/claims", response_model=UserDiscountClaim, status_code=HTTP_CREATED)
def claim_discount(p: ClaimRequest, session: SessionContext = session_dep):
    """Réclame une réduction; 403 si non premium, 409 si déjà réclamée."""
    with session.lock:
        if not session.premium.claim_discount(p.discount_id, p.partner_id):
            raise_for_failure(session)
        return session.premium.user_discounts[0]


@router.post("/claims/{claim_id}/use", response_model=UserDiscountClaim)
def use_discount(claim_id: str, session: SessionContext = session_dep):
    """Marque une réclamation comme utilisée."""
    with session.lock:
        if not session.premium.mark_discount_used(claim_id):
            raise_for_failure(session)
        return next(c for c in session.premium.user_discounts if c.id == claim_id)


@router.get("/stats", response_model=PremiumStats | None)
def premium_stats(session: SessionContext = session_dep):
    """Statistiques d'utilisation; null si l'utilisateur n'est pas premium."""
    return session.premium.get_user_premium_stats()
