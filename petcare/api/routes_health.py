"""
Endpoints de santé et de notifications.

Expose `/health` pour signaler l'état général de l'application et du stockage, et
`/notifications` pour consommer les notifications de la session courante.
"""

from fastapi import APIRouter, Depends

from petcare.api.deps import get_container, get_current_session
from petcare.api.schemas import NotificationOut
from petcare.core.container import Container
from petcare.domain.session import SessionContext

router = APIRouter(tags=["health"])


@router.get("/health")
def health(c: Container = Depends(get_container)):
    """Vérifie la disponibilité de l'API et le backend de stockage."""
    return {
        "status": "ok",
        "storage": getattr(c, "storage_backend", "unknown"),
        "redis_url": bool(c.settings.REDIS_URL),
        "sessions": len(c.sessions),
    }


@router.get("/notifications", response_model=list[NotificationOut], tags=["notifications"])
def drain_notifications(session: SessionContext = Depends(get_current_session)):
    """Retourne puis vide les notifications en attente de la session."""
    return [
        NotificationOut(
            level=n.level, code=n.code, message=n.message, created_at=n.created_at
        )
        for n in session.notifier.drain()
    ]
