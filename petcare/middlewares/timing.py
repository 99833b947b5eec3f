"""Middleware Starlette de mesure et de journalisation des requêtes.

Ajoute l'en-tête `X-Process-Time-ms` et émet un événement `request_completed` (méthode, chemin,
statut, durée). Les requêtes plus lentes que `slow_ms` sont journalisées en warning.
"""

import time
from collections.abc import Callable

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

log = structlog.get_logger(__name__)


class TimingMiddleware(BaseHTTPMiddleware):
    """Middleware pour mesurer et journaliser le temps de traitement des requêtes."""

    def __init__(
        self,
        app: ASGIApp,
        header_name: str = "X-Process-Time-ms",
        slow_ms: int = 1000,
    ) -> None:
        super().__init__(app)
        self.header_name = header_name
        self.slow_ms = slow_ms

    async def dispatch(self, request, call_next: Callable):
        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = int((time.perf_counter() - start) * 1000)
        response.headers[self.header_name] = str(duration_ms)
        emit = log.warning if duration_ms >= self.slow_ms else log.info
        emit(
            "request_completed",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            duration_ms=duration_ms,
        )
        return response
