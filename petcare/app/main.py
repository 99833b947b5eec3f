"""
Application principale FastAPI.

Ce module assemble tous les composants de l'application : middlewares, gestionnaires d'erreurs,
routes et métriques.

Responsabilités du module:
- Initialiser le logging structuré
- Construire l'application FastAPI avec son titre/debug
- Ajouter les middlewares (request id, timing, métriques)
- Monter les routers (santé, auth, mascottes, premium, métriques)
"""

from __future__ import annotations

import logging

from fastapi import FastAPI

from petcare.api.errors import register_error_handlers
from petcare.api.routes_auth import router as auth_router
from petcare.api.routes_health import router as health_router
from petcare.api.routes_pets import router as pets_router
from petcare.api.routes_premium import router as premium_router
from petcare.app.metrics import PrometheusMiddleware, metrics_router
from petcare.core.container import container
from petcare.core.logging import setup_logging
from petcare.middlewares.request_id import RequestIDMiddleware
from petcare.middlewares.timing import TimingMiddleware


def create_app() -> FastAPI:
    """
    Construit et retourne l'application FastAPI prête à l'usage.

    Étapes:
    - Configure le logging structuré (structlog)
    - Lit les paramètres d'exécution
    - Ajoute les middlewares utiles au debug/traçabilité
    - Enregistre les gestionnaires d'erreurs et publie les routes
    """
    settings = container.settings
    setup_logging(
        json_logs=settings.LOG_JSON,
        level=logging.DEBUG if settings.APP_DEBUG else logging.INFO,
    )
    app = FastAPI(title=settings.APP_NAME, debug=settings.APP_DEBUG)
    app.add_middleware(PrometheusMiddleware)
    app.add_middleware(TimingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    register_error_handlers(app)
    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(pets_router)
    app.include_router(premium_router)
    app.include_router(metrics_router)
    return app


app = create_app()
