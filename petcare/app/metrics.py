"""
Métriques Prometheus pour l'application.

Ce module définit les métriques HTTP et métier (réductions, abonnements, stockage) ainsi que
l'endpoint `/metrics` et le middleware de mesure des requêtes.
"""

import time

from fastapi import APIRouter, Request
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

metrics_router = APIRouter()

REQUEST_COUNT = Counter(
    "http_requests_total", "Total HTTP requests", ["method", "route", "status"]
)
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds", "Latency of HTTP requests", ["route"]
)

# Business metrics
DISCOUNT_CLAIMS = Counter(
    "discount_claims_total",
    "Discount claim attempts by outcome",
    ["outcome"],
)
DISCOUNT_REDEMPTIONS = Counter(
    "discount_redemptions_total",
    "Claims marked as used by outcome",
    ["outcome"],
)
PREMIUM_ACTIVATIONS = Counter(
    "premium_activations_total",
    "Premium subscription activations by outcome",
    ["outcome"],
)
CATALOG_DISCOUNTS = Gauge(
    "catalog_discounts",
    "Number of discounts in the last loaded catalog",
)
STORE_ERRORS = Counter(
    "store_errors_total",
    "Errors raised by the document or blob store",
    ["collection", "op"],
)
ACTIVE_SESSIONS = Gauge(
    "active_sessions",
    "Sessions currently open",
)


def normalize_route(request: Request) -> str:
    """Retourne le gabarit de route (évite une cardinalité par identifiant)."""
    route = request.scope.get("route")
    return getattr(route, "path", None) or "unknown"


@metrics_router.get("/metrics")
def metrics():
    """
    Expose les métriques Prometheus au format texte.

    Returns:
        Response: Réponse HTTP contenant les métriques au format Prometheus.
    """
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


class PrometheusMiddleware(BaseHTTPMiddleware):
    """
    Middleware Prometheus pour mesurer les métriques HTTP.

    Collecte les métriques de comptage des requêtes et de latence par gabarit de route.
    """

    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        response: Response = await call_next(request)
        route = normalize_route(request)
        REQUEST_COUNT.labels(request.method, route, str(response.status_code)).inc()
        REQUEST_LATENCY.labels(route).observe(time.perf_counter() - start)
        return response
