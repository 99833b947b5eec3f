"""Gestion standardisée des erreurs API avec enveloppes d'erreur.

Ce module fournit une gestion centralisée des erreurs avec des enveloppes standardisées
`{code, message, trace_id}`, la traduction des erreurs métier et des erreurs du magasin distant, et
un support pour le tracing des requêtes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import structlog
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from petcare.core.http_constants import (
    HTTP_BAD_GATEWAY,
    HTTP_FORBIDDEN,
    HTTP_INTERNAL_SERVER_ERROR,
    HTTP_UNPROCESSABLE_ENTITY,
)
from petcare.domain.errors import DomainError
from petcare.domain.session import SessionContext
from petcare.infra.store.base import StoreError, StorePermissionError

log = structlog.get_logger(__name__)


@dataclass
class ErrorEnvelope:
    """Standard error envelope for API responses."""

    code: str
    message: str
    trace_id: str | None = None
    details: dict[str, Any] | None = None


class APIError(HTTPException):
    """Custom API error with standard envelope."""

    def __init__(
        self,
        status_code: int,
        code: str,
        message: str,
        trace_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(status_code=status_code, detail=message)
        self.code = code
        self.message = message
        self.trace_id = trace_id
        self.details = details


def create_error_response(
    status_code: int,
    code: str,
    message: str,
    trace_id: str | None = None,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    """Create a standardized error response."""
    envelope = ErrorEnvelope(code=code, message=message, trace_id=trace_id, details=details)
    return JSONResponse(
        status_code=status_code,
        content={
            "code": envelope.code,
            "message": envelope.message,
            "trace_id": envelope.trace_id,
            **({"details": envelope.details} if envelope.details else {}),
        },
    )


def extract_trace_id(request: Request) -> str | None:
    """Extract trace ID from request headers or request state."""
    trace_id = request.headers.get("X-Trace-ID")
    if trace_id:
        return trace_id
    return getattr(request.state, "trace_id", None)


def raise_for_failure(session: SessionContext) -> None:
    """Traduit le dernier échec notifié par la session en `APIError`."""
    err = session.notifier.last_failure
    if err is None:
        raise APIError(HTTP_INTERNAL_SERVER_ERROR, "INTERNAL_ERROR", "Operation failed")
    raise APIError(err.status_code, err.code, err.message, details=err.details)


def handle_api_error(request: Request, exc: APIError) -> JSONResponse:
    """Handle APIError exceptions with standard envelope."""
    trace_id = extract_trace_id(request) or exc.trace_id
    log.warning(
        "api_error",
        code=exc.code,
        status_code=exc.status_code,
        trace_id=trace_id,
    )
    return create_error_response(
        status_code=exc.status_code,
        code=exc.code,
        message=exc.message,
        trace_id=trace_id,
        details=exc.details,
    )


def handle_domain_error(request: Request, exc: DomainError) -> JSONResponse:
    """Handle domain errors raised by services."""
    trace_id = extract_trace_id(request)
    log.info("domain_error", code=exc.code, status_code=exc.status_code, trace_id=trace_id)
    return create_error_response(
        status_code=exc.status_code,
        code=exc.code,
        message=exc.message,
        trace_id=trace_id,
        details=exc.details,
    )


def handle_store_error(request: Request, exc: StoreError) -> JSONResponse:
    """Handle store errors that escaped the session layer."""
    trace_id = extract_trace_id(request)
    log.error(
        "store_error",
        collection=exc.collection,
        op=exc.op,
        error=str(exc),
        trace_id=trace_id,
    )
    if isinstance(exc, StorePermissionError):
        return create_error_response(
            HTTP_FORBIDDEN, "permission_denied", "Access denied by storage", trace_id
        )
    return create_error_response(
        HTTP_BAD_GATEWAY,
        "store_error",
        "The storage service is unavailable, please try again",
        trace_id,
    )


def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handle HTTP exceptions (routing included) with standard envelope."""
    trace_id = extract_trace_id(request)
    error_codes = {
        400: "BAD_REQUEST",
        401: "UNAUTHORIZED",
        403: "FORBIDDEN",
        404: "NOT_FOUND",
        405: "METHOD_NOT_ALLOWED",
        409: "CONFLICT",
        422: "VALIDATION_ERROR",
        500: "INTERNAL_ERROR",
        502: "BAD_GATEWAY",
    }
    code = error_codes.get(exc.status_code, "HTTP_ERROR")
    return create_error_response(
        status_code=exc.status_code,
        code=code,
        message=str(exc.detail),
        trace_id=trace_id,
    )


def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle payload validation errors; an invalid email gets its own code."""
    trace_id = extract_trace_id(request)
    errors = exc.errors()
    fields = [".".join(str(p) for p in e.get("loc", ())[1:]) for e in errors]
    code = "invalid_email" if any(f.endswith("email") for f in fields) else "VALIDATION_ERROR"
    return create_error_response(
        status_code=HTTP_UNPROCESSABLE_ENTITY,
        code=code,
        message="Invalid request payload",
        trace_id=trace_id,
        details={"fields": fields},
    )


def register_error_handlers(app: FastAPI) -> None:
    """Enregistre les gestionnaires d'erreurs (ordre: plus spécifique d'abord)."""
    app.add_exception_handler(APIError, handle_api_error)
    app.add_exception_handler(DomainError, handle_domain_error)
    app.add_exception_handler(StoreError, handle_store_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
