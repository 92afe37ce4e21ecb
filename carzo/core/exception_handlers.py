"""Error envelope for every failure the API reports.

Clients always receive ``{"error": {code, message, request_id, details?}}``:
- AppError subclasses keep their code and map to 400/404/500.
- Request body/query validation failures become ``invalid_request`` (422).
- Anything else is an opaque ``internal_server_error`` (500).

Requests already counted by the rate limit dependency keep their
``X-RateLimit-*`` headers on these responses.

Rate limit denials are the exception: they are raised as ``HTTPException``
from the rate limit dependency and keep FastAPI's ``detail`` payload.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from carzo.core.errors import (
    AppError,
    ConfigurationAppError,
    InventoryAppError,
    NotFoundAppError,
    ValidationAppError,
)
from carzo.core.logging import get_request_id
from carzo.core.rate_limit import published_rate_limit_headers

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: tuple[tuple[type[AppError], int], ...] = (
    (ValidationAppError, 400),
    (NotFoundAppError, 404),
    (InventoryAppError, 500),
    (ConfigurationAppError, 500),
)


def status_for_error(exc: AppError) -> int:
    """Resolve the HTTP status code for a domain error (defaults to 500)."""

    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 500


def _envelope(request: Request, status_code: int, code: str, message: str, details: Any = None) -> JSONResponse:
    body: dict[str, Any] = {"code": code, "message": message, "request_id": get_request_id()}
    if details:
        body["details"] = details
    return JSONResponse(
        status_code=status_code,
        content={"error": body},
        headers=published_rate_limit_headers(request) or None,
    )


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render a domain error with its own code, message and details."""
    status_code = status_for_error(exc)

    log = logger.warning if status_code < 500 else logger.error
    log(
        "error.app",
        extra={
            "error_code": exc.code,
            "error_type": type(exc).__name__,
            "status_code": status_code,
            "path": request.url.path,
        },
    )
    return _envelope(request, status_code, exc.code, exc.message, exc.details)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed search bodies (e.g., a latitude without a longitude)."""
    errors = [
        {"field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"), "message": err.get("msg")}
        for err in exc.errors()
    ]
    logger.info("error.invalid_request", extra={"path": request.url.path, "error_count": len(errors)})
    return _envelope(request, 422, "invalid_request", "Request validation failed", {"errors": errors})


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Safety net for unexpected errors; the client never sees internals."""
    logger.error(
        "error.unhandled",
        exc_info=exc,
        extra={
            "error_type": type(exc).__name__,
            "path": request.url.path,
            "method": request.method,
        },
    )
    return _envelope(request, 500, "internal_server_error", "An unexpected error occurred. Please try again later.")


def setup_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, general_exception_handler)
