"""Application factory for the Carzo search API.

Centralizes app construction (metadata, middleware, handlers, routers) so
tests can build fresh instances.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI

from carzo.api.routes import health_router, search_router, vehicles_router
from carzo.core.config import settings
from carzo.core.exception_handlers import setup_exception_handlers
from carzo.core.logging import configure_logging
from carzo.core.middleware import request_id_middleware
from carzo.core.openapi import apply_openapi_customizations
from carzo.core.rate_limit import get_counter_store

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.

    Raises:
        ConfigurationAppError: If rate limiting is enabled with an invalid
            counter store configuration.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Carzo Search API",
        description=(
            "Vehicle marketplace search: filtered, distance-aware results with "
            "dealer diversification, filter options, related vehicles and "
            "dealer statistics. Public endpoints are rate limited per client "
            "and fail open when the counter store is unavailable."
        ),
        version="0.1.0",
        debug=settings.app.debug,
    )

    app.middleware("http")(request_id_middleware)

    setup_exception_handlers(app)

    app.include_router(search_router, prefix="/v1")
    app.include_router(vehicles_router, prefix="/v1")
    app.include_router(health_router)

    apply_openapi_customizations(app)

    # Fail fast on a misconfigured counter store instead of on first request
    if settings.app.rate_limit_enabled:
        get_counter_store()

    logger.info(
        "app.created",
        extra={
            "environment": settings.app_env,
            "rate_limit_enabled": settings.app.rate_limit_enabled,
            "rate_limit_backend": settings.app.rate_limit_backend,
        },
    )
    return app
