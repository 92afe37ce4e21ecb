from __future__ import annotations

from carzo.api.routes.health import router as health_router
from carzo.api.routes.search import router as search_router
from carzo.api.routes.vehicles import router as vehicles_router

__all__ = ["health_router", "search_router", "vehicles_router"]
