"""Service wiring for route handlers.

Routes receive the search service through ``Depends(get_search_service)`` so
tests can swap it via ``app.dependency_overrides``.
"""

from __future__ import annotations

import logging

from carzo.adapters.inventory.base import AbstractVehicleRepository
from carzo.adapters.inventory.in_memory import InMemoryVehicleRepository
from carzo.core.config import settings
from carzo.services.search_service import SearchService

logger = logging.getLogger(__name__)

_service: SearchService | None = None
_service_config: tuple | None = None


def build_repository() -> AbstractVehicleRepository:
    """Create the inventory repository from settings.

    Raises:
        InventoryAppError: If ``APP_INVENTORY_PATH`` points to an unreadable
            or invalid file.
    """
    if settings.app.inventory_path:
        return InMemoryVehicleRepository.from_json_file(
            settings.app.inventory_path,
            radius_miles=settings.app.search_radius_miles,
        )

    logger.warning("inventory.empty", extra={"reason": "inventory_path_not_set"})
    return InMemoryVehicleRepository(radius_miles=settings.app.search_radius_miles)


def get_search_service() -> SearchService:
    """Return the process-wide search service, rebuilt if settings change."""

    global _service, _service_config

    config = (
        settings.app.inventory_path,
        settings.app.search_radius_miles,
        settings.app.results_per_page,
        settings.app.max_search_results,
    )
    if _service is None or _service_config != config:
        _service = SearchService(
            build_repository(),
            results_per_page=settings.app.results_per_page,
            max_search_results=settings.app.max_search_results,
        )
        _service_config = config
    return _service
