"""Vehicle repository interface.

Services query inventory through this abstraction; the storage technology
(hosted Postgres, a JSON snapshot, test fixtures) stays behind it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from carzo.schemas.search import SearchFilters
from carzo.schemas.vehicle import Vehicle, VehicleWithDistance


class AbstractVehicleRepository(ABC):
    """Interface for vehicle inventory lookups."""

    @abstractmethod
    def find(self, filters: SearchFilters, *, limit: int | None = None) -> list[VehicleWithDistance]:
        """Return active vehicles matching ``filters``.

        With a user location in ``filters``, results are restricted to the
        configured search radius, annotated with ``distance_miles`` and ordered
        nearest first. Without one they are ordered newest model year first.

        Args:
            filters: Inventory filters (and optional user location).
            limit: Optional cap on the number of rows returned.

        Raises:
            InventoryAppError: If the backing store cannot be read.
        """
        raise NotImplementedError

    @abstractmethod
    def get_by_vin(self, vin: str) -> Vehicle | None:
        """Return the active vehicle with ``vin`` or None."""
        raise NotImplementedError
