"""In-memory vehicle repository, optionally loaded from a JSON snapshot."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Iterable

from pydantic import ValidationError

from carzo.adapters.inventory.base import AbstractVehicleRepository
from carzo.core.errors import InventoryAppError
from carzo.schemas.search import SearchFilters
from carzo.schemas.vehicle import Vehicle, VehicleWithDistance
from carzo.utils.geo import get_distance_label, haversine_miles

logger = logging.getLogger(__name__)


def _matches(vehicle: Vehicle, filters: SearchFilters) -> bool:
    if not vehicle.is_active:
        return False
    if filters.make and vehicle.make != filters.make:
        return False
    if filters.model and vehicle.model != filters.model:
        return False
    if filters.condition and vehicle.condition != filters.condition:
        return False
    if filters.body_style and vehicle.body_style != filters.body_style:
        return False
    if filters.min_price is not None and vehicle.price < filters.min_price:
        return False
    if filters.max_price is not None and vehicle.price > filters.max_price:
        return False
    if filters.min_year is not None and vehicle.year < filters.min_year:
        return False
    if filters.max_year is not None and vehicle.year > filters.max_year:
        return False
    return True


class InMemoryVehicleRepository(AbstractVehicleRepository):
    """Repository over a list of vehicles held in memory.

    Location searches use haversine distance and a hard radius cap; vehicles
    without coordinates never match a location search. Sparse areas return
    nothing rather than falling back to distant inventory.
    """

    def __init__(self, vehicles: Iterable[Vehicle] = (), *, radius_miles: float = 100.0) -> None:
        if radius_miles <= 0:
            raise ValueError("radius_miles must be > 0")
        self._vehicles: list[Vehicle] = list(vehicles)
        self._by_vin: dict[str, Vehicle] = {v.vin: v for v in self._vehicles}
        self.radius_miles = radius_miles

    @classmethod
    def from_json_file(cls, path: str | Path, *, radius_miles: float = 100.0) -> "InMemoryVehicleRepository":
        """Load vehicles from a JSON array of objects.

        Raises:
            InventoryAppError: If the file cannot be read or holds invalid rows.
        """
        file_path = Path(path)
        try:
            rows = json.loads(file_path.read_text(encoding="utf-8"))
            vehicles = [Vehicle.model_validate(row) for row in rows]
        except OSError as exc:
            raise InventoryAppError(
                code="inventory_unreadable",
                message=f"Cannot read inventory file: {file_path.name}",
            ) from exc
        except (ValueError, TypeError, ValidationError) as exc:
            raise InventoryAppError(
                code="inventory_invalid",
                message=f"Inventory file is not a valid vehicle list: {file_path.name}",
            ) from exc

        logger.info(
            "inventory.loaded",
            extra={"file_name": file_path.name, "vehicle_count": len(vehicles)},
        )
        return cls(vehicles, radius_miles=radius_miles)

    def __len__(self) -> int:
        return len(self._vehicles)

    def find(self, filters: SearchFilters, *, limit: int | None = None) -> list[VehicleWithDistance]:
        matches = [v for v in self._vehicles if _matches(v, filters)]
        location = filters.location

        if location is None:
            results = [VehicleWithDistance(**v.model_dump()) for v in matches]
            results.sort(key=lambda v: v.year, reverse=True)
        else:
            results = []
            for vehicle in matches:
                if vehicle.latitude is None or vehicle.longitude is None:
                    continue
                distance = haversine_miles(location.lat, location.lon, vehicle.latitude, vehicle.longitude)
                if distance <= self.radius_miles:
                    results.append(
                        VehicleWithDistance(
                            **vehicle.model_dump(),
                            distance_miles=round(distance, 1),
                            distance_label=get_distance_label(round(distance)),
                        )
                    )
            results.sort(key=lambda v: v.distance_miles)

        return results if limit is None else results[:limit]

    def get_by_vin(self, vin: str) -> Vehicle | None:
        vehicle = self._by_vin.get(vin)
        if vehicle is None or not vehicle.is_active:
            return None
        return vehicle
