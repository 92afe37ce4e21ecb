"""Vehicle inventory adapters."""

from carzo.adapters.inventory.base import AbstractVehicleRepository
from carzo.adapters.inventory.in_memory import InMemoryVehicleRepository

__all__ = [
    "AbstractVehicleRepository",
    "InMemoryVehicleRepository",
]
