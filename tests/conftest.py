"""Pytest configuration and fixtures shared across all test modules.

Environment variables are set before any ``carzo`` import so the global
settings object is built for the testing environment.
"""

import os

# CRITICAL: Set these before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ.setdefault("APP_RATE_LIMIT_ENABLED", "true")
os.environ.setdefault("APP_RATE_LIMIT_BACKEND", "memory")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.pop("APP_INVENTORY_PATH", None)

from typing import Any, Callable

import pytest

from carzo.adapters.inventory.in_memory import InMemoryVehicleRepository
from carzo.schemas.vehicle import Vehicle
from carzo.services.search_service import SearchService

# Downtown Chicago; inventory coordinates below are placed around it
USER_LAT = 41.8781
USER_LON = -87.6298


def _vehicle(vin: str, dealer_id: str, **overrides: Any) -> Vehicle:
    base: dict[str, Any] = {
        "vin": vin,
        "dealer_id": dealer_id,
        "dealer_name": f"{dealer_id} Motors",
        "make": "Toyota",
        "model": "Camry",
        "year": 2020,
        "price": 20000.0,
        "miles": 30000,
        "condition": "Used",
        "body_style": "Sedan",
        "latitude": USER_LAT,
        "longitude": USER_LON,
    }
    base.update(overrides)
    return Vehicle(**base)


@pytest.fixture
def make_vehicle() -> Callable[..., Vehicle]:
    """Factory for Vehicle records with sensible defaults."""
    return _vehicle


@pytest.fixture
def inventory() -> list[Vehicle]:
    """Twelve vehicles: dealer A dominates, B and C have a few, one far away."""
    return [
        _vehicle("VIN-A1", "A", year=2023, price=31000.0, miles=5000, latitude=41.88, longitude=-87.63),
        _vehicle("VIN-A2", "A", year=2022, price=28000.0, miles=12000, latitude=41.88, longitude=-87.63),
        _vehicle("VIN-A3", "A", year=2021, price=24000.0, miles=22000, latitude=41.88, longitude=-87.63),
        _vehicle("VIN-A4", "A", year=2020, price=21000.0, miles=41000, latitude=41.88, longitude=-87.63),
        _vehicle("VIN-A5", "A", year=2019, price=18000.0, miles=None, latitude=41.88, longitude=-87.63),
        _vehicle("VIN-B1", "B", make="Ford", model="F-150", body_style="Truck", year=2023,
                 price=45000.0, miles=3000, latitude=41.95, longitude=-87.70),
        _vehicle("VIN-B2", "B", make="Ford", model="Escape", body_style="SUV", year=2018,
                 price=15000.0, miles=70000, latitude=41.95, longitude=-87.70),
        _vehicle("VIN-C1", "C", make="Honda", model="Civic", year=2021, price=19000.0,
                 miles=25000, condition="Certified", latitude=42.05, longitude=-87.80),
        _vehicle("VIN-C2", "C", make="Honda", model="Accord", year=2017, price=14000.0,
                 miles=90000, latitude=42.05, longitude=-87.80),
        _vehicle("VIN-D1", "D", year=2024, price=33000.0, miles=10, condition="New",
                 latitude=42.30, longitude=-88.00),
        # ~700 miles away (New York) - outside the 100 mile radius
        _vehicle("VIN-FAR", "E", year=2024, price=30000.0, latitude=40.7128, longitude=-74.0060),
        _vehicle("VIN-OFF", "A", year=2024, is_active=False),
    ]


@pytest.fixture
def repository(inventory: list[Vehicle]) -> InMemoryVehicleRepository:
    return InMemoryVehicleRepository(inventory, radius_miles=100.0)


@pytest.fixture
def search_service(repository: InMemoryVehicleRepository) -> SearchService:
    return SearchService(repository, results_per_page=4, max_search_results=5000)
