"""Pydantic schemas for vehicle inventory records."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class Vehicle(BaseModel):
    """A vehicle listing as stored in inventory.

    Only ``dealer_id`` matters to diversification; the remaining fields feed
    filtering, sorting and display.
    """

    model_config = ConfigDict(extra="ignore")

    vin: str = Field(..., description="Vehicle identification number.")
    dealer_id: str = Field(..., description="Identity of the selling dealership.")
    dealer_name: str | None = Field(default=None, description="Dealership display name.")
    dealer_city: str | None = None
    dealer_state: str | None = None
    make: str
    model: str
    trim: str | None = None
    year: int
    price: float
    miles: int | None = Field(default=None, description="Odometer reading; None when unknown.")
    condition: str | None = Field(default=None, description="e.g. 'New', 'Used', 'Certified'.")
    body_style: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    primary_image_url: str | None = None
    is_active: bool = True


class VehicleWithDistance(Vehicle):
    """Vehicle annotated with its distance from the searching user."""

    distance_miles: float | None = Field(
        default=None,
        description="Great-circle distance from the user in miles (None without a location).",
    )
    distance_label: str | None = Field(
        default=None,
        description="Display label for the distance, e.g. 'Nearby' or '12 miles away'.",
    )
