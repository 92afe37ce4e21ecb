"""Pydantic schemas for search, filter options and dealer statistics."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field, model_validator

from carzo.schemas.vehicle import VehicleWithDistance


class UserLocation(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)


class SearchFilters(BaseModel):
    """Inventory filters shared by search, filter options and dealer stats."""

    make: str | None = None
    model: str | None = None
    condition: str | None = None
    body_style: str | None = None
    min_price: float | None = Field(default=None, ge=0)
    max_price: float | None = Field(default=None, ge=0)
    min_year: int | None = None
    max_year: int | None = None
    user_lat: float | None = Field(default=None, ge=-90, le=90)
    user_lon: float | None = Field(default=None, ge=-180, le=180)

    @model_validator(mode="after")
    def _location_is_complete(self) -> "SearchFilters":
        if (self.user_lat is None) != (self.user_lon is None):
            raise ValueError("user_lat and user_lon must be provided together")
        return self

    @property
    def location(self) -> UserLocation | None:
        if self.user_lat is None or self.user_lon is None:
            return None
        return UserLocation(lat=self.user_lat, lon=self.user_lon)


class SearchRequest(SearchFilters):
    """Body of ``POST /v1/search-vehicles``."""

    sort_by: str | None = Field(
        default=None,
        description=(
            "relevance (default), distance, year_desc, year_asc, price_asc, "
            "price_desc, mileage_asc or mileage_desc."
        ),
    )
    page: int = Field(default=1, description="1-based page number; values below 1 are treated as 1.")


class SearchResponse(BaseModel):
    vehicles: List[VehicleWithDistance] = Field(default_factory=list)
    total: int = Field(..., description="Number of vehicles matching the filters.")
    page: int
    total_pages: int
    user_location: UserLocation | None = None
    diversified: bool = Field(..., description="Whether dealer diversification was applied.")
    dealer_diversity: float = Field(
        ..., description="Percentage of distinct dealers on this page (0-100)."
    )


class FilterOptionsResponse(BaseModel):
    makes: List[str] = Field(default_factory=list)
    body_styles: List[str] = Field(default_factory=list)
    conditions: List[str] = Field(default_factory=list)
    years: List[int] = Field(default_factory=list, description="Newest first.")


class DealerCountResponse(BaseModel):
    dealer_id: str
    dealer_name: str | None = None
    count: int


class DealerStatsResponse(BaseModel):
    total_dealers: int
    vehicles_per_dealer: dict[str, int] = Field(default_factory=dict)
    top_dealers: List[DealerCountResponse] = Field(default_factory=list)


class RelatedVehiclesResponse(BaseModel):
    vin: str
    vehicles: List[VehicleWithDistance] = Field(default_factory=list)
