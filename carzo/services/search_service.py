"""Vehicle search orchestration.

Pipeline for a results page:
1. Fetch filtered candidates from the repository (radius-capped and
   distance-annotated when the user shared a location).
2. Sort by the requested sort mode.
3. Diversify the FULL sorted set by dealer when the sort mode allows it.
4. Slice the requested page.

Diversifying before slicing keeps pagination stable: every page is a window
over the same diversified ordering, so a vehicle never shows up on two pages.
"""

from __future__ import annotations

import logging
import math
from typing import Sequence

from carzo.adapters.inventory.base import AbstractVehicleRepository
from carzo.core.errors import NotFoundAppError
from carzo.schemas.search import (
    DealerCountResponse,
    DealerStatsResponse,
    FilterOptionsResponse,
    RelatedVehiclesResponse,
    SearchFilters,
    SearchRequest,
    SearchResponse,
)
from carzo.schemas.vehicle import VehicleWithDistance
from carzo.services.dealer_diversity import (
    calculate_dealer_diversity,
    diversify_by_dealer,
    get_dealer_stats,
    prioritize_different_dealers,
)

logger = logging.getLogger(__name__)

# Sorts where the user is browsing; price and mileage sorts express a strict
# ranking intent and are never re-ordered.
DIVERSIFIED_SORTS = frozenset({"relevance", "distance", "year_desc", "year_asc"})


def should_apply_diversification(sort_by: str | None = None) -> bool:
    """Return True when dealer diversification may re-order results.

    Examples:
        >>> should_apply_diversification(None)
        True
        >>> should_apply_diversification("price_asc")
        False
    """
    if not sort_by:
        return True
    return sort_by in DIVERSIFIED_SORTS


def _distance_or_inf(vehicle: VehicleWithDistance) -> float:
    return math.inf if vehicle.distance_miles is None else vehicle.distance_miles


def apply_sorting(vehicles: Sequence[VehicleWithDistance], sort_by: str | None) -> list[VehicleWithDistance]:
    """Return ``vehicles`` sorted for ``sort_by`` (stable; input untouched).

    Vehicles with unknown mileage sort last for ``mileage_asc`` and count as
    zero miles for ``mileage_desc``; unknown distances sort last. Relevance
    (and any unrecognized mode) means nearest first when distances are known,
    otherwise newest first.
    """
    items = list(vehicles)
    if sort_by == "price_asc":
        items.sort(key=lambda v: v.price)
    elif sort_by == "price_desc":
        items.sort(key=lambda v: v.price, reverse=True)
    elif sort_by == "year_asc":
        items.sort(key=lambda v: v.year)
    elif sort_by == "year_desc":
        items.sort(key=lambda v: v.year, reverse=True)
    elif sort_by == "mileage_asc":
        items.sort(key=lambda v: math.inf if v.miles is None else v.miles)
    elif sort_by == "mileage_desc":
        items.sort(key=lambda v: v.miles or 0, reverse=True)
    elif sort_by == "distance":
        items.sort(key=_distance_or_inf)
    elif items and items[0].distance_miles is not None:
        items.sort(key=_distance_or_inf)
    else:
        items.sort(key=lambda v: v.year, reverse=True)
    return items


class SearchService:
    """Search, filter options and inventory statistics over a repository."""

    def __init__(
        self,
        repository: AbstractVehicleRepository,
        *,
        results_per_page: int = 24,
        max_search_results: int = 5000,
    ) -> None:
        if results_per_page < 1:
            raise ValueError("results_per_page must be >= 1")
        if max_search_results < 1:
            raise ValueError("max_search_results must be >= 1")
        self.repository = repository
        self.results_per_page = results_per_page
        self.max_search_results = max_search_results

    def _candidates(self, filters: SearchFilters) -> list[VehicleWithDistance]:
        # Location searches are bounded by the radius; others by the row cap
        limit = None if filters.location else self.max_search_results
        return self.repository.find(filters, limit=limit)

    def search(self, request: SearchRequest) -> SearchResponse:
        """Produce one page of ranked, optionally diversified results."""
        page = max(1, request.page)
        candidates = apply_sorting(self._candidates(request), request.sort_by)
        total = len(candidates)

        diversified = should_apply_diversification(request.sort_by)
        ordered = diversify_by_dealer(candidates, total) if diversified else candidates

        start = (page - 1) * self.results_per_page
        vehicles = ordered[start:start + self.results_per_page]

        logger.info(
            "search.completed",
            extra={
                "sort_by": request.sort_by or "relevance",
                "has_location": request.location is not None,
                "total": total,
                "page": page,
                "returned": len(vehicles),
                "diversified": diversified,
            },
        )

        return SearchResponse(
            vehicles=vehicles,
            total=total,
            page=page,
            total_pages=math.ceil(total / self.results_per_page),
            user_location=request.location,
            diversified=diversified,
            dealer_diversity=round(calculate_dealer_diversity(vehicles), 2),
        )

    def filter_options(self, filters: SearchFilters) -> FilterOptionsResponse:
        """Distinct filter values available under the current filters."""
        candidates = self._candidates(filters)
        return FilterOptionsResponse(
            makes=sorted({v.make for v in candidates if v.make}),
            body_styles=sorted({v.body_style for v in candidates if v.body_style}),
            conditions=sorted({v.condition for v in candidates if v.condition}),
            years=sorted({v.year for v in candidates if v.year}, reverse=True),
        )

    def related_vehicles(self, vin: str, limit: int) -> RelatedVehiclesResponse:
        """Vehicles to show next to ``vin``, favouring other dealers.

        Same-make listings come first; other inventory fills up when fewer
        than ``limit`` of them belong to other dealers.

        Raises:
            NotFoundAppError: If no active vehicle has this VIN.
        """
        vehicle = self.repository.get_by_vin(vin)
        if vehicle is None:
            raise NotFoundAppError(
                code="vehicle_not_found",
                message="Vehicle not found or no longer available",
                details={"vin": vin},
            )

        related = [v for v in self._candidates(SearchFilters(make=vehicle.make)) if v.vin != vin]
        other_dealers = [v for v in related if v.dealer_id != vehicle.dealer_id]
        if len(other_dealers) < limit:
            seen = {v.vin for v in related} | {vin}
            related.extend(v for v in self._candidates(SearchFilters()) if v.vin not in seen)

        return RelatedVehiclesResponse(
            vin=vin,
            vehicles=prioritize_different_dealers(vehicle, related, limit),
        )

    def dealer_stats(self, filters: SearchFilters) -> DealerStatsResponse:
        """Dealer distribution for the inventory matching ``filters``."""
        stats = get_dealer_stats(self._candidates(filters))
        return DealerStatsResponse(
            total_dealers=stats.total_dealers,
            vehicles_per_dealer=stats.vehicles_per_dealer,
            top_dealers=[
                DealerCountResponse(dealer_id=d.dealer_id, dealer_name=d.dealer_name, count=d.count)
                for d in stats.top_dealers
            ],
        )
