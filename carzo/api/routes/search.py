from fastapi import APIRouter, Depends

from carzo.api.dependencies import get_search_service
from carzo.core.rate_limit import rate_limited
from carzo.schemas.search import (
    DealerStatsResponse,
    FilterOptionsResponse,
    SearchFilters,
    SearchRequest,
    SearchResponse,
)
from carzo.services.rate_limiter import policy
from carzo.services.search_service import SearchService

router = APIRouter(tags=["Search"])


@router.post(
    "/search-vehicles",
    response_model=SearchResponse,
    dependencies=[
        Depends(
            rate_limited(
                policy("SEARCH_VEHICLES", "search_vehicles"),
                policy("BURST", "search_vehicles_burst"),
            )
        )
    ],
)
def search_vehicles(
    body: SearchRequest,
    service: SearchService = Depends(get_search_service),
) -> SearchResponse:
    """Search inventory and return one page of results.

    Results are filtered (and radius-capped when ``user_lat``/``user_lon``
    are given), sorted by ``sort_by`` and, for browsing sorts, spread across
    dealers before the page is sliced.

    Rate limits: 100 requests/minute plus a 10 requests/second burst guard.
    """
    return service.search(body)


@router.post(
    "/filter-options",
    response_model=FilterOptionsResponse,
    dependencies=[
        Depends(
            rate_limited(
                policy("FILTER_OPTIONS", "filter_options"),
                policy("BURST", "filter_options_burst"),
            )
        )
    ],
)
def filter_options(
    body: SearchFilters,
    service: SearchService = Depends(get_search_service),
) -> FilterOptionsResponse:
    """Distinct makes, body styles, conditions and years for the current filters.

    Rate limits: 50 requests/minute plus a 10 requests/second burst guard.
    """
    return service.filter_options(body)


@router.post(
    "/dealer-stats",
    response_model=DealerStatsResponse,
    dependencies=[
        Depends(
            rate_limited(
                policy("SESSION", "dealer_stats"),
                policy("BURST", "dealer_stats_burst"),
            )
        )
    ],
)
def dealer_stats(
    body: SearchFilters,
    service: SearchService = Depends(get_search_service),
) -> DealerStatsResponse:
    """Vehicle counts per dealer for the inventory matching the filters."""
    return service.dealer_stats(body)
