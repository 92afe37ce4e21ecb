from fastapi import APIRouter, Depends, Query

from carzo.api.dependencies import get_search_service
from carzo.core.config import settings
from carzo.core.rate_limit import rate_limited
from carzo.schemas.search import RelatedVehiclesResponse
from carzo.services.rate_limiter import policy
from carzo.services.search_service import SearchService

router = APIRouter(tags=["Vehicles"])


@router.get(
    "/vehicles/{vin}/related",
    response_model=RelatedVehiclesResponse,
    dependencies=[Depends(rate_limited(policy("SESSION", "related_vehicles")))],
)
def related_vehicles(
    vin: str,
    limit: int | None = Query(default=None, ge=1, le=50),
    service: SearchService = Depends(get_search_service),
) -> RelatedVehiclesResponse:
    """Related listings for a vehicle detail page, favouring other dealers.

    Raises:
        NotFoundAppError: 404 when the VIN is unknown or no longer active.
    """
    return service.related_vehicles(vin, limit or settings.app.related_vehicles_limit)
