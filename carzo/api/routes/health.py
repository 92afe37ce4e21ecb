from __future__ import annotations

from fastapi import APIRouter

from carzo.core.config import settings

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> dict:
    """Liveness probe for load balancers; never rate limited."""

    return {"status": "ok", "environment": settings.app_env}
