"""Rate limiting dependency for FastAPI routes.

This module wires the rate limiter service into the HTTP layer:
- ``get_counter_store()`` builds the process-wide counter store from settings.
- ``rate_limited(*policies)`` returns a dependency that checks all policies,
  publishes ``X-RateLimit-*`` headers and raises 429 on denial.

Routes list their policies from most user-facing to most defensive, e.g. the
per-minute search quota before the burst guard, because the reported headers
describe the first policy.
"""

from __future__ import annotations

import hashlib
import logging
import math
from datetime import datetime, timezone
from typing import Awaitable, Callable

from fastapi import HTTPException, Request, Response, status

from carzo.adapters.rate_limit.base import AbstractCounterStore
from carzo.adapters.rate_limit.in_memory import InMemoryCounterStore
from carzo.adapters.rate_limit.supabase import SupabaseCounterStore
from carzo.core.config import settings
from carzo.core.errors import ConfigurationAppError
from carzo.services.rate_limiter import (
    RateLimitPolicy,
    RateLimitResult,
    check_multiple_rate_limits,
    get_client_identifier,
)
from carzo.utils.ip import anonymize_ip

logger = logging.getLogger(__name__)


_STATE_HEADERS_ATTR = "rate_limit_headers"

_store: AbstractCounterStore | None = None
_store_config: tuple[str, str | None, str | None, float] | None = None


def get_counter_store() -> AbstractCounterStore:
    """Return the process-wide counter store.

    The instance is cached in-module so in-memory counters survive across
    requests; it is rebuilt if the relevant settings change (mostly in tests).

    Raises:
        ConfigurationAppError: If the configured backend is unknown or the
            Supabase backend lacks credentials.
    """

    global _store, _store_config

    backend = settings.app.rate_limit_backend.lower()
    config = (
        backend,
        settings.supabase.url,
        settings.supabase.service_key,
        settings.supabase.timeout_seconds,
    )
    if _store is not None and _store_config == config:
        return _store

    if backend == "memory":
        _store = InMemoryCounterStore()
    elif backend == "supabase":
        if not settings.supabase.url or not settings.supabase.service_key:
            raise ConfigurationAppError(
                code="counter_store_not_configured",
                message="Supabase rate limit backend requires SUPABASE_URL and SUPABASE_SERVICE_KEY",
                details={"hint": "Set both variables or use APP_RATE_LIMIT_BACKEND=memory"},
            )
        _store = SupabaseCounterStore(
            settings.supabase.url,
            settings.supabase.service_key,
            timeout_seconds=settings.supabase.timeout_seconds,
        )
    else:
        raise ConfigurationAppError(
            code="counter_store_unknown_backend",
            message=f"Unknown rate limit backend: '{backend}'. Supported backends: memory, supabase",
        )

    _store_config = config
    logger.info("rate_limit.store_initialized", extra={"backend": backend})
    return _store


def _hash_identifier(identifier: str) -> str:
    """Hash the client identifier for logging without exposing it."""
    return hashlib.sha256(identifier.encode()).hexdigest()[:16]


def _identifier_kind(identifier: str) -> str:
    if identifier.startswith("user:"):
        return "user"
    if identifier.startswith("anon:"):
        return "anon"
    return "ip"


def build_rate_limit_headers(result: RateLimitResult) -> dict[str, str]:
    """Headers describing the reported policy; reset is ISO-8601 UTC."""
    reset_iso = datetime.fromtimestamp(result.reset / 1000, tz=timezone.utc).isoformat()
    return {
        "X-RateLimit-Limit": str(result.limit),
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset": reset_iso.replace("+00:00", "Z"),
    }


def published_rate_limit_headers(request: Request) -> dict[str, str]:
    """Headers the rate limit dependency recorded for ``request``, if any.

    Exception handlers build fresh responses, so they copy these back on.
    """
    headers = getattr(request.state, _STATE_HEADERS_ATTR, None)
    return dict(headers) if isinstance(headers, dict) else {}


def _retry_after_seconds(result: RateLimitResult, now_ms: int) -> int:
    return max(0, math.ceil((result.reset - now_ms) / 1000))


def rate_limited(*policies: RateLimitPolicy) -> Callable[[Request, Response], Awaitable[RateLimitResult | None]]:
    """Build a FastAPI dependency enforcing ``policies`` for the caller.

    Usage:
        @router.post(
            "/search-vehicles",
            dependencies=[Depends(rate_limited(policy("SEARCH_VEHICLES", "search_vehicles")))],
        )

    Raises (from the dependency):
        HTTPException: 429 Too Many Requests when any policy denies the call.
    """

    async def enforce_rate_limit(request: Request, response: Response) -> RateLimitResult | None:
        if not settings.app.rate_limit_enabled:
            return None

        identifier = get_client_identifier(request, cookie_name=settings.app.user_id_cookie)
        kind = _identifier_kind(identifier)
        log_fields = {
            "identifier_kind": kind,
            "identifier_hash": _hash_identifier(identifier),
            "ip_anon": anonymize_ip(identifier) if kind == "ip" else None,
            "policies": [p.endpoint for p in policies],
        }

        try:
            store = get_counter_store()
        except ConfigurationAppError as exc:
            # unusable store config fails open like an unreachable store
            logger.error(
                "rate_limit.fail_open",
                extra={**log_fields, "reason": "store_not_configured", "error_code": exc.code},
            )
            return None

        result = await check_multiple_rate_limits(store, identifier, policies)

        headers = build_rate_limit_headers(result) if settings.app.rate_limit_include_headers else {}

        if result.allowed:
            logger.info(
                "rate_limit.allowed",
                extra={**log_fields, "limit": result.limit, "remaining": result.remaining},
            )
            response.headers.update(headers)
            setattr(request.state, _STATE_HEADERS_ATTR, headers)
            return result

        now_ms = int(datetime.now(timezone.utc).timestamp() * 1000)
        retry_after = _retry_after_seconds(result, now_ms)
        logger.warning(
            "rate_limit.exceeded",
            extra={
                **log_fields,
                "failed_check": result.failed_check,
                "limit": result.limit,
                "remaining": result.remaining,
                "retry_after_s": retry_after,
            },
        )

        if settings.app.rate_limit_include_headers:
            headers["Retry-After"] = str(retry_after)

        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={
                "error": "Rate limit exceeded",
                "message": "Too many requests. Please wait a moment before trying again.",
                "limit": result.limit,
                "remaining": result.remaining,
                "reset": result.reset,
                "failed_check": result.failed_check,
            },
            headers=headers or None,
        )

    return enforce_rate_limit
