"""OpenAPI customization.

Adds tag descriptions and documents the ``429 Too Many Requests`` response
and ``X-RateLimit-*`` headers on every rate limited operation. Rate limited
paths are listed explicitly since FastAPI cannot see which dependencies
enforce quotas.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable

from fastapi import FastAPI

TAGS_METADATA = [
    {"name": "Search", "description": "Vehicle search, filter options and dealer statistics."},
    {"name": "Vehicles", "description": "Vehicle detail helpers."},
    {"name": "Health", "description": "Liveness checks."},
]

RATE_LIMITED_PATH_SUFFIXES = (
    "/search-vehicles",
    "/filter-options",
    "/dealer-stats",
    "/related",
)

_RATE_LIMIT_HEADERS = {
    "X-RateLimit-Limit": {
        "description": "Quota of the reported policy for the current window.",
        "schema": {"type": "integer"},
    },
    "X-RateLimit-Remaining": {
        "description": "Requests left in the current window.",
        "schema": {"type": "integer"},
    },
    "X-RateLimit-Reset": {
        "description": "ISO-8601 time when the window resets.",
        "schema": {"type": "string", "format": "date-time"},
    },
}


def _is_rate_limited(path: str, suffixes: Iterable[str]) -> bool:
    return any(path.endswith(suffix) for suffix in suffixes)


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation with tags and rate limit docs."""

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        schema = original_openapi()

        tags = schema.setdefault("tags", [])
        existing = {t.get("name") for t in tags}
        tags.extend(t for t in TAGS_METADATA if t["name"] not in existing)

        for path, methods in schema.get("paths", {}).items():
            if not _is_rate_limited(path, RATE_LIMITED_PATH_SUFFIXES):
                continue
            for operation in methods.values():
                if not isinstance(operation, dict):
                    continue
                responses = operation.setdefault("responses", {})
                responses.setdefault(
                    "429",
                    {
                        "description": "Rate limit exceeded",
                        "headers": {**_RATE_LIMIT_HEADERS, "Retry-After": {"schema": {"type": "integer"}}},
                    },
                )
                ok = responses.get("200")
                if isinstance(ok, dict):
                    ok.setdefault("headers", dict(_RATE_LIMIT_HEADERS))

        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
