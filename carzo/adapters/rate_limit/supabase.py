"""Supabase counter store calling the ``check_rate_limit`` stored procedure.

The procedure floors the current time to the window boundary, takes an
advisory lock on (identifier, endpoint, window_start), upserts the counter and
returns a single row ``(allowed, current_count, limit_value, window_reset)``.
This adapter only speaks PostgREST's RPC protocol; atomicity lives in the
database.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

import httpx

from carzo.adapters.rate_limit.base import AbstractCounterStore, CounterResult
from carzo.core.errors import CounterStoreError

logger = logging.getLogger(__name__)

RPC_NAME = "check_rate_limit"


class SupabaseCounterStore(AbstractCounterStore):
    """Counter store backed by a Supabase/PostgREST RPC endpoint.

    If ``http_client`` is provided it is reused for every call (connection
    pooling); otherwise a short-lived client is created per call.
    """

    def __init__(
        self,
        url: str,
        service_key: str,
        *,
        timeout_seconds: float = 5.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            url: Supabase project URL (e.g., ``https://xyz.supabase.co``).
            service_key: Service role key sent as ``apikey`` and bearer token.
            timeout_seconds: Request timeout in seconds.
            http_client: Optional shared HTTP client.
        """
        self.rpc_url = f"{url.rstrip('/')}/rest/v1/rpc/{RPC_NAME}"
        self.headers = {
            "apikey": service_key,
            "Authorization": f"Bearer {service_key}",
            "Content-Type": "application/json",
        }
        self.timeout_seconds = timeout_seconds
        self._http_client = http_client

    @asynccontextmanager
    async def _client_context(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._http_client is not None:
            yield self._http_client
            return
        async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
            yield client

    async def check(
        self,
        identifier: str,
        endpoint: str,
        limit: int,
        window_seconds: int,
    ) -> CounterResult | None:
        """Invoke the RPC and convert its first row.

        Raises:
            CounterStoreError: On transport errors, non-2xx responses or
                malformed payloads.
        """
        payload = {
            "p_identifier": identifier,
            "p_endpoint": endpoint,
            "p_limit": limit,
            "p_window_seconds": window_seconds,
        }

        try:
            async with self._client_context() as client:
                resp = await client.post(self.rpc_url, headers=self.headers, json=payload)
                resp.raise_for_status()
                rows = resp.json()
        except httpx.HTTPStatusError as exc:
            raise CounterStoreError(
                code="counter_store_http_error",
                message=f"{RPC_NAME} returned HTTP {exc.response.status_code}",
                details={"endpoint": endpoint, "http_status": exc.response.status_code},
            ) from exc
        except httpx.HTTPError as exc:
            raise CounterStoreError(
                code="counter_store_unreachable",
                message=f"{RPC_NAME} request failed: {type(exc).__name__}",
                details={"endpoint": endpoint},
            ) from exc
        except ValueError as exc:
            raise CounterStoreError(
                code="counter_store_invalid_json",
                message=f"{RPC_NAME} returned a non-JSON body",
                details={"endpoint": endpoint},
            ) from exc

        return _parse_rows(rows, endpoint)

    async def aclose(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()


def _parse_rows(rows: Any, endpoint: str) -> CounterResult | None:
    """Convert the RPC's table result (a JSON array) to a CounterResult."""

    if isinstance(rows, dict):
        rows = [rows]
    if not rows:
        return None
    if not isinstance(rows, list) or not isinstance(rows[0], dict):
        raise CounterStoreError(
            code="counter_store_malformed_row",
            message=f"{RPC_NAME} returned an unexpected payload",
            details={"endpoint": endpoint},
        )

    row = rows[0]
    try:
        return CounterResult(
            allowed=bool(row["allowed"]),
            current_count=int(row["current_count"]),
            limit_value=int(row["limit_value"]),
            window_reset=row["window_reset"],
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise CounterStoreError(
            code="counter_store_malformed_row",
            message=f"{RPC_NAME} row is missing fields",
            details={"endpoint": endpoint},
        ) from exc
