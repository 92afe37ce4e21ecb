"""Application-level exception types.

Domain errors shared by services and adapters so the HTTP layer can map them
to consistent status codes and payloads.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients."""

    code: str
    message: str
    hint: str
    field: str
    vin: str
    endpoint: str
    http_status: int
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when input/config validation fails."""


class NotFoundAppError(AppError):
    """Raised when a requested resource (e.g., a vehicle VIN) does not exist."""


class ConfigurationAppError(AppError):
    """Raised when server-side configuration is unusable (maps to 500)."""


class InventoryAppError(AppError):
    """Raised when the vehicle inventory cannot be read."""


class CounterStoreError(AppError):
    """Raised by counter store adapters; rate limit checks fail open on it."""
