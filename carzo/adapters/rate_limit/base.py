"""Counter store interface.

Rate limit decisions are delegated to a counter store that atomically
increments a per-(identifier, endpoint, window) counter and reports whether
the caller is still within its limit. The HTTP layer only depends on this
abstraction so the backing technology can change without touching routes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class CounterResult:
    """Raw outcome of one counter increment.

    Attributes:
        allowed: Whether the caller is within the limit after this increment.
        current_count: Counter value for the current window (includes this call).
        limit_value: Limit the store evaluated against.
        window_reset: When the current window ends. A datetime, an ISO-8601
            string, or UNIX epoch seconds depending on the backend.
    """

    allowed: bool
    current_count: int
    limit_value: int
    window_reset: datetime | str | float


class AbstractCounterStore(ABC):
    """Interface for atomic increment-and-check counter stores."""

    @abstractmethod
    async def check(
        self,
        identifier: str,
        endpoint: str,
        limit: int,
        window_seconds: int,
    ) -> CounterResult | None:
        """Increment the counter for ``identifier``/``endpoint`` and evaluate it.

        Args:
            identifier: Client identifier (IP, ``user:<id>`` or ``anon:<token>``).
            endpoint: Name of the quota being counted.
            limit: Maximum operations allowed per window.
            window_seconds: Window length in seconds.

        Returns:
            CounterResult, or None when the store produced no row.

        Raises:
            CounterStoreError: If the backing store cannot be reached or replies
                with an error.
        """
        raise NotImplementedError
