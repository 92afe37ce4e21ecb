"""In-memory fixed-window counter store.

Counters live in the worker process, so N uvicorn workers allow N times the
configured quota. Use the Supabase store when counts must be shared.
"""

from __future__ import annotations

import threading
import time
from datetime import datetime, timezone
from typing import Callable

from carzo.adapters.rate_limit.base import AbstractCounterStore, CounterResult

_CounterKey = tuple[str, str, int, int]


class InMemoryCounterStore(AbstractCounterStore):
    """Counter store keeping fixed windows in a dict.

    Windows are aligned to multiples of ``window_seconds`` since the epoch, so
    a 60 second window always starts on a whole minute. Every call increments
    the counter, including calls that end up over the limit; a caller that
    keeps retrying while blocked stays blocked until the window rolls over.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], float] = time.time,
        prune_interval_seconds: float = 60.0,
    ) -> None:
        """Initialize the store.

        Args:
            clock: Time source function returning UNIX time in seconds.
            prune_interval_seconds: Minimum time between sweeps of expired
                windows; a sweep runs inside ``check``.
        """
        if prune_interval_seconds <= 0:
            raise ValueError("prune_interval_seconds must be > 0")
        self._clock = clock
        self._lock = threading.RLock()
        self._counts: dict[_CounterKey, int] = {}
        self._prune_interval = prune_interval_seconds
        self._last_prune: float | None = None

    @staticmethod
    def _window_start(now: float, window_seconds: int) -> int:
        return int(now // window_seconds) * window_seconds

    def _prune_expired(self, now: float) -> None:
        # caller holds the lock; key = (identifier, endpoint, window_seconds, window_start)
        if self._last_prune is not None and now - self._last_prune < self._prune_interval:
            return
        self._last_prune = now
        expired = [key for key in self._counts if key[3] + key[2] <= now]
        for key in expired:
            del self._counts[key]

    async def check(
        self,
        identifier: str,
        endpoint: str,
        limit: int,
        window_seconds: int,
    ) -> CounterResult:
        """Increment and evaluate the counter for the current window.

        Windows that have already ended are swept out at most once per
        ``prune_interval_seconds``, so memory is bounded by the traffic of
        the live windows.

        Raises:
            ValueError: If identifier/endpoint are empty or limit/window invalid.
        """
        if not identifier:
            raise ValueError("identifier must be a non-empty string")
        if not endpoint:
            raise ValueError("endpoint must be a non-empty string")
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_seconds < 1:
            raise ValueError("window_seconds must be >= 1")

        now = self._clock()
        window_start = self._window_start(now, window_seconds)
        key = (identifier, endpoint, window_seconds, window_start)

        with self._lock:
            self._prune_expired(now)
            count = self._counts.get(key, 0) + 1
            self._counts[key] = count

        return CounterResult(
            allowed=count <= limit,
            current_count=count,
            limit_value=limit,
            window_reset=datetime.fromtimestamp(window_start + window_seconds, tz=timezone.utc),
        )

    def cleanup(self, max_age_seconds: int = 3600) -> int:
        """Drop windows that started more than ``max_age_seconds`` ago.

        Returns:
            Number of counters removed.
        """
        cutoff = self._clock() - max_age_seconds
        with self._lock:
            stale = [key for key in self._counts if key[3] < cutoff]
            for key in stale:
                del self._counts[key]
        return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._counts)
