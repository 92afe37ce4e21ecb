"""Rate limit decisions on top of a counter store.

Counting is delegated to an ``AbstractCounterStore``; this module only
identifies callers, converts store rows into client-facing results and
combines several policies (e.g., per-minute quota + burst guard) into one
decision.

Availability wins over strictness: if the store errors out or returns
nothing, the check fails open and the request is allowed with a full quota.
"""

from __future__ import annotations

import logging
import secrets
import string
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Mapping, Protocol, Sequence

from carzo.adapters.rate_limit.base import AbstractCounterStore, CounterResult

logger = logging.getLogger(__name__)

DEFAULT_USER_ID_COOKIE = "carzo_user_id"

_ANON_ALPHABET = string.ascii_lowercase + string.digits
_ANON_SUFFIX_LENGTH = 9


@dataclass(frozen=True)
class PolicyPreset:
    """Quota shape shared by several endpoints."""

    limit: int
    window_seconds: int


@dataclass(frozen=True)
class RateLimitPolicy:
    """A named quota: at most ``limit`` operations per ``window_seconds``."""

    endpoint: str
    limit: int
    window_seconds: int

    def __post_init__(self) -> None:
        if not self.endpoint:
            raise ValueError("endpoint must be a non-empty string")
        if self.limit < 1:
            raise ValueError("limit must be >= 1")
        if self.window_seconds < 1:
            raise ValueError("window_seconds must be >= 1")


RATE_LIMITS: Mapping[str, PolicyPreset] = MappingProxyType(
    {
        "SEARCH_VEHICLES": PolicyPreset(limit=100, window_seconds=60),
        "FILTER_OPTIONS": PolicyPreset(limit=50, window_seconds=60),
        "BURST": PolicyPreset(limit=10, window_seconds=1),
        "SESSION": PolicyPreset(limit=500, window_seconds=3600),
    }
)


def policy(preset_name: str, endpoint: str) -> RateLimitPolicy:
    """Bind a preset from ``RATE_LIMITS`` to an endpoint name.

    Raises:
        KeyError: If ``preset_name`` is not a known preset.
    """
    preset = RATE_LIMITS[preset_name]
    return RateLimitPolicy(endpoint=endpoint, limit=preset.limit, window_seconds=preset.window_seconds)


@dataclass(frozen=True)
class RateLimitResult:
    """Client-facing rate limit decision.

    Attributes:
        allowed: Whether the request may proceed.
        limit: Max operations per window for the reported policy.
        remaining: Operations left in the window, never negative.
        reset: Window end as UNIX epoch milliseconds.
        failed_check: Endpoint name of the policy that denied the request.
    """

    allowed: bool
    limit: int
    remaining: int
    reset: int
    failed_check: str | None = None


class _RequestLike(Protocol):
    headers: Mapping[str, str]
    cookies: Mapping[str, str]


def _now_ms() -> int:
    return int(time.time() * 1000)


def _anonymous_identifier() -> str:
    suffix = "".join(secrets.choice(_ANON_ALPHABET) for _ in range(_ANON_SUFFIX_LENGTH))
    return f"anon:{_now_ms()}-{suffix}"


def get_client_identifier(request: _RequestLike, *, cookie_name: str = DEFAULT_USER_ID_COOKIE) -> str:
    """Derive the rate limit partition key for a request.

    Precedence: first address in ``x-forwarded-for``, then ``x-real-ip``,
    then the user id cookie (``user:<id>``), then a fresh
    ``anon:<epoch-ms>-<random>`` token. Each anonymous caller gets its own
    token so unidentifiable clients never share one global quota.
    """
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first

    real_ip = request.headers.get("x-real-ip")
    if real_ip and real_ip.strip():
        return real_ip.strip()

    user_id = request.cookies.get(cookie_name)
    if user_id:
        return f"user:{user_id}"

    return _anonymous_identifier()


def to_epoch_ms(value: Any) -> int:
    """Convert a window reset timestamp to epoch milliseconds.

    Accepts datetimes (naive values are taken as UTC), ISO-8601 strings
    (including a trailing ``Z``) and numeric epoch seconds.

    Raises:
        ValueError: If the value cannot be interpreted as a timestamp.
    """
    if isinstance(value, bool):
        raise ValueError("boolean is not a timestamp")
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return int(value.timestamp() * 1000)
    if isinstance(value, (int, float)):
        return int(value * 1000)
    if isinstance(value, str) and value:
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        return to_epoch_ms(datetime.fromisoformat(text))
    raise ValueError(f"unsupported timestamp: {value!r}")


def _fail_open(rate_policy: RateLimitPolicy) -> RateLimitResult:
    return RateLimitResult(
        allowed=True,
        limit=rate_policy.limit,
        remaining=rate_policy.limit,
        reset=_now_ms() + rate_policy.window_seconds * 1000,
    )


def _from_counter(result: CounterResult) -> RateLimitResult:
    return RateLimitResult(
        allowed=bool(result.allowed),
        limit=result.limit_value,
        remaining=max(0, result.limit_value - result.current_count),
        reset=to_epoch_ms(result.window_reset),
    )


async def check_rate_limit(
    store: AbstractCounterStore,
    identifier: str,
    rate_policy: RateLimitPolicy,
) -> RateLimitResult:
    """Run a single policy against the counter store.

    Never raises: any store error, empty result or unconvertible row yields
    an allowed result with the full quota remaining.
    """
    try:
        counter = await store.check(
            identifier,
            rate_policy.endpoint,
            rate_policy.limit,
            rate_policy.window_seconds,
        )
        if counter is None:
            logger.warning(
                "rate_limit.fail_open",
                extra={"endpoint": rate_policy.endpoint, "reason": "empty_result"},
            )
            return _fail_open(rate_policy)
        return _from_counter(counter)
    except Exception as exc:
        logger.warning(
            "rate_limit.fail_open",
            extra={
                "endpoint": rate_policy.endpoint,
                "reason": "store_error",
                "error_type": type(exc).__name__,
                "error_msg": str(exc),
            },
        )
        return _fail_open(rate_policy)


async def check_multiple_rate_limits(
    store: AbstractCounterStore,
    identifier: str,
    policies: Sequence[RateLimitPolicy],
) -> RateLimitResult:
    """Apply several policies in order; all must pass.

    Policies are checked sequentially and the loop stops at the first denial,
    whose result is returned with ``failed_check`` set. When everything
    passes, the FIRST policy's result is returned unchanged, so callers list
    the user-facing quota before defensive ones such as the burst guard.
    """
    if not policies:
        return RateLimitResult(allowed=True, limit=0, remaining=0, reset=_now_ms())

    first_result: RateLimitResult | None = None
    for rate_policy in policies:
        result = await check_rate_limit(store, identifier, rate_policy)
        if first_result is None:
            first_result = result
        if not result.allowed:
            return RateLimitResult(
                allowed=False,
                limit=result.limit,
                remaining=result.remaining,
                reset=result.reset,
                failed_check=rate_policy.endpoint,
            )

    return first_result
