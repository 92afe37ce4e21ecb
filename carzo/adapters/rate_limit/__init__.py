"""Counter store adapters for rate limiting.

The in-memory store serves local development and tests; the Supabase store
shares counters across every worker through the ``check_rate_limit`` RPC.
"""

from carzo.adapters.rate_limit.base import AbstractCounterStore, CounterResult
from carzo.adapters.rate_limit.in_memory import InMemoryCounterStore
from carzo.adapters.rate_limit.supabase import SupabaseCounterStore

__all__ = [
    "AbstractCounterStore",
    "CounterResult",
    "InMemoryCounterStore",
    "SupabaseCounterStore",
]
