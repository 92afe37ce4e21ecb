"""Dealer diversification for ranked vehicle lists.

Search results are already ranked when they reach this module. Diversifying
re-orders them round-robin by dealer so that, whenever ``k`` dealers have
inventory, the first ``k`` slots hold at most one vehicle per dealer. Ranking
is still respected: dealers are visited in the order their first vehicle
appeared, and each dealer's vehicles keep their relative order.

Example:
    Input:  [A1, A2, B1, C1]
    Output: [A1, B1, C1, A2]

Records can be mappings (``record["dealer_id"]``) or objects exposing a
``dealer_id`` attribute (e.g., the ``Vehicle`` schema).
"""

from __future__ import annotations

from collections import Counter, deque
from dataclasses import dataclass, field
from typing import Any, Hashable, Iterable, Mapping, Sequence, TypeVar

T = TypeVar("T")

TOP_DEALERS_LIMIT = 10


def _field(record: Any, name: str, default: Any = None) -> Any:
    if isinstance(record, Mapping):
        return record.get(name, default)
    return getattr(record, name, default)


def dealer_key(record: Any) -> Hashable:
    """Bucket key for a record: its raw ``dealer_id``.

    Missing ids are not normalized, so ``None`` and ``""`` end up in separate
    buckets. Upstream data should always carry a dealer id.
    """
    return _field(record, "dealer_id")


def diversify_by_dealer(vehicles: Sequence[T], max_results: int) -> list[T]:
    """Round-robin ``vehicles`` across dealers, returning at most ``max_results``.

    Args:
        vehicles: Ranked records; order is the tie-break within each dealer.
        max_results: Maximum number of records to return.

    Returns:
        A new list with ``min(max_results, len(vehicles))`` records. Nothing is
        copied or invented; the output is a re-ordered selection of the input.
    """
    if max_results <= 0 or not vehicles:
        return []

    # dicts keep insertion order, so bucket order is first-seen dealer order
    buckets: dict[Hashable, deque[T]] = {}
    for vehicle in vehicles:
        buckets.setdefault(dealer_key(vehicle), deque()).append(vehicle)

    result: list[T] = []
    active = list(buckets.values())
    while active and len(result) < max_results:
        for bucket in active:
            result.append(bucket.popleft())
            if len(result) == max_results:
                break
        active = [bucket for bucket in active if bucket]

    return result


def calculate_dealer_diversity(vehicles: Sequence[Any]) -> float:
    """Percentage (0-100) of distinct dealers among ``vehicles``.

    A page where every vehicle comes from a different dealer scores 100.
    """
    if not vehicles:
        return 0.0
    unique_dealers = {dealer_key(v) for v in vehicles}
    return len(unique_dealers) / len(vehicles) * 100


@dataclass(frozen=True)
class DealerCount:
    dealer_id: str
    dealer_name: str | None
    count: int


@dataclass(frozen=True)
class DealerStats:
    """Distribution of inventory across dealers."""

    total_dealers: int
    vehicles_per_dealer: dict[str, int] = field(default_factory=dict)
    top_dealers: list[DealerCount] = field(default_factory=list)


def get_dealer_stats(vehicles: Iterable[Any]) -> DealerStats:
    """Count vehicles per dealer and rank the ten largest dealers.

    Ties keep first-seen order. The dealer name reported is the last one seen
    for that dealer id.
    """
    counts: Counter[str] = Counter()
    names: dict[str, str | None] = {}
    for vehicle in vehicles:
        dealer_id = dealer_key(vehicle)
        counts[dealer_id] += 1
        names[dealer_id] = _field(vehicle, "dealer_name")

    top = sorted(counts.items(), key=lambda item: item[1], reverse=True)[:TOP_DEALERS_LIMIT]
    return DealerStats(
        total_dealers=len(counts),
        vehicles_per_dealer=dict(counts),
        top_dealers=[
            DealerCount(dealer_id=dealer_id, dealer_name=names[dealer_id], count=count)
            for dealer_id, count in top
        ],
    )


def prioritize_different_dealers(current: Any, related: Sequence[T], limit: int) -> list[T]:
    """Pick related vehicles, favouring dealers other than ``current``'s.

    Used on the vehicle detail page: vehicles from other dealers come first,
    the current dealer's own listings only fill remaining slots.
    """
    current_dealer = dealer_key(current)
    other_dealers = [v for v in related if dealer_key(v) != current_dealer]
    same_dealer = [v for v in related if dealer_key(v) == current_dealer]
    return diversify_by_dealer(other_dealers + same_dealer, limit)
