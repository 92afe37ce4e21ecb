"""Unit tests for dealer diversification and dealer statistics."""

from __future__ import annotations

from itertools import groupby

import pytest

from carzo.services.dealer_diversity import (
    calculate_dealer_diversity,
    diversify_by_dealer,
    get_dealer_stats,
    prioritize_different_dealers,
)


def _v(vid: str, dealer_id: str | None, **extra) -> dict:
    return {"id": vid, "dealer_id": dealer_id, **extra}


def _ids(vehicles: list[dict]) -> list[str]:
    return [v["id"] for v in vehicles]


class TestDiversifyByDealer:
    """Round-robin ordering and output guarantees."""

    def test_round_robin_when_fewer_vehicles_than_limit(self) -> None:
        vehicles = [_v("1", "A"), _v("2", "A"), _v("3", "B"), _v("4", "C")]

        result = diversify_by_dealer(vehicles, 10)

        assert [v["dealer_id"] for v in result] == ["A", "B", "C", "A"]

    def test_round_robin_when_vehicle_count_equals_limit(self) -> None:
        vehicles = [_v("1", "A"), _v("2", "A"), _v("3", "B")]

        result = diversify_by_dealer(vehicles, 3)

        assert _ids(result) == ["1", "3", "2"]

    def test_empty_input(self) -> None:
        assert diversify_by_dealer([], 10) == []

    @pytest.mark.parametrize("max_results", [0, -3])
    def test_non_positive_limit_returns_empty(self, max_results: int) -> None:
        assert diversify_by_dealer([_v("1", "A")], max_results) == []

    def test_fair_split_between_two_interleaved_dealers(self) -> None:
        vehicles = [_v(f"{d}{i}", d) for i in range(1, 6) for d in ("A", "B")]

        result = diversify_by_dealer(vehicles, 4)

        assert _ids(result) == ["A1", "B1", "A2", "B2"]

    def test_fair_split_when_dealers_arrive_in_blocks(self) -> None:
        vehicles = [_v(f"A{i}", "A") for i in range(1, 6)] + [_v(f"B{i}", "B") for i in range(1, 6)]

        result = diversify_by_dealer(vehicles, 4)

        assert _ids(result) == ["A1", "B1", "A2", "B2"]

    def test_single_dealer_degrades_to_original_order(self) -> None:
        vehicles = [_v(str(i), "A") for i in range(10)]

        result = diversify_by_dealer(vehicles, 3)

        assert _ids(result) == ["0", "1", "2"]

    def test_limit_above_input_returns_every_record_reordered(self) -> None:
        vehicles = [_v("1", "A"), _v("2", "A"), _v("3", "A"), _v("4", "B")]

        result = diversify_by_dealer(vehicles, 100)

        assert _ids(result) == ["1", "4", "2", "3"]

    def test_exhausted_buckets_do_not_disturb_sweep_order(self) -> None:
        vehicles = [
            _v("A1", "A"), _v("B1", "B"), _v("C1", "C"),
            _v("A2", "A"), _v("C2", "C"),
            _v("A3", "A"), _v("C3", "C"),
        ]

        result = diversify_by_dealer(vehicles, 10)

        assert _ids(result) == ["A1", "B1", "C1", "A2", "C2", "A3", "C3"]

    def test_no_round_cap_on_long_single_dealer_tail(self) -> None:
        vehicles = [_v("B1", "B")] + [_v(f"A{i}", "A") for i in range(250)]

        result = diversify_by_dealer(vehicles, 1000)

        assert len(result) == 251

    @pytest.mark.parametrize("n", [0, 1, 2, 5, 7, 8, 20])
    def test_length_bound(self, n: int) -> None:
        vehicles = [_v(str(i), "ABC"[i % 3] if i < 4 else "A") for i in range(7)]

        assert len(diversify_by_dealer(vehicles, n)) == min(n, len(vehicles))

    def test_output_is_a_selection_without_duplicates(self) -> None:
        vehicles = [_v(str(i), "ABCD"[(i * 7) % 4]) for i in range(13)]

        result = diversify_by_dealer(vehicles, 9)

        assert len({id(v) for v in result}) == len(result)
        assert all(any(v is original for original in vehicles) for v in result)

    def test_preserves_relative_order_within_each_dealer(self) -> None:
        vehicles = [_v(str(i), "ABC"[(i * 5) % 3]) for i in range(12)]

        result = diversify_by_dealer(vehicles, 12)

        for dealer in "ABC":
            expected = [v["id"] for v in vehicles if v["dealer_id"] == dealer]
            assert [v["id"] for v in result if v["dealer_id"] == dealer] == expected

    def test_first_k_slots_are_distinct_dealers(self) -> None:
        vehicles = [_v(f"A{i}", "A") for i in range(4)] + [_v("B0", "B"), _v("C0", "C")]

        result = diversify_by_dealer(vehicles, 6)

        assert len({v["dealer_id"] for v in result[:3]}) == 3

    def test_reapplying_to_spread_result_keeps_dealer_adjacency(self) -> None:
        vehicles = [_v(f"{d}{i}", d) for d in "ABC" for i in range(3)]
        once = diversify_by_dealer(vehicles, 9)

        twice = diversify_by_dealer(once, 9)

        assert [v["dealer_id"] for v in twice] == [v["dealer_id"] for v in once]
        assert all(len(list(group)) == 1 for _, group in groupby(v["dealer_id"] for v in twice))

    def test_deterministic(self) -> None:
        vehicles = [_v(str(i), "ABCDE"[(i * 3) % 5]) for i in range(25)]

        assert diversify_by_dealer(vehicles, 10) == diversify_by_dealer(vehicles, 10)

    def test_missing_dealer_ids_form_their_own_buckets(self) -> None:
        vehicles = [_v("1", None), _v("2", None), _v("3", ""), _v("4", "A")]

        result = diversify_by_dealer(vehicles, 4)

        assert _ids(result) == ["1", "3", "4", "2"]

    def test_accepts_objects_with_dealer_id_attribute(self, make_vehicle) -> None:
        vehicles = [make_vehicle("V1", "A"), make_vehicle("V2", "A"), make_vehicle("V3", "B")]

        result = diversify_by_dealer(vehicles, 3)

        assert [v.vin for v in result] == ["V1", "V3", "V2"]

    def test_does_not_mutate_input(self) -> None:
        vehicles = [_v("1", "A"), _v("2", "A"), _v("3", "B")]
        snapshot = list(vehicles)

        diversify_by_dealer(vehicles, 2)

        assert vehicles == snapshot


class TestDealerDiversityScore:
    def test_empty_list_scores_zero(self) -> None:
        assert calculate_dealer_diversity([]) == 0.0

    def test_all_unique_dealers_scores_hundred(self) -> None:
        assert calculate_dealer_diversity([_v("1", "A"), _v("2", "B")]) == 100.0

    def test_partial_diversity(self) -> None:
        vehicles = [_v("1", "A"), _v("2", "A"), _v("3", "B"), _v("4", "B")]

        assert calculate_dealer_diversity(vehicles) == 50.0


class TestDealerStats:
    def test_counts_and_top_dealers(self) -> None:
        vehicles = [
            _v("1", "A", dealer_name="Alpha"),
            _v("2", "B", dealer_name="Beta"),
            _v("3", "B", dealer_name="Beta Auto"),
            _v("4", "C", dealer_name="Gamma"),
            _v("5", "B", dealer_name="Beta Auto"),
        ]

        stats = get_dealer_stats(vehicles)

        assert stats.total_dealers == 3
        assert stats.vehicles_per_dealer == {"A": 1, "B": 3, "C": 1}
        assert stats.top_dealers[0].dealer_id == "B"
        assert stats.top_dealers[0].dealer_name == "Beta Auto"
        assert stats.top_dealers[0].count == 3
        # ties keep first-seen order
        assert [d.dealer_id for d in stats.top_dealers[1:]] == ["A", "C"]

    def test_top_dealers_capped_at_ten(self) -> None:
        vehicles = [_v(str(i), f"D{i}", dealer_name=f"Dealer {i}") for i in range(15)]

        stats = get_dealer_stats(vehicles)

        assert stats.total_dealers == 15
        assert len(stats.top_dealers) == 10

    def test_empty_inventory(self) -> None:
        stats = get_dealer_stats([])

        assert stats.total_dealers == 0
        assert stats.top_dealers == []


class TestPrioritizeDifferentDealers:
    def test_other_dealers_come_first(self) -> None:
        current = _v("X", "A")
        related = [_v("A1", "A"), _v("A2", "A"), _v("B1", "B"), _v("C1", "C")]

        result = prioritize_different_dealers(current, related, 3)

        assert _ids(result) == ["B1", "C1", "A1"]

    def test_same_dealer_fills_remaining_slots(self) -> None:
        current = _v("X", "A")
        related = [_v("A1", "A"), _v("A2", "A"), _v("B1", "B")]

        result = prioritize_different_dealers(current, related, 5)

        assert _ids(result) == ["B1", "A1", "A2"]

    def test_respects_limit(self) -> None:
        current = _v("X", "A")
        related = [_v(f"B{i}", "B") for i in range(5)]

        assert len(prioritize_different_dealers(current, related, 2)) == 2
