"""Tests for the search pipeline: sorting, diversification gating and pagination."""

from __future__ import annotations

import pytest

from carzo.adapters.inventory.in_memory import InMemoryVehicleRepository
from carzo.core.errors import NotFoundAppError
from carzo.schemas.search import SearchFilters, SearchRequest
from carzo.schemas.vehicle import VehicleWithDistance
from carzo.services.search_service import SearchService, apply_sorting, should_apply_diversification

# same point the shared inventory fixture is laid out around
USER_LAT = 41.8781
USER_LON = -87.6298


def _vins(vehicles) -> list[str]:
    return [v.vin for v in vehicles]


def _located(**kwargs) -> SearchRequest:
    return SearchRequest(user_lat=USER_LAT, user_lon=USER_LON, **kwargs)


@pytest.mark.parametrize(
    ("sort_by", "expected"),
    [
        (None, True),
        ("", True),
        ("relevance", True),
        ("distance", True),
        ("year_desc", True),
        ("year_asc", True),
        ("price_asc", False),
        ("price_desc", False),
        ("mileage_asc", False),
        ("mileage_desc", False),
        ("newest", False),
    ],
)
def test_should_apply_diversification(sort_by: str | None, expected: bool) -> None:
    assert should_apply_diversification(sort_by) is expected


def test_should_apply_diversification_without_argument() -> None:
    assert should_apply_diversification() is True


class TestApplySorting:
    """Sort modes over VehicleWithDistance records."""

    @pytest.fixture
    def vehicles(self, make_vehicle) -> list[VehicleWithDistance]:
        rows = [
            make_vehicle("V1", "A", price=30000.0, year=2019, miles=40000),
            make_vehicle("V2", "B", price=10000.0, year=2023, miles=None),
            make_vehicle("V3", "C", price=20000.0, year=2021, miles=0),
        ]
        return [VehicleWithDistance(**v.model_dump(), distance_miles=d) for v, d in zip(rows, (5.0, None, 1.5))]

    @pytest.mark.parametrize(
        ("sort_by", "expected"),
        [
            ("price_asc", ["V2", "V3", "V1"]),
            ("price_desc", ["V1", "V3", "V2"]),
            ("year_asc", ["V1", "V3", "V2"]),
            ("year_desc", ["V2", "V3", "V1"]),
            ("mileage_asc", ["V3", "V1", "V2"]),
            ("mileage_desc", ["V1", "V2", "V3"]),
            ("distance", ["V3", "V1", "V2"]),
        ],
    )
    def test_sort_modes(self, vehicles, sort_by: str, expected: list[str]) -> None:
        assert _vins(apply_sorting(vehicles, sort_by)) == expected

    def test_relevance_uses_distance_when_known(self, vehicles) -> None:
        assert _vins(apply_sorting(vehicles, "relevance")) == ["V3", "V1", "V2"]

    def test_relevance_falls_back_to_newest_without_distance(self, vehicles) -> None:
        # first record has no distance: no location search
        reordered = [vehicles[1], vehicles[0], vehicles[2]]

        assert _vins(apply_sorting(reordered, None)) == ["V2", "V3", "V1"]

    def test_input_is_not_mutated(self, vehicles) -> None:
        before = _vins(vehicles)

        apply_sorting(vehicles, "price_asc")

        assert _vins(vehicles) == before


class TestSearch:
    def test_location_search_diversifies_full_result_set(self, search_service: SearchService) -> None:
        response = search_service.search(_located())

        assert response.total == 10
        assert response.total_pages == 3
        assert response.diversified is True
        assert _vins(response.vehicles) == ["VIN-A1", "VIN-B1", "VIN-C1", "VIN-D1"]
        assert response.dealer_diversity == 100.0
        assert response.user_location is not None
        assert response.user_location.lat == USER_LAT

    def test_pages_are_windows_over_one_ordering(self, search_service: SearchService) -> None:
        pages = [search_service.search(_located(page=p)) for p in (1, 2, 3)]

        assert _vins(pages[1].vehicles) == ["VIN-A2", "VIN-B2", "VIN-C2", "VIN-A3"]
        assert _vins(pages[2].vehicles) == ["VIN-A4", "VIN-A5"]

        seen = [vin for page in pages for vin in _vins(page.vehicles)]
        assert len(seen) == len(set(seen)) == 10

    def test_radius_excludes_far_and_inactive_vehicles(self, search_service: SearchService) -> None:
        response = search_service.search(_located(page=1))
        all_vins = _vins(response.vehicles)

        assert "VIN-FAR" not in all_vins
        assert "VIN-OFF" not in all_vins

    def test_page_beyond_last_is_empty(self, search_service: SearchService) -> None:
        response = search_service.search(_located(page=9))

        assert response.vehicles == []
        assert response.total == 10
        assert response.dealer_diversity == 0.0

    def test_page_below_one_is_clamped(self, search_service: SearchService) -> None:
        response = search_service.search(_located(page=0))

        assert response.page == 1
        assert _vins(response.vehicles) == ["VIN-A1", "VIN-B1", "VIN-C1", "VIN-D1"]

    def test_search_without_location_sorts_newest_and_diversifies(self, search_service: SearchService) -> None:
        response = search_service.search(SearchRequest())

        assert response.total == 11
        assert response.user_location is None
        assert _vins(response.vehicles) == ["VIN-D1", "VIN-FAR", "VIN-A1", "VIN-B1"]
        assert all(v.distance_miles is None for v in response.vehicles)

    def test_price_sort_is_not_diversified(self, search_service: SearchService) -> None:
        response = search_service.search(SearchRequest(sort_by="price_asc"))

        assert response.diversified is False
        assert _vins(response.vehicles) == ["VIN-C2", "VIN-B2", "VIN-A5", "VIN-C1"]

    def test_filters_narrow_candidates(self, search_service: SearchService) -> None:
        response = search_service.search(SearchRequest(make="Ford"))

        assert response.total == 2
        assert set(_vins(response.vehicles)) == {"VIN-B1", "VIN-B2"}

    def test_price_and_year_ranges(self, search_service: SearchService) -> None:
        response = search_service.search(
            SearchRequest(min_price=18000, max_price=25000, min_year=2020, sort_by="price_asc")
        )

        assert _vins(response.vehicles) == ["VIN-C1", "VIN-A4", "VIN-A3"]

    def test_empty_result(self, search_service: SearchService) -> None:
        response = search_service.search(SearchRequest(make="Ferrari"))

        assert response.total == 0
        assert response.total_pages == 0
        assert response.vehicles == []

    def test_row_cap_applies_without_location(self, repository: InMemoryVehicleRepository) -> None:
        service = SearchService(repository, results_per_page=24, max_search_results=3)

        response = service.search(SearchRequest())

        assert response.total == 3

    def test_row_cap_ignored_for_location_search(self, repository: InMemoryVehicleRepository) -> None:
        service = SearchService(repository, results_per_page=24, max_search_results=3)

        response = service.search(_located())

        assert response.total == 10

    @pytest.mark.parametrize("kwargs", [{"results_per_page": 0}, {"max_search_results": 0}])
    def test_invalid_construction(self, repository: InMemoryVehicleRepository, kwargs) -> None:
        with pytest.raises(ValueError):
            SearchService(repository, **kwargs)


class TestFilterOptions:
    def test_distinct_values(self, search_service: SearchService) -> None:
        options = search_service.filter_options(SearchFilters())

        assert options.makes == ["Ford", "Honda", "Toyota"]
        assert options.body_styles == ["SUV", "Sedan", "Truck"]
        assert options.conditions == ["Certified", "New", "Used"]
        assert options.years == [2024, 2023, 2022, 2021, 2020, 2019, 2018, 2017]

    def test_options_follow_filters(self, search_service: SearchService) -> None:
        options = search_service.filter_options(SearchFilters(make="Honda"))

        assert options.makes == ["Honda"]
        assert options.years == [2021, 2017]


class TestRelatedVehicles:
    def test_prefers_other_dealers(self, search_service: SearchService) -> None:
        response = search_service.related_vehicles("VIN-A1", 4)

        assert response.vin == "VIN-A1"
        assert len(response.vehicles) == 4
        assert all(v.dealer_id != "A" for v in response.vehicles)
        assert "VIN-A1" not in _vins(response.vehicles)

    def test_tops_up_when_same_make_is_mostly_same_dealer(self, search_service: SearchService) -> None:
        # six other Toyotas, but only D1 and FAR come from other dealers
        response = search_service.related_vehicles("VIN-A1", 4)

        assert _vins(response.vehicles) == ["VIN-D1", "VIN-FAR", "VIN-B1", "VIN-C1"]

    def test_same_dealer_fills_up(self, search_service: SearchService) -> None:
        response = search_service.related_vehicles("VIN-A1", 8)

        assert _vins(response.vehicles) == [
            "VIN-D1", "VIN-FAR", "VIN-B1", "VIN-C1", "VIN-A2", "VIN-B2", "VIN-C2", "VIN-A3",
        ]

    def test_unknown_vin(self, search_service: SearchService) -> None:
        with pytest.raises(NotFoundAppError) as exc_info:
            search_service.related_vehicles("NOPE", 4)

        assert exc_info.value.code == "vehicle_not_found"

    def test_inactive_vin_is_not_found(self, search_service: SearchService) -> None:
        with pytest.raises(NotFoundAppError):
            search_service.related_vehicles("VIN-OFF", 4)


class TestDealerStats:
    def test_stats_for_location_search(self, search_service: SearchService) -> None:
        stats = search_service.dealer_stats(SearchFilters(user_lat=USER_LAT, user_lon=USER_LON))

        assert stats.total_dealers == 4
        assert stats.vehicles_per_dealer == {"A": 5, "B": 2, "C": 2, "D": 1}
        assert stats.top_dealers[0].dealer_id == "A"
        assert stats.top_dealers[0].dealer_name == "A Motors"
        assert stats.top_dealers[0].count == 5
