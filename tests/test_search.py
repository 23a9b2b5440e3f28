"""Tests for busnet.segments.search."""

from datetime import date
from decimal import Decimal

import pytest

from busnet.exceptions import ValidationError
from busnet.segments.search import SegmentPathSearch, departure_sort_key

SATURDAY = date(2026, 10, 17)


@pytest.fixture
def search(db):
    return SegmentPathSearch(db)


class TestPartialRoutes:
    def test_first_segment_only(self, search, fort_portal_route):
        results = search.search("Kampala", "Mityana")
        assert len(results) == 1
        quote = results[0]
        assert quote.match_type == "partial"
        assert quote.segmented is True
        assert quote.total_distance == Decimal("75.00")
        assert quote.total_price == Decimal("10000")
        assert [item.segment_order for item in quote.segment_path] == [1]

    def test_middle_run(self, search, fort_portal_route):
        quote = search.search("Mityana", "Fort Portal")[0]
        assert [item.segment_order for item in quote.segment_path] == [2, 3]
        assert quote.total_distance == Decimal("225.00")
        assert quote.total_price == Decimal("30000")
        assert quote.pickup_location == "Mityana"
        assert quote.dropoff_location == "Fort Portal"

    def test_whole_route_is_full_match(self, search, fort_portal_route):
        quote = search.search("Kampala", "Fort Portal")[0]
        assert quote.match_type == "full"
        assert quote.total_price == Decimal("40000")
        assert quote.total_duration == 300
        assert quote.currency == "UGX"

    def test_matching_ignores_case_and_spacing(self, search, fort_portal_route):
        results = search.search("  kampala ", "MITYANA")
        assert len(results) == 1

    def test_reverse_direction_not_served(self, search, fort_portal_route):
        assert search.search("Mityana", "Kampala") == []

    def test_unknown_stop_gives_no_results(self, search, fort_portal_route):
        assert search.search("Kampala", "Gulu") == []


class TestValidation:
    def test_same_origin_and_destination_rejected(self, search, fort_portal_route):
        with pytest.raises(ValidationError):
            search.search("Kampala", " kampala")

    def test_blank_origin_rejected(self, search):
        with pytest.raises(ValidationError):
            search.search("  ", "Mityana")


class TestFareResolution:
    def test_variation_applied_per_segment(self, search, fort_portal_route, add_variation):
        add_variation(fort_portal_route.segments[0], "weekend", 20)
        quote = search.search("Kampala", "Mubende", SATURDAY)[0]
        assert quote.base_total_price == Decimal("25000")
        assert quote.total_price == Decimal("27000")
        assert quote.segment_path[0].adjustment.variation_type == "weekend"
        assert quote.segment_path[1].adjustment is None
        assert quote.travel_date == SATURDAY

    def test_no_travel_date_uses_base_prices(self, search, fort_portal_route, add_variation):
        add_variation(fort_portal_route.segments[0], "weekend", 20)
        assert search.search("Kampala", "Mubende")[0].total_price == Decimal("25000")


class TestFlatFallback:
    def test_legacy_route_quoted_whole(self, search, make_route):
        make_route("Kampala", "Mbarara", distance=266, duration=300, price=30000)
        quote = search.search("Kampala", "Mbarara")[0]
        assert quote.segmented is False
        assert quote.match_type == "full"
        assert quote.total_price == Decimal("30000")
        assert quote.segment_path == []

    def test_legacy_stopover_not_bookable(self, search, make_route):
        make_route("Kampala", "Gulu", via="Luwero,Karuma", distance=333, price=35000)
        assert search.search("Kampala", "Luwero") == []

    def test_inactive_route_excluded(self, search, make_route):
        make_route("Kampala", "Mbarara", price=30000, active=False)
        assert search.search("Kampala", "Mbarara") == []


class TestRanking:
    def test_full_matches_before_partial(self, search, fort_portal_route, make_route):
        make_route("Kampala", "Mityana", price=12000, departure_time="09:00")
        results = search.search("Kampala", "Mityana")
        assert [q.match_type for q in results] == ["full", "partial"]

    def test_cheaper_then_earlier(self, search, make_route):
        late = make_route("Kampala", "Masaka", price=15000, departure_time="14:00")
        early = make_route("Kampala", "Masaka", price=15000, departure_time="06:30")
        cheap = make_route("Kampala", "Masaka", price=12000, departure_time="18:00")
        results = search.search("Kampala", "Masaka")
        assert [q.route_id for q in results] == [cheap.id, early.id, late.id]

    def test_limit(self, search, make_route):
        for _ in range(3):
            make_route("Kampala", "Masaka", price=15000)
        assert len(search.search("Kampala", "Masaka", limit=2)) == 2

    def test_unknown_departure_sorts_last(self):
        assert departure_sort_key("23:59") < departure_sort_key(None)
        assert departure_sort_key("bad") == departure_sort_key(None)
        assert departure_sort_key("06:30") == 390
