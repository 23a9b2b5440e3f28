"""Tests for busnet.segments.admin_service."""

from decimal import Decimal

import pytest

from busnet.exceptions import ChainIntegrityError, NotFoundError, ValidationError
from busnet.segments.admin_service import SegmentAdminService
from busnet.segments.schemas import (
    LocationInput, SegmentCreate, SegmentSetReplace, SegmentUpdate, VariationCreate
)


@pytest.fixture
def service(db):
    return SegmentAdminService(db)


def _chain(segments):
    return [(s.segment_order, s.from_location, s.to_location) for s in segments]


class TestReplace:
    def test_replace_from_locations(self, service, make_route):
        route = make_route("Kampala", "Masaka", price=15000)
        segments = service.replace_segments(route.id, SegmentSetReplace(locations=[
            LocationInput(name="Kampala"),
            LocationInput(name="Mpigi", distance_km=Decimal("37"), duration_minutes=45, price=Decimal("5000")),
            LocationInput(name="Masaka", distance_km=Decimal("93"), duration_minutes=90, price=Decimal("10000")),
        ]))
        assert _chain(segments) == [(1, "Kampala", "Mpigi"), (2, "Mpigi", "Masaka")]
        assert segments[1].base_price == Decimal("10000")
        assert service.get_route(route.id).segment_enabled is True

    def test_replace_discards_old_segments(self, service, fort_portal_route):
        segments = service.replace_segments(fort_portal_route.id, SegmentSetReplace(locations=[
            LocationInput(name="Kampala"),
            LocationInput(name="Fort Portal", distance_km=Decimal("300"), price=Decimal("38000")),
        ]))
        assert _chain(segments) == [(1, "Kampala", "Fort Portal")]

    def test_duplicate_consecutive_locations_rejected(self, service, fort_portal_route):
        with pytest.raises(ValidationError):
            service.replace_segments(fort_portal_route.id, SegmentSetReplace(locations=[
                LocationInput(name="Kampala"),
                LocationInput(name="kampala"),
            ]))
        assert len(service.list_segments(fort_portal_route.id)) == 3

    def test_unknown_route(self, service):
        with pytest.raises(NotFoundError):
            service.list_segments(999)


class TestCreate:
    def test_append_continues_chain(self, service, fort_portal_route):
        service.create_segment(fort_portal_route.id, SegmentCreate(
            from_location="Fort Portal", to_location="Kasese", distance_km=Decimal("75"), base_price=Decimal("8000"),
        ))
        assert _chain(service.list_segments(fort_portal_route.id))[-1] == (4, "Fort Portal", "Kasese")

    def test_append_must_start_at_chain_end(self, service, fort_portal_route):
        with pytest.raises(ChainIntegrityError):
            service.create_segment(fort_portal_route.id, SegmentCreate(from_location="Mubende", to_location="Kasese"))

    def test_prepend_shifts_orders(self, service, fort_portal_route):
        service.create_segment(fort_portal_route.id, SegmentCreate(
            from_location="Entebbe", to_location="Kampala", segment_order=1,
        ))
        assert _chain(service.list_segments(fort_portal_route.id)) == [
            (1, "Entebbe", "Kampala"),
            (2, "Kampala", "Mityana"),
            (3, "Mityana", "Mubende"),
            (4, "Mubende", "Fort Portal"),
        ]

    def test_insert_in_middle_breaks_chain(self, service, fort_portal_route):
        with pytest.raises(ChainIntegrityError):
            service.create_segment(fort_portal_route.id, SegmentCreate(
                from_location="Mityana", to_location="Kiboga", segment_order=2,
            ))

    def test_order_gap_rejected(self, service, fort_portal_route):
        with pytest.raises(ChainIntegrityError):
            service.create_segment(fort_portal_route.id, SegmentCreate(
                from_location="Fort Portal", to_location="Kasese", segment_order=6,
            ))

    def test_zero_length_segment_rejected(self, service, fort_portal_route):
        with pytest.raises(ChainIntegrityError):
            service.create_segment(fort_portal_route.id, SegmentCreate(
                from_location="Fort Portal", to_location="fort portal",
            ))


class TestUpdate:
    def test_price_update(self, service, fort_portal_route):
        segment = fort_portal_route.segments[1]
        updated = service.update_segment(segment.id, SegmentUpdate(base_price=Decimal("16000.4")))
        assert updated.base_price == Decimal("16000")

    def test_rename_that_breaks_chain_rejected(self, service, fort_portal_route):
        segment = fort_portal_route.segments[0]
        with pytest.raises(ChainIntegrityError):
            service.update_segment(segment.id, SegmentUpdate(to_location="Mubende"))

    def test_rename_of_chain_end_allowed(self, service, fort_portal_route):
        segment = fort_portal_route.segments[2]
        updated = service.update_segment(segment.id, SegmentUpdate(to_location="Fort Portal Park"))
        assert updated.to_location == "Fort Portal Park"


class TestDelete:
    def test_delete_last_segment(self, service, fort_portal_route):
        service.delete_segment(fort_portal_route.segments[2].id)
        assert _chain(service.list_segments(fort_portal_route.id)) == [
            (1, "Kampala", "Mityana"), (2, "Mityana", "Mubende"),
        ]

    def test_delete_first_segment_renumbers(self, service, fort_portal_route):
        service.delete_segment(fort_portal_route.segments[0].id)
        assert _chain(service.list_segments(fort_portal_route.id)) == [
            (1, "Mityana", "Mubende"), (2, "Mubende", "Fort Portal"),
        ]

    def test_delete_middle_segment_rejected(self, service, fort_portal_route):
        with pytest.raises(ChainIntegrityError):
            service.delete_segment(fort_portal_route.segments[1].id)
        assert len(service.list_segments(fort_portal_route.id)) == 3

    def test_deleting_only_segment_disables_segment_pricing(self, service, make_route):
        route = make_route("Kampala", "Masaka", segments=[("Kampala", "Masaka", 130, 15000)])
        service.delete_segment(route.segments[0].id)
        assert service.get_route(route.id).segment_enabled is False


class TestVariations:
    def test_create_normalizes_and_stores_tagged_dates(self, service, fort_portal_route):
        variation = service.create_variation(fort_portal_route.segments[0].id, VariationCreate(
            variation_type="Weekend", price_adjustment=Decimal("20"), applies_to_dates={"days": ["Saturday"]},
        ))
        assert variation.variation_type == "weekend"
        assert variation.applies_to_dates == {"kind": "weekly", "days": ["saturday"]}

    def test_bad_date_spec_rejected(self, service, fort_portal_route):
        with pytest.raises(ValidationError):
            service.create_variation(fort_portal_route.segments[0].id, VariationCreate(
                variation_type="holiday", price_adjustment=Decimal("5000"), adjustment_type="fixed",
                applies_to_dates={"start": "2026-12-31", "end": "2026-12-01"},
            ))

    def test_toggle_flips_and_sets(self, service, fort_portal_route, add_variation):
        variation = add_variation(fort_portal_route.segments[0], "weekend", 20)
        assert service.toggle_variation(variation.id).active is False
        assert service.toggle_variation(variation.id).active is True
        assert service.toggle_variation(variation.id, active=True).active is True

    def test_delete_variation(self, service, fort_portal_route, add_variation):
        variation = add_variation(fort_portal_route.segments[0], "weekend", 20)
        service.delete_variation(variation.id)
        with pytest.raises(NotFoundError):
            service.get_variation(variation.id)

    def test_list_excludes_inactive_on_request(self, service, fort_portal_route, add_variation):
        segment = fort_portal_route.segments[0]
        add_variation(segment, "weekend", 20)
        add_variation(segment, "holiday", 10, active=False)
        assert len(service.list_variations(segment.id)) == 2
        assert len(service.list_variations(segment.id, include_inactive=False)) == 1
