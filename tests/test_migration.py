"""Tests for busnet.segments.migration."""

from decimal import Decimal

import pytest

from busnet.models import RouteSegment
from busnet.segments.migration import LegacyRouteMigrator
from busnet.segments.schemas import MigrationRequest


@pytest.fixture
def migrator(db):
    return LegacyRouteMigrator(db)


def _segments(db, route):
    return db.query(RouteSegment).filter(
        RouteSegment.route_id == route.id
    ).order_by(RouteSegment.segment_order).all()


def _detail(report, route):
    return next(d for d in report.per_route_detail if d.route_id == route.id)


class TestSources:
    def test_via_split_equally(self, db, migrator, make_route):
        route = make_route("Kampala", "Gulu", via="Luwero, Karuma", distance=300, duration=360, price=36000)
        report = migrator.migrate()
        detail = _detail(report, route)
        assert detail.status == "migrated"
        assert detail.source == "via"
        segments = _segments(db, route)
        assert [(s.from_location, s.to_location) for s in segments] == [
            ("Kampala", "Luwero"), ("Luwero", "Karuma"), ("Karuma", "Gulu"),
        ]
        assert [s.base_price for s in segments] == [Decimal("12000")] * 3
        db.refresh(route)
        assert route.segment_enabled is True

    def test_endpoints_only(self, db, migrator, make_route):
        route = make_route("Kampala", "Mbarara", distance=266, duration=300, price=30000)
        detail = _detail(migrator.migrate(), route)
        assert detail.source == "endpoints"
        assert detail.segments_created == 1
        assert _segments(db, route)[0].base_price == Decimal("30000")

    def test_route_stops_preferred_over_via(self, db, migrator, make_route, add_stops):
        route = make_route("Kampala", "Mbale", via="Jinja,Tororo", distance=245, duration=270, price=30000)
        add_stops(route, [("Jinja", 80, 10000, 90), ("Iganga", 120, 15000, 135)])
        detail = _detail(migrator.migrate(), route)
        assert detail.source == "route_stops"
        segments = _segments(db, route)
        assert [s.to_location for s in segments] == ["Jinja", "Iganga", "Mbale"]
        assert [s.base_price for s in segments] == [Decimal("10000"), Decimal("5000"), Decimal("15000")]
        assert [s.duration_minutes for s in segments] == [90, 45, 135]

    def test_negative_cumulative_delta_flagged(self, db, migrator, make_route, add_stops):
        route = make_route("Kampala", "Mbale", distance=245, duration=270, price=30000)
        add_stops(route, [("Jinja", 80, 20000, None), ("Iganga", 120, 15000, None)])
        detail = _detail(migrator.migrate(), route)
        assert detail.status == "migrated"
        assert detail.flagged_segments == 1
        assert [s.needs_review for s in _segments(db, route)] == [False, True, False]


class TestBatchBehaviour:
    def test_segmented_routes_skipped_by_default(self, migrator, fort_portal_route):
        detail = _detail(migrator.migrate(), fort_portal_route)
        assert detail.status == "skipped"

    def test_second_run_changes_nothing(self, db, migrator, make_route):
        route = make_route("Kampala", "Gulu", via="Luwero", distance=300, price=30000)
        migrator.migrate()
        before = [(s.id, s.base_price) for s in _segments(db, route)]
        report = migrator.migrate()
        assert report.migrated == 0
        assert report.skipped == 1
        assert [(s.id, s.base_price) for s in _segments(db, route)] == before

    def test_force_rebuilds_segments(self, db, migrator, fort_portal_route):
        report = migrator.migrate(MigrationRequest(force=True))
        assert _detail(report, fort_portal_route).status == "migrated"
        segments = _segments(db, fort_portal_route)
        assert len(segments) == 3
        assert [s.base_price for s in segments] == [Decimal("13333"), Decimal("13333"), Decimal("13334")]

    def test_dry_run_writes_nothing(self, db, migrator, make_route):
        route = make_route("Kampala", "Gulu", via="Luwero", distance=300, price=30000)
        report = migrator.migrate(MigrationRequest(dry_run=True))
        assert report.dry_run is True
        assert _detail(report, route).segments_created == 2
        assert _segments(db, route) == []

    def test_failure_does_not_stop_batch(self, db, migrator, make_route):
        broken = make_route("Kampala", "Gulu", via="Kampala", distance=300, price=30000)
        good = make_route("Kampala", "Mbarara", distance=266, price=30000)
        report = migrator.migrate()
        assert report.failed == 1
        assert report.migrated == 1
        assert _detail(report, broken).status == "failed"
        assert _detail(report, broken).reason
        assert _segments(db, broken) == []
        assert len(_segments(db, good)) == 1

    def test_route_ids_filter(self, migrator, make_route):
        picked = make_route("Kampala", "Gulu", price=30000)
        make_route("Kampala", "Mbarara", price=30000)
        report = migrator.migrate(MigrationRequest(route_ids=[picked.id]))
        assert report.total_routes_processed == 1
        assert report.per_route_detail[0].route_id == picked.id

    def test_inactive_routes_need_opt_in(self, migrator, make_route):
        make_route("Kampala", "Gulu", price=30000, active=False)
        assert migrator.migrate().total_routes_processed == 0
        assert migrator.migrate(MigrationRequest(include_inactive=True)).migrated == 1


class TestCommandLine:
    def test_flags_map_to_request(self):
        from migrate_segments import parse_args

        args = parse_args(["--force", "--dry-run", "--route-id", "3", "--route-id", "7"])
        assert args.force is True
        assert args.dry_run is True
        assert args.route_ids == [3, 7]
        assert args.include_inactive is False

    def test_defaults(self):
        from migrate_segments import parse_args

        args = parse_args([])
        assert args.route_ids is None
        assert args.force is False
