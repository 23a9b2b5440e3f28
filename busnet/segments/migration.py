"""
Legacy route migration.

Converts routes that predate the segment model into canonical RouteSegment rows.
Source data is picked per route, richest first:

1. ``route_stops`` - cumulative RouteStop rows, decomposed by delta
2. ``via``        - the flat stopover list, totals split equally
3. ``endpoints``  - no stopovers at all, one origin -> destination segment

This module is the only place that knows which legacy shape a route came from.
"""

import logging
from typing import List, Tuple

from sqlalchemy.orm import Session, selectinload

from busnet.database import transaction
from busnet.exceptions import BusNetError, MigrationPartialFailure
from busnet.models import Route, RouteSegment
from busnet.segments.decomposer import SegmentDecomposer, build_cumulative_chain
from busnet.segments.schemas import (
    CumulativeStop, MigrationReport, MigrationRequest, MigrationRouteDetail, SegmentDraft
)
from busnet.segments.validation import SegmentChainValidator

logger = logging.getLogger(__name__)


class LegacyRouteMigrator:
    """Batch job turning legacy routes into segment-enabled routes"""

    def __init__(self, db: Session, decomposer: SegmentDecomposer = None):
        self.db = db
        self.decomposer = decomposer or SegmentDecomposer()
        self.validator = SegmentChainValidator()

    def _load_routes(self, request: MigrationRequest) -> List[Route]:
        query = self.db.query(Route).options(
            selectinload(Route.segments),
            selectinload(Route.stops),
        )
        if not request.include_inactive:
            query = query.filter(Route.active == True)  # noqa: E712
        if request.route_ids:
            query = query.filter(Route.id.in_(request.route_ids))
        return query.order_by(Route.id).all()

    def plan_segments(self, route: Route) -> Tuple[List[SegmentDraft], str]:
        """Decompose a route from its richest legacy source"""
        if route.stops:
            stops = [
                CumulativeStop(
                    name=stop.stop_name,
                    distance_from_origin=stop.distance_from_origin,
                    price_from_origin=stop.price_from_origin,
                    duration_from_origin=stop.duration_from_origin,
                )
                for stop in sorted(route.stops, key=lambda s: s.order)
            ]
            chain = build_cumulative_chain(
                route.origin, route.destination, stops,
                total_distance=route.distance,
                total_price=route.price,
                total_duration=route.duration,
            )
            return self.decomposer.from_cumulative(chain, total_duration=route.duration), "route_stops"

        stopovers = route.stopovers
        source = "via" if stopovers else "endpoints"
        drafts = self.decomposer.equal_split(
            [route.origin, *stopovers, route.destination],
            total_distance=route.distance,
            total_duration=route.duration,
            total_price=route.price,
        )
        return drafts, source

    def migrate_route(self, route: Route, force: bool = False, dry_run: bool = False) -> MigrationRouteDetail:
        """Migrate one route; its segment set is replaced as a single unit"""
        if route.segments and not force:
            return MigrationRouteDetail(
                route_id=route.id,
                status="skipped",
                reason=f"Route already has {len(route.segments)} segment(s)",
            )

        try:
            drafts, source = self.plan_segments(route)
            self.validator.validate_chain(drafts)
        except BusNetError as e:
            raise MigrationPartialFailure(route.id, e.message)

        flagged = sum(1 for draft in drafts if draft.needs_review)
        detail = MigrationRouteDetail(
            route_id=route.id,
            status="migrated",
            source=source,
            segments_created=len(drafts),
            flagged_segments=flagged,
        )
        if dry_run:
            detail.reason = "Dry run: no changes written"
            return detail

        with transaction(self.db):
            route.segments.clear()
            # Old rows must be gone before new ones reuse their orders
            self.db.flush()
            for draft in drafts:
                route.segments.append(RouteSegment(**draft.model_dump()))
            route.segment_enabled = True

        if flagged:
            detail.reason = f"{flagged} segment(s) flagged for manual review"
        return detail

    def migrate(self, request: MigrationRequest = None) -> MigrationReport:
        """Run the batch; a failing route is recorded and the batch continues"""
        request = request or MigrationRequest()
        routes = self._load_routes(request)
        logger.info(
            "Starting segment migration of %d route(s) (force=%s, dry_run=%s)",
            len(routes), request.force, request.dry_run,
        )

        details = []
        for route in routes:
            route_id = route.id
            try:
                detail = self.migrate_route(route, force=request.force, dry_run=request.dry_run)
            except MigrationPartialFailure as e:
                self.db.rollback()
                logger.error("Migration failed for route %s: %s", route_id, e.reason)
                detail = MigrationRouteDetail(route_id=route_id, status="failed", reason=e.reason)
            except Exception as e:
                self.db.rollback()
                logger.exception("Unexpected error migrating route %s", route_id)
                detail = MigrationRouteDetail(route_id=route_id, status="failed", reason=str(e))
            else:
                logger.info(
                    "Route %s: %s (source=%s, segments=%d)",
                    route_id, detail.status, detail.source, detail.segments_created,
                )
            details.append(detail)

        report = MigrationReport(
            total_routes_processed=len(details),
            migrated=sum(1 for d in details if d.status == "migrated"),
            skipped=sum(1 for d in details if d.status == "skipped"),
            failed=sum(1 for d in details if d.status == "failed"),
            dry_run=request.dry_run,
            per_route_detail=details,
        )
        logger.info(
            "Segment migration finished: %d migrated, %d skipped, %d failed",
            report.migrated, report.skipped, report.failed,
        )
        return report
