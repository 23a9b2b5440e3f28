import logging
from typing import List, Optional

from sqlalchemy.orm import Session, selectinload

from busnet.database import transaction
from busnet.exceptions import ChainIntegrityError, NotFoundError, ValidationError
from busnet.models import Route, RouteSegment, SegmentPriceVariation
from busnet.segments.date_specs import parse_date_spec, to_storage
from busnet.segments.decomposer import SegmentDecomposer, round_distance, round_price
from busnet.segments.fare_resolver import normalize_adjustment_type, normalize_variation_type
from busnet.segments.schemas import (
    SegmentCreate, SegmentHop, SegmentSetReplace, SegmentUpdate, VariationCreate, VariationUpdate
)
from busnet.segments.validation import ChainLink, SegmentChainValidator

logger = logging.getLogger(__name__)


class SegmentAdminService:
    """CRUD for segments and price variations.

    Every segment write is checked against the whole resulting chain before
    anything is flushed, and runs in one transaction per route.
    """

    def __init__(self, db: Session):
        self.db = db
        self.validator = SegmentChainValidator()
        self.decomposer = SegmentDecomposer()

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------
    def get_route(self, route_id: int) -> Route:
        route = self.db.query(Route).options(
            selectinload(Route.segments).selectinload(RouteSegment.price_variations)
        ).filter(Route.id == route_id).first()
        if not route:
            raise NotFoundError(f"Route {route_id} not found")
        return route

    def get_segment(self, segment_id: int) -> RouteSegment:
        segment = self.db.query(RouteSegment).filter(RouteSegment.id == segment_id).first()
        if not segment:
            raise NotFoundError(f"Segment {segment_id} not found")
        return segment

    def get_variation(self, variation_id: int) -> SegmentPriceVariation:
        variation = self.db.query(SegmentPriceVariation).filter(
            SegmentPriceVariation.id == variation_id
        ).first()
        if not variation:
            raise NotFoundError(f"Price variation {variation_id} not found")
        return variation

    def list_segments(self, route_id: int) -> List[RouteSegment]:
        return list(self.get_route(route_id).segments)

    # ------------------------------------------------------------------
    # Segment writes
    # ------------------------------------------------------------------
    def _check_chain(self, route_id: int, links: List[ChainLink], action: str) -> None:
        try:
            self.validator.validate_chain(links)
        except ChainIntegrityError as e:
            logger.warning("Rejected %s on route %s: %s", action, route_id, e.message)
            raise

    def replace_segments(self, route_id: int, data: SegmentSetReplace) -> List[RouteSegment]:
        """Swap a route's whole segment set for one built from a location sequence"""
        route = self.get_route(route_id)
        first, rest = data.locations[0], data.locations[1:]
        drafts = self.decomposer.from_hops(
            first.name,
            [
                SegmentHop(
                    to_location=location.name,
                    distance_km=location.distance_km,
                    duration_minutes=location.duration_minutes,
                    base_price=location.price,
                )
                for location in rest
            ],
        )
        self._check_chain(route_id, drafts, "segment replace")

        with transaction(self.db):
            route.segments.clear()
            self.db.flush()
            for draft in drafts:
                route.segments.append(RouteSegment(**draft.model_dump()))
            route.segment_enabled = True

        logger.info("Replaced segments of route %s with %d segment(s)", route_id, len(drafts))
        return self.list_segments(route_id)

    def create_segment(self, route_id: int, data: SegmentCreate) -> RouteSegment:
        """Insert a segment at ``segment_order`` (default: append)"""
        route = self.get_route(route_id)
        existing = list(route.segments)
        position = data.segment_order or len(existing) + 1
        if position > len(existing) + 1:
            raise ChainIntegrityError(
                f"Segment order {position} would leave a gap; route has {len(existing)} segment(s)"
            )

        from_location = data.from_location.strip()
        to_location = data.to_location.strip()
        if not from_location or not to_location:
            raise ValidationError("Segment locations cannot be blank")

        links = [
            ChainLink(
                s.segment_order + 1 if s.segment_order >= position else s.segment_order,
                s.from_location,
                s.to_location,
            )
            for s in existing
        ]
        links.append(ChainLink(position, from_location, to_location))
        self._check_chain(route_id, links, "segment insert")

        with transaction(self.db):
            # Shift from the end so every target order is already free
            for shifted in sorted(existing, key=lambda s: s.segment_order, reverse=True):
                if shifted.segment_order >= position:
                    shifted.segment_order += 1
                    self.db.flush()
            segment = RouteSegment(
                route_id=route.id,
                segment_order=position,
                from_location=from_location,
                to_location=to_location,
                distance_km=round_distance(data.distance_km),
                duration_minutes=data.duration_minutes,
                base_price=round_price(data.base_price),
            )
            self.db.add(segment)
            route.segment_enabled = True

        self.db.refresh(segment)
        return segment

    def update_segment(self, segment_id: int, data: SegmentUpdate) -> RouteSegment:
        segment = self.get_segment(segment_id)
        updates = data.model_dump(exclude_unset=True)

        for key in ("from_location", "to_location"):
            if key in updates:
                if updates[key] is None or not updates[key].strip():
                    raise ValidationError(f"{key} cannot be blank", field=key)
                updates[key] = updates[key].strip()

        if "from_location" in updates or "to_location" in updates:
            siblings = self.list_segments(segment.route_id)
            links = [
                ChainLink(
                    s.segment_order,
                    updates.get("from_location", s.from_location) if s.id == segment.id else s.from_location,
                    updates.get("to_location", s.to_location) if s.id == segment.id else s.to_location,
                )
                for s in siblings
            ]
            self._check_chain(segment.route_id, links, f"update of segment {segment_id}")

        if updates.get("distance_km") is not None:
            updates["distance_km"] = round_distance(updates["distance_km"])
        if updates.get("base_price") is not None:
            updates["base_price"] = round_price(updates["base_price"])

        with transaction(self.db):
            for key, value in updates.items():
                if value is not None:
                    setattr(segment, key, value)

        self.db.refresh(segment)
        return segment

    def delete_segment(self, segment_id: int) -> None:
        """Remove a segment; only chain ends can go without breaking continuity"""
        segment = self.get_segment(segment_id)
        route = self.get_route(segment.route_id)
        remaining = [s for s in route.segments if s.id != segment.id]

        links = [
            ChainLink(index + 1, s.from_location, s.to_location)
            for index, s in enumerate(sorted(remaining, key=lambda s: s.segment_order))
        ]
        self._check_chain(route.id, links, f"delete of segment {segment_id}")

        with transaction(self.db):
            route.segments.remove(segment)
            self.db.flush()
            for index, s in enumerate(sorted(remaining, key=lambda s: s.segment_order)):
                if s.segment_order != index + 1:
                    s.segment_order = index + 1
                    self.db.flush()
            if not remaining:
                route.segment_enabled = False

    # ------------------------------------------------------------------
    # Price variations
    # ------------------------------------------------------------------
    def list_variations(self, segment_id: int, include_inactive: bool = True) -> List[SegmentPriceVariation]:
        segment = self.get_segment(segment_id)
        return [v for v in segment.price_variations if include_inactive or v.active]

    def create_variation(self, segment_id: int, data: VariationCreate) -> SegmentPriceVariation:
        segment = self.get_segment(segment_id)
        variation = SegmentPriceVariation(
            segment_id=segment.id,
            variation_type=normalize_variation_type(data.variation_type),
            price_adjustment=data.price_adjustment,
            adjustment_type=normalize_adjustment_type(data.adjustment_type),
            applies_to_dates=to_storage(parse_date_spec(data.applies_to_dates)),
            active=data.active,
        )
        with transaction(self.db):
            self.db.add(variation)
        self.db.refresh(variation)
        return variation

    def update_variation(self, variation_id: int, data: VariationUpdate) -> SegmentPriceVariation:
        variation = self.get_variation(variation_id)
        updates = data.model_dump(exclude_unset=True)

        if updates.get("variation_type") is not None:
            updates["variation_type"] = normalize_variation_type(updates["variation_type"])
        if updates.get("adjustment_type") is not None:
            updates["adjustment_type"] = normalize_adjustment_type(updates["adjustment_type"])
        if updates.get("applies_to_dates") is not None:
            updates["applies_to_dates"] = to_storage(parse_date_spec(updates["applies_to_dates"]))

        with transaction(self.db):
            for key, value in updates.items():
                if value is not None:
                    setattr(variation, key, value)
        self.db.refresh(variation)
        return variation

    def toggle_variation(self, variation_id: int, active: Optional[bool] = None) -> SegmentPriceVariation:
        """Set ``active`` explicitly, or flip it when not given"""
        variation = self.get_variation(variation_id)
        with transaction(self.db):
            variation.active = (not variation.active) if active is None else active
        self.db.refresh(variation)
        return variation

    def delete_variation(self, variation_id: int) -> None:
        variation = self.get_variation(variation_id)
        with transaction(self.db):
            self.db.delete(variation)
