import logging
from datetime import date
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session, selectinload

from busnet.config import settings
from busnet.models import Route, RouteSegment
from busnet.segments.decomposer import round_distance, round_price
from busnet.segments.fare_resolver import FareVariationResolver
from busnet.segments.schemas import FareQuote, SegmentPathItem
from busnet.segments.validation import normalize_location, validate_search_terms

logger = logging.getLogger(__name__)


def departure_sort_key(departure_time: Optional[str]) -> int:
    """Minutes after midnight; unknown times sort last"""
    try:
        hours, minutes = (departure_time or "").split(":")[:2]
        return int(hours) * 60 + int(minutes)
    except ValueError:
        return 24 * 60


def find_sub_chain(
    segments: List[RouteSegment],
    origin_key: str,
    destination_key: str,
) -> Optional[Tuple[int, int]]:
    """Indices (start, end) of the contiguous run from origin to destination.

    Travel only runs in segment order; the reverse trip is a separate route.
    """
    for start, segment in enumerate(segments):
        if normalize_location(segment.from_location) != origin_key:
            continue
        for end in range(start, len(segments)):
            if normalize_location(segments[end].to_location) == destination_key:
                return start, end
        return None
    return None


class SegmentPathSearch:
    """Origin/destination fare search across whole and partial routes"""

    def __init__(self, db: Session, resolver: FareVariationResolver = None):
        self.db = db
        self.resolver = resolver or FareVariationResolver()

    def _active_routes(self) -> List[Route]:
        return self.db.query(Route).options(
            selectinload(Route.segments).selectinload(RouteSegment.price_variations)
        ).filter(
            Route.active == True  # noqa: E712
        ).order_by(Route.id).all()

    def search(
        self,
        origin: str,
        destination: str,
        travel_date: Optional[date] = None,
        limit: Optional[int] = None,
    ) -> List[FareQuote]:
        """Ranked fare quotes; an empty list means no route serves the trip"""
        origin_key, destination_key = validate_search_terms(origin, destination)

        quotes = []
        for route in self._active_routes():
            quote = self._quote(route, origin_key, destination_key, travel_date)
            if quote is not None:
                quotes.append(quote)

        quotes.sort(key=lambda q: (
            0 if q.match_type == "full" else 1,
            q.total_price,
            departure_sort_key(q.departure_time),
            q.route_id,
        ))

        logger.debug(
            "Segment search %s -> %s on %s: %d result(s)",
            origin, destination, travel_date, len(quotes),
        )
        return quotes[: limit or settings.SEARCH_MAX_RESULTS]

    def quote_route(
        self,
        route: Route,
        origin: str,
        destination: str,
        travel_date: Optional[date] = None,
    ) -> Optional[FareQuote]:
        """Quote a single route, or None when it does not serve the trip"""
        origin_key, destination_key = validate_search_terms(origin, destination)
        return self._quote(route, origin_key, destination_key, travel_date)

    def _quote(
        self,
        route: Route,
        origin_key: str,
        destination_key: str,
        travel_date: Optional[date],
    ) -> Optional[FareQuote]:
        quote = None
        if route.segment_enabled and route.segments:
            quote = self._segment_quote(route, origin_key, destination_key, travel_date)
        if quote is None:
            quote = self._flat_quote(route, origin_key, destination_key, travel_date)
        return quote

    def _segment_quote(
        self,
        route: Route,
        origin_key: str,
        destination_key: str,
        travel_date: Optional[date],
    ) -> Optional[FareQuote]:
        segments = list(route.segments)
        bounds = find_sub_chain(segments, origin_key, destination_key)
        if bounds is None:
            return None

        start, end = bounds
        path = []
        for segment in segments[start:end + 1]:
            fare = self.resolver.resolve(segment, travel_date)
            path.append(SegmentPathItem(
                segment_id=segment.id,
                segment_order=segment.segment_order,
                from_location=segment.from_location,
                to_location=segment.to_location,
                distance_km=round_distance(segment.distance_km),
                duration_minutes=segment.duration_minutes or 0,
                base_price=fare.base_price,
                resolved_price=fare.final_price,
                adjustment=fare.adjustment,
            ))

        return FareQuote(
            route_id=route.id,
            origin=route.origin,
            destination=route.destination,
            pickup_location=path[0].from_location,
            dropoff_location=path[-1].to_location,
            departure_time=route.departure_time,
            match_type="full" if start == 0 and end == len(segments) - 1 else "partial",
            segmented=True,
            segment_path=path,
            total_distance=sum((item.distance_km for item in path), Decimal("0")),
            total_duration=sum(item.duration_minutes for item in path),
            base_total_price=sum((item.base_price for item in path), Decimal("0")),
            total_price=sum((item.resolved_price for item in path), Decimal("0")),
            travel_date=travel_date,
            currency=settings.CURRENCY,
        )

    def _flat_quote(
        self,
        route: Route,
        origin_key: str,
        destination_key: str,
        travel_date: Optional[date],
    ) -> Optional[FareQuote]:
        if normalize_location(route.origin) != origin_key:
            return None
        if normalize_location(route.destination) != destination_key:
            return None

        price = max(round_price(route.price), Decimal("0"))
        return FareQuote(
            route_id=route.id,
            origin=route.origin,
            destination=route.destination,
            pickup_location=route.origin,
            dropoff_location=route.destination,
            departure_time=route.departure_time,
            match_type="full",
            segmented=False,
            segment_path=[],
            total_distance=round_distance(route.distance),
            total_duration=route.duration or 0,
            base_total_price=price,
            total_price=price,
            travel_date=travel_date,
            currency=settings.CURRENCY,
        )
