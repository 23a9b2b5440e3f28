import logging
import secrets
from typing import List, Optional

from sqlalchemy.orm import Session, selectinload

from busnet.database import transaction
from busnet.exceptions import NotFoundError, ValidationError
from busnet.models import Booking, Route, RouteSegment
from busnet.bookings.schemas import BookingCreate
from busnet.segments.search import SegmentPathSearch

logger = logging.getLogger(__name__)


class BookingService:
    """Books a seat against a fare quote.

    The quote is priced once, at booking time, and stored as a snapshot.
    Later edits to segments or price variations never change it.
    """

    def __init__(self, db: Session):
        self.db = db

    def _generate_booking_reference(self) -> str:
        """Generate human-readable booking reference"""
        while True:
            reference = f"BN{secrets.token_hex(4).upper()}"
            exists = self.db.query(Booking.id).filter(Booking.booking_reference == reference).first()
            if not exists:
                return reference

    def create_booking(self, data: BookingCreate) -> Booking:
        route = self.db.query(Route).options(
            selectinload(Route.segments).selectinload(RouteSegment.price_variations)
        ).filter(Route.id == data.route_id).first()
        if not route:
            raise NotFoundError(f"Route {data.route_id} not found")
        if not route.active:
            raise ValidationError(f"Route {data.route_id} is not active", field="route_id")

        quote = SegmentPathSearch(self.db).quote_route(route, data.origin, data.destination, data.travel_date)
        if quote is None:
            raise ValidationError(
                f"Route {route.id} does not travel from {data.origin} to {data.destination}",
                field="destination"
            )

        booking = Booking(
            booking_reference=self._generate_booking_reference(),
            route_id=route.id,
            passenger_name=data.passenger_name.strip(),
            travel_date=data.travel_date,
            total_price=quote.total_price,
            fare_quote=quote.model_dump(mode="json"),
        )
        with transaction(self.db):
            self.db.add(booking)
        self.db.refresh(booking)

        logger.info(
            "Booking %s created on route %s (%s -> %s) for %s %s",
            booking.booking_reference, route.id, quote.pickup_location,
            quote.dropoff_location, quote.total_price, quote.currency,
        )
        return booking

    def get_booking(self, booking_reference: str) -> Booking:
        booking = self.db.query(Booking).filter(
            Booking.booking_reference == booking_reference.upper()
        ).first()
        if not booking:
            raise NotFoundError(f"Booking {booking_reference} not found")
        return booking

    def list_bookings(self, route_id: Optional[int] = None) -> List[Booking]:
        query = self.db.query(Booking)
        if route_id is not None:
            query = query.filter(Booking.route_id == route_id)
        return query.order_by(Booking.id.desc()).all()
