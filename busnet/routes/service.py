from sqlalchemy.orm import Session
from typing import List, Optional, Tuple

from busnet.database import transaction
from busnet.exceptions import NotFoundError, ValidationError
from busnet.models import Route, RouteSegment, RouteStop
from busnet.routes.schemas import RouteCreate, RouteUpdate, RouteStopCreate
from busnet.segments.validation import normalize_location


class RouteService:
    @staticmethod
    def get_route_by_id(db: Session, route_id: int) -> Route:
        route = db.query(Route).filter(Route.id == route_id).first()
        if not route:
            raise NotFoundError(f"Route {route_id} not found")
        return route

    @staticmethod
    def get_routes(
        db: Session,
        skip: int = 0,
        limit: int = 50,
        active: Optional[bool] = None,
        segment_enabled: Optional[bool] = None,
        query: Optional[str] = None
    ) -> Tuple[List[Route], int]:
        """Get routes with optional filters"""
        q = db.query(Route)
        if active is not None:
            q = q.filter(Route.active == active)
        if segment_enabled is not None:
            q = q.filter(Route.segment_enabled == segment_enabled)
        if query:
            q = q.filter(Route.origin.ilike(f"%{query}%") | Route.destination.ilike(f"%{query}%"))

        total = q.count()
        routes = q.order_by(Route.id).offset(skip).limit(limit).all()
        return routes, total

    @staticmethod
    def create_route(db: Session, data: RouteCreate) -> Route:
        if normalize_location(data.origin) == normalize_location(data.destination):
            raise ValidationError("Origin and destination cannot be the same", field="destination")

        route = Route(
            origin=data.origin.strip(),
            destination=data.destination.strip(),
            via=data.via,
            distance=data.distance,
            duration=data.duration,
            price=data.price,
            departure_time=data.departure_time,
            active=data.active,
            segment_enabled=False
        )
        with transaction(db):
            db.add(route)
        db.refresh(route)
        return route

    @staticmethod
    def update_route(db: Session, route_id: int, data: RouteUpdate) -> Route:
        """Update route fields; existing segments are left to the segment admin"""
        route = RouteService.get_route_by_id(db, route_id)
        updates = data.model_dump(exclude_unset=True)

        origin = updates.get("origin") or route.origin
        destination = updates.get("destination") or route.destination
        if normalize_location(origin) == normalize_location(destination):
            raise ValidationError("Origin and destination cannot be the same", field="destination")

        with transaction(db):
            for key, value in updates.items():
                if key == "via" or value is not None:
                    setattr(route, key, value)
        db.refresh(route)
        return route

    @staticmethod
    def deactivate_route(db: Session, route_id: int) -> Route:
        route = RouteService.get_route_by_id(db, route_id)
        with transaction(db):
            route.active = False
        db.refresh(route)
        return route

    @staticmethod
    def add_route_stop(db: Session, route_id: int, data: RouteStopCreate) -> RouteStop:
        """Record a legacy cumulative stop for later migration"""
        route = RouteService.get_route_by_id(db, route_id)
        if any(stop.order == data.order for stop in route.stops):
            raise ValidationError(f"Route {route_id} already has a stop with order {data.order}", field="order")

        stop = RouteStop(
            route_id=route.id,
            stop_name=data.stop_name.strip(),
            distance_from_origin=data.distance_from_origin,
            price_from_origin=data.price_from_origin,
            duration_from_origin=data.duration_from_origin,
            order=data.order
        )
        with transaction(db):
            db.add(stop)
        db.refresh(stop)
        return stop

    @staticmethod
    def get_route_stops(db: Session, route_id: int) -> List[RouteStop]:
        return list(RouteService.get_route_by_id(db, route_id).stops)

    @staticmethod
    def get_boarding_points(db: Session) -> List[str]:
        """Route origins plus every segment start on active routes"""
        names = {origin for (origin,) in db.query(Route.origin).filter(Route.active == True)}  # noqa: E712
        names.update(
            name for (name,) in db.query(RouteSegment.from_location).join(Route).filter(
                Route.active == True, Route.segment_enabled == True  # noqa: E712
            )
        )
        return sorted(names, key=str.lower)

    @staticmethod
    def get_alighting_points(db: Session) -> List[str]:
        """Route destinations plus every segment end on active routes"""
        names = {destination for (destination,) in db.query(Route.destination).filter(Route.active == True)}  # noqa: E712
        names.update(
            name for (name,) in db.query(RouteSegment.to_location).join(Route).filter(
                Route.active == True, Route.segment_enabled == True  # noqa: E712
            )
        )
        return sorted(names, key=str.lower)
