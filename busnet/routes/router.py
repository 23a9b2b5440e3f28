from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional

from busnet.database import get_db
from busnet.routes.schemas import (
    Route, RouteCreate, RouteUpdate, RouteSearchResult, RouteStop, RouteStopCreate
)
from busnet.routes.service import RouteService

router = APIRouter()

@router.get("/", response_model=RouteSearchResult)
def list_routes(
    page: int = Query(1, ge=1, description="Page number"),
    per_page: int = Query(20, ge=1, le=100, description="Items per page"),
    active: Optional[bool] = Query(None, description="Filter by active flag"),
    segment_enabled: Optional[bool] = Query(None, description="Filter by segment pricing flag"),
    query: Optional[str] = Query(None, description="Match origin or destination"),
    db: Session = Depends(get_db)
):
    """List routes with pagination"""
    skip = (page - 1) * per_page
    routes, total = RouteService.get_routes(
        db, skip=skip, limit=per_page, active=active, segment_enabled=segment_enabled, query=query
    )
    return RouteSearchResult(
        routes=[Route.model_validate(route) for route in routes],
        total=total,
        page=page,
        per_page=per_page
    )

@router.post("/", response_model=Route, status_code=status.HTTP_201_CREATED)
def create_route(
    route_data: RouteCreate,
    db: Session = Depends(get_db)
):
    """Create a route (segment pricing starts disabled)"""
    return RouteService.create_route(db, route_data)

@router.get("/suggestions/origins", response_model=List[str])
def origin_suggestions(db: Session = Depends(get_db)):
    """Boarding points: route origins and segment starts"""
    return RouteService.get_boarding_points(db)

@router.get("/suggestions/destinations", response_model=List[str])
def destination_suggestions(db: Session = Depends(get_db)):
    """Alighting points: route destinations and segment ends"""
    return RouteService.get_alighting_points(db)

@router.get("/{route_id}", response_model=Route)
def get_route(
    route_id: int,
    db: Session = Depends(get_db)
):
    return RouteService.get_route_by_id(db, route_id)

@router.patch("/{route_id}", response_model=Route)
def update_route(
    route_id: int,
    route_data: RouteUpdate,
    db: Session = Depends(get_db)
):
    return RouteService.update_route(db, route_id, route_data)

@router.delete("/{route_id}", response_model=Route)
def deactivate_route(
    route_id: int,
    db: Session = Depends(get_db)
):
    """Deactivate a route; its segments and bookings are kept"""
    return RouteService.deactivate_route(db, route_id)

@router.get("/{route_id}/stops", response_model=List[RouteStop])
def get_route_stops(
    route_id: int,
    db: Session = Depends(get_db)
):
    """Legacy cumulative stops recorded for a route"""
    return RouteService.get_route_stops(db, route_id)

@router.post("/{route_id}/stops", response_model=RouteStop, status_code=status.HTTP_201_CREATED)
def add_route_stop(
    route_id: int,
    stop_data: RouteStopCreate,
    db: Session = Depends(get_db)
):
    return RouteService.add_route_stop(db, route_id, stop_data)
