from fastapi import APIRouter, Depends, HTTPException, status, Query, File, UploadFile
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import date
import io

from busnet.database import get_db
from busnet.segments.schemas import (
    Segment, SegmentList, SegmentCreate, SegmentUpdate, SegmentSetReplace,
    PriceVariation, VariationCreate, VariationUpdate, ResolvedSegmentFare,
    SegmentSearchResponse, MigrationRequest, MigrationReport, StopImportResult
)
from busnet.segments.admin_service import SegmentAdminService
from busnet.segments.bulk_service import SegmentBulkService
from busnet.segments.fare_resolver import FareVariationResolver
from busnet.segments.migration import LegacyRouteMigrator
from busnet.segments.search import SegmentPathSearch

router = APIRouter()

# Search
@router.get("/search", response_model=SegmentSearchResponse)
def search_segments(
    origin: str = Query(..., min_length=1, description="Boarding point (route origin or stopover)"),
    destination: str = Query(..., min_length=1, description="Alighting point (stopover or route destination)"),
    travel_date: Optional[date] = Query(None, description="Travel date used for fare variations"),
    limit: Optional[int] = Query(None, ge=1, le=100, description="Maximum number of results"),
    db: Session = Depends(get_db)
):
    """Search whole and partial routes between two stops, cheapest full routes first"""
    results = SegmentPathSearch(db).search(origin, destination, travel_date, limit=limit)
    return SegmentSearchResponse(
        origin=origin,
        destination=destination,
        travel_date=travel_date,
        total_results=len(results),
        results=results
    )

# Migration & bulk endpoints
@router.post("/migrate", response_model=MigrationReport)
def migrate_routes(
    request: MigrationRequest,
    db: Session = Depends(get_db)
):
    """Convert legacy routes into segment-enabled routes"""
    return LegacyRouteMigrator(db).migrate(request)

@router.get("/export")
def export_segments(
    route_id: Optional[int] = Query(None, description="Only export this route's segments"),
    db: Session = Depends(get_db)
):
    """Export segments to CSV"""
    content = SegmentBulkService(db).export_segments(route_id)
    filename = f"route_{route_id}_segments.csv" if route_id else "route_segments.csv"
    return StreamingResponse(
        io.BytesIO(content),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"}
    )

@router.post("/import/stops", response_model=StopImportResult)
def import_route_stops(
    file: UploadFile = File(...),
    db: Session = Depends(get_db)
):
    """Bulk import legacy route stops from CSV/Excel for later migration"""
    if not file.filename.endswith(('.csv', '.xlsx')):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Only CSV and Excel files are supported")

    content = file.file.read()
    return SegmentBulkService(db).import_route_stops(content, file.filename)

# Route segment sets
@router.get("/route/{route_id}", response_model=SegmentList)
def get_route_segments(
    route_id: int,
    db: Session = Depends(get_db)
):
    """Get all segments of a route in travel order"""
    segments = SegmentAdminService(db).list_segments(route_id)
    return SegmentList(route_id=route_id, count=len(segments), segments=segments)

@router.put("/route/{route_id}", response_model=SegmentList)
def replace_route_segments(
    route_id: int,
    request: SegmentSetReplace,
    db: Session = Depends(get_db)
):
    """Replace a route's segments from an ordered location sequence"""
    segments = SegmentAdminService(db).replace_segments(route_id, request)
    return SegmentList(route_id=route_id, count=len(segments), segments=segments)

@router.post("/route/{route_id}", response_model=Segment, status_code=status.HTTP_201_CREATED)
def create_route_segment(
    route_id: int,
    request: SegmentCreate,
    db: Session = Depends(get_db)
):
    """Add a single segment at either end of a route's chain"""
    return SegmentAdminService(db).create_segment(route_id, request)

# Price variations
@router.patch("/variations/{variation_id}", response_model=PriceVariation)
def update_price_variation(
    variation_id: int,
    request: VariationUpdate,
    db: Session = Depends(get_db)
):
    """Update a price variation"""
    return SegmentAdminService(db).update_variation(variation_id, request)

@router.post("/variations/{variation_id}/toggle", response_model=PriceVariation)
def toggle_price_variation(
    variation_id: int,
    active: Optional[bool] = Query(None, description="Target state; flips the current state when omitted"),
    db: Session = Depends(get_db)
):
    """Activate or deactivate a price variation without deleting it"""
    return SegmentAdminService(db).toggle_variation(variation_id, active)

@router.delete("/variations/{variation_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_price_variation(
    variation_id: int,
    db: Session = Depends(get_db)
):
    """Delete a price variation"""
    SegmentAdminService(db).delete_variation(variation_id)

# Single segments
@router.patch("/{segment_id}", response_model=Segment)
def update_segment(
    segment_id: int,
    request: SegmentUpdate,
    db: Session = Depends(get_db)
):
    """Update a segment's price, distance, duration or boundary names"""
    return SegmentAdminService(db).update_segment(segment_id, request)

@router.delete("/{segment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_segment(
    segment_id: int,
    db: Session = Depends(get_db)
):
    """Delete the first or last segment of a route"""
    SegmentAdminService(db).delete_segment(segment_id)

@router.get("/{segment_id}/fare", response_model=ResolvedSegmentFare)
def get_segment_fare(
    segment_id: int,
    travel_date: Optional[date] = Query(None, description="Travel date used for fare variations"),
    db: Session = Depends(get_db)
):
    """Resolve a segment's price for a travel date"""
    segment = SegmentAdminService(db).get_segment(segment_id)
    return FareVariationResolver().resolve(segment, travel_date)

@router.get("/{segment_id}/variations", response_model=List[PriceVariation])
def list_price_variations(
    segment_id: int,
    include_inactive: bool = Query(True, description="Include deactivated variations"),
    db: Session = Depends(get_db)
):
    """List a segment's price variations"""
    return SegmentAdminService(db).list_variations(segment_id, include_inactive)

@router.post("/{segment_id}/variations", response_model=PriceVariation, status_code=status.HTTP_201_CREATED)
def create_price_variation(
    segment_id: int,
    request: VariationCreate,
    db: Session = Depends(get_db)
):
    """Add a date-based price variation (weekend/holiday premium, etc.)"""
    return SegmentAdminService(db).create_variation(segment_id, request)
