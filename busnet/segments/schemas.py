from pydantic import BaseModel, Field
from typing import List, Optional, Literal, Dict, Any
from datetime import date, datetime
from decimal import Decimal

# ================================
# Decomposer inputs / outputs
# ================================
class CumulativeStop(BaseModel):
    """A stop with values accumulated from the route origin"""
    name: str
    distance_from_origin: Decimal = Decimal("0")
    price_from_origin: Decimal = Decimal("0")
    duration_from_origin: Optional[int] = None

class SegmentHop(BaseModel):
    """Explicit values for the hop arriving at ``to_location``"""
    to_location: str
    distance_km: Decimal = Decimal("0")
    duration_minutes: int = 0
    base_price: Decimal = Decimal("0")

class SegmentDraft(BaseModel):
    """A segment ready to be persisted"""
    segment_order: int
    from_location: str
    to_location: str
    distance_km: Decimal
    duration_minutes: int
    base_price: Decimal
    needs_review: bool = False

# ================================
# Segment admin
# ================================
class LocationInput(BaseModel):
    """One stop in a location sequence; values describe the hop arriving here"""
    name: str
    distance_km: Decimal = Decimal("0")
    duration_minutes: int = 0
    price: Decimal = Decimal("0")

class SegmentSetReplace(BaseModel):
    """Replace a route's whole segment set from an ordered location sequence"""
    locations: List[LocationInput] = Field(..., min_length=2)

class SegmentCreate(BaseModel):
    from_location: str
    to_location: str
    distance_km: Decimal = Field(Decimal("0"), ge=0)
    duration_minutes: int = Field(0, ge=0)
    base_price: Decimal = Field(Decimal("0"), ge=0)
    segment_order: Optional[int] = Field(None, ge=1)  # None appends

class SegmentUpdate(BaseModel):
    from_location: Optional[str] = None
    to_location: Optional[str] = None
    distance_km: Optional[Decimal] = Field(None, ge=0)
    duration_minutes: Optional[int] = Field(None, ge=0)
    base_price: Optional[Decimal] = Field(None, ge=0)
    needs_review: Optional[bool] = None

class PriceVariation(BaseModel):
    id: int
    segment_id: int
    variation_type: str
    price_adjustment: Decimal
    adjustment_type: str
    applies_to_dates: Dict[str, Any]
    active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class Segment(BaseModel):
    id: int
    route_id: int
    segment_order: int
    from_location: str
    to_location: str
    distance_km: Decimal
    duration_minutes: int
    base_price: Decimal
    needs_review: bool = False
    price_variations: List[PriceVariation] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class SegmentList(BaseModel):
    route_id: int
    count: int
    segments: List[Segment]

class VariationCreate(BaseModel):
    variation_type: str
    price_adjustment: Decimal
    adjustment_type: str = "percentage"
    applies_to_dates: Dict[str, Any]
    active: bool = True

class VariationUpdate(BaseModel):
    variation_type: Optional[str] = None
    price_adjustment: Optional[Decimal] = None
    adjustment_type: Optional[str] = None
    applies_to_dates: Optional[Dict[str, Any]] = None
    active: Optional[bool] = None

# ================================
# Fare resolution
# ================================
class AppliedAdjustment(BaseModel):
    """The single variation that changed a segment's price"""
    variation_id: int
    variation_type: str
    adjustment_type: Literal["percentage", "fixed"]
    price_adjustment: Decimal
    amount: Decimal
    reason: str

class ResolvedSegmentFare(BaseModel):
    segment_id: Optional[int] = None
    base_price: Decimal
    final_price: Decimal
    adjustment: Optional[AppliedAdjustment] = None

# ================================
# Search / fare quotes
# ================================
class SegmentPathItem(BaseModel):
    segment_id: int
    segment_order: int
    from_location: str
    to_location: str
    distance_km: Decimal
    duration_minutes: int
    base_price: Decimal
    resolved_price: Decimal
    adjustment: Optional[AppliedAdjustment] = None

class FareQuote(BaseModel):
    """Priced route (or sub-route) for one travel date.

    Bookings copy this verbatim; it is never recomputed afterwards.
    """
    route_id: int
    origin: str
    destination: str
    pickup_location: str
    dropoff_location: str
    departure_time: Optional[str] = None
    match_type: Literal["full", "partial"]
    segmented: bool
    segment_path: List[SegmentPathItem] = []
    total_distance: Decimal
    total_duration: int
    base_total_price: Decimal
    total_price: Decimal
    travel_date: Optional[date] = None
    currency: str = "UGX"

class SegmentSearchResponse(BaseModel):
    origin: str
    destination: str
    travel_date: Optional[date] = None
    total_results: int
    results: List[FareQuote]

# ================================
# Migration
# ================================
class MigrationRequest(BaseModel):
    force: bool = False
    route_ids: Optional[List[int]] = None
    include_inactive: bool = False
    dry_run: bool = False

class MigrationRouteDetail(BaseModel):
    route_id: int
    status: Literal["migrated", "skipped", "failed"]
    source: Optional[Literal["route_stops", "via", "endpoints"]] = None
    segments_created: int = 0
    flagged_segments: int = 0
    reason: Optional[str] = None

class MigrationReport(BaseModel):
    total_routes_processed: int
    migrated: int
    skipped: int
    failed: int
    dry_run: bool = False
    per_route_detail: List[MigrationRouteDetail]

class StopImportResult(BaseModel):
    total: int
    imported: int
    errors: List[str] = []
