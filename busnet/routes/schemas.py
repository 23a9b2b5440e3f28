from pydantic import BaseModel, Field, field_validator
from typing import List, Optional, Union
from datetime import datetime
from decimal import Decimal
import re

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def _normalize_via(value):
    """Accept the legacy comma-separated string or a list of stopover names"""
    if value is None:
        return None
    names = value.split(",") if isinstance(value, str) else value
    cleaned = [str(name).strip() for name in names if str(name).strip()]
    return ",".join(cleaned) or None


class RouteStopBase(BaseModel):
    stop_name: str
    distance_from_origin: Decimal = Field(Decimal("0"), ge=0)
    price_from_origin: Decimal = Field(Decimal("0"), ge=0)
    duration_from_origin: Optional[int] = Field(None, ge=0)
    order: int = Field(..., ge=1)

class RouteStopCreate(RouteStopBase):
    pass

class RouteStop(RouteStopBase):
    id: int
    route_id: int

    class Config:
        from_attributes = True

class RouteBase(BaseModel):
    origin: str = Field(..., min_length=1)
    destination: str = Field(..., min_length=1)
    via: Optional[Union[str, List[str]]] = None
    distance: Decimal = Field(Decimal("0"), ge=0)
    duration: int = Field(0, ge=0)
    price: Decimal = Field(Decimal("0"), ge=0)
    departure_time: Optional[str] = None

    @field_validator("via")
    @classmethod
    def normalize_via(cls, v):
        return _normalize_via(v)

    @field_validator("departure_time")
    @classmethod
    def validate_departure_time(cls, v):
        if v is not None and not TIME_PATTERN.match(v):
            raise ValueError("departure_time must use HH:MM (24h)")
        return v

class RouteCreate(RouteBase):
    active: bool = True

class RouteUpdate(BaseModel):
    origin: Optional[str] = None
    destination: Optional[str] = None
    via: Optional[Union[str, List[str]]] = None
    distance: Optional[Decimal] = Field(None, ge=0)
    duration: Optional[int] = Field(None, ge=0)
    price: Optional[Decimal] = Field(None, ge=0)
    departure_time: Optional[str] = None
    active: Optional[bool] = None

    @field_validator("via")
    @classmethod
    def normalize_via(cls, v):
        return _normalize_via(v)

    @field_validator("departure_time")
    @classmethod
    def validate_departure_time(cls, v):
        if v is not None and not TIME_PATTERN.match(v):
            raise ValueError("departure_time must use HH:MM (24h)")
        return v

class Route(BaseModel):
    id: int
    origin: str
    destination: str
    via: Optional[str] = None
    stopovers: List[str] = []
    distance: Decimal
    duration: int
    price: Decimal
    departure_time: Optional[str] = None
    active: bool
    segment_enabled: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class RouteSearchResult(BaseModel):
    routes: List[Route]
    total: int
    page: int
    per_page: int
