from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import date, datetime
from decimal import Decimal

from busnet.segments.schemas import FareQuote


class BookingCreate(BaseModel):
    route_id: int
    passenger_name: str = Field(..., min_length=1, max_length=255)
    origin: str = Field(..., min_length=1, description="Boarding point")
    destination: str = Field(..., min_length=1, description="Alighting point")
    travel_date: date

class Booking(BaseModel):
    id: int
    booking_reference: str
    route_id: int
    passenger_name: str
    travel_date: date
    total_price: Decimal
    fare_quote: FareQuote
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class BookingList(BaseModel):
    bookings: List[Booking]
    total: int
