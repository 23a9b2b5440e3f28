from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional

from busnet.database import get_db
from busnet.bookings.schemas import Booking, BookingCreate, BookingList
from busnet.bookings.service import BookingService

router = APIRouter()

@router.post("/", response_model=Booking, status_code=status.HTTP_201_CREATED)
def create_booking(
    request: BookingCreate,
    db: Session = Depends(get_db)
):
    """Book a trip; the fare is fixed at the price quoted now"""
    return BookingService(db).create_booking(request)

@router.get("/", response_model=BookingList)
def list_bookings(
    route_id: Optional[int] = Query(None, description="Filter by route"),
    db: Session = Depends(get_db)
):
    bookings = BookingService(db).list_bookings(route_id)
    return BookingList(bookings=bookings, total=len(bookings))

@router.get("/{booking_reference}", response_model=Booking)
def get_booking(
    booking_reference: str,
    db: Session = Depends(get_db)
):
    """Get a booking and its stored fare quote"""
    return BookingService(db).get_booking(booking_reference)
