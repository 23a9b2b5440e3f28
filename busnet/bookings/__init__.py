"""
Bookings Module

Bookings hold an immutable snapshot of the fare quote they were priced from.
"""

from .router import router
from .service import BookingService

__all__ = ["router", "BookingService"]
