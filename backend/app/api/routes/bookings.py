"""
Booking endpoints: public submission and lookup, status changes and cancellation.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import Clock, get_clock
from app.core.exceptions import AppException
from app.core.logging import get_logger
from app.core.metrics import booking_latency, record_booking_attempt
from app.db.session import get_db
from app.schemas.booking import (
    BookingCancelResponse,
    BookingCreate,
    BookingLookupResponse,
    BookingResponse,
    BookingUpdate,
)
from app.services import booking_service

logger = get_logger(__name__)
router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post("/", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    booking_data: BookingCreate,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """
    Reserve a vehicle for the requested dates.

    Uses the same conflict check as the availability search, then claims the
    vehicle with optimistic locking. A booking that races another one for
    the same car retries up to MAX_BOOKING_RETRIES times before a 409.
    """
    with booking_latency.time():
        try:
            booking = await booking_service.create_booking(db, booking_data, clock)
        except AppException:
            raise
        except Exception:
            record_booking_attempt("error")
            raise
    return BookingResponse.from_booking(booking)


@router.get("/", response_model=BookingLookupResponse)
async def lookup_bookings(
    email: Optional[str] = Query(None),
    reference: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """A client's bookings by email, optionally narrowed to one reference."""
    bookings = await booking_service.lookup_bookings(db, email, reference)
    return BookingLookupResponse(bookings=[BookingResponse.from_booking(b) for b in bookings])


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: int,
    db: AsyncSession = Depends(get_db),
):
    booking = await booking_service.get_booking(db, booking_id)
    return BookingResponse.from_booking(booking)


@router.put("/{booking_id}", response_model=BookingResponse)
async def update_booking(
    booking_id: int,
    booking_data: BookingUpdate,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Change a booking's status or the client's phone/flight number."""
    booking = await booking_service.update_booking(db, booking_id, booking_data, clock)
    return BookingResponse.from_booking(booking)


@router.delete("/{booking_id}", response_model=BookingCancelResponse)
async def cancel_booking(
    booking_id: int,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Cancel a booking. The record is kept; its dates are released."""
    booking = await booking_service.cancel_booking(db, booking_id, clock)
    return BookingCancelResponse(
        message="Booking cancelled successfully",
        booking_id=booking.id,
        status=booking.status,
    )
