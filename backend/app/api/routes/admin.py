"""
Admin booking management: filtered listing and bulk status changes.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import Clock, get_clock
from app.core.security import get_current_user_id
from app.db.session import get_db
from app.schemas.booking import (
    AdminBookingListResponse,
    AdminPagination,
    BookingResponse,
    BulkStatusUpdate,
    BulkStatusUpdateResponse,
)
from app.services import booking_service

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/bookings", response_model=AdminBookingListResponse)
async def list_bookings(
    status_filter: Optional[str] = Query(None, alias="status"),
    limit: Optional[int] = Query(None, ge=1, le=500),
    offset: int = Query(0, ge=0),
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """All bookings, newest first. status=all (or omitted) means no filter."""
    bookings, total = await booking_service.list_bookings(db, status=status_filter, limit=limit, offset=offset)
    return AdminBookingListResponse(
        bookings=[BookingResponse.from_booking(b) for b in bookings],
        total_count=total,
        pagination=AdminPagination(
            limit=limit,
            offset=offset,
            has_more=offset + len(bookings) < total,
        ),
    )


@router.put("/bookings", response_model=BulkStatusUpdateResponse)
async def bulk_update_bookings(
    payload: BulkStatusUpdate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """
    Move many bookings to one status.
    Unknown ids and changes the booking can't make are skipped.
    """
    modified = await booking_service.bulk_update_status(db, payload.booking_ids, payload.status, clock)
    return BulkStatusUpdateResponse(
        message=f"{modified} booking(s) updated successfully",
        modified_count=modified,
    )
