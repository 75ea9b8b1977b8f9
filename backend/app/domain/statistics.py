"""
Dashboard aggregates over plain booking and vehicle records.

Nothing here reads the clock or the database: callers pass "now" and the
records in, which keeps every figure reproducible in tests.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable, Optional, Sequence

from app.domain.rental_period import ranges_overlap
from app.models.enums import (
    BookingStatus, VehicleStatus, blocks_vehicle, counts_as_revenue, is_in_service,
)


@dataclass(frozen=True)
class BookingRecord:
    vehicle_id: int
    status: BookingStatus
    created_at: datetime
    total_cost: float
    pickup_date: date
    return_date: date


@dataclass(frozen=True)
class VehicleRecord:
    id: int
    status: VehicleStatus
    make: str = ""
    model: str = ""


def sum_revenue(
    bookings: Iterable[BookingRecord],
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> float:
    """Total cost of revenue-bearing bookings created in [start, end)."""
    total = 0.0
    for booking in bookings:
        if not counts_as_revenue(booking.status):
            continue
        if start is not None and booking.created_at < start:
            continue
        if end is not None and booking.created_at >= end:
            continue
        total += booking.total_cost
    return round(total, 2)


def percent_change(current: float, previous: float) -> Optional[float]:
    if previous == 0:
        return None
    return round((current - previous) / previous * 100, 1)


def month_boundaries(now: datetime) -> tuple[datetime, datetime]:
    """Start of the current month and start of the previous one."""
    this_month = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    last_month = (this_month - timedelta(days=1)).replace(day=1)
    return this_month, last_month


def count_active_rentals(bookings: Iterable[BookingRecord], today: date) -> int:
    return sum(
        1
        for b in bookings
        if blocks_vehicle(b.status) and ranges_overlap(b.pickup_date, b.return_date, today, today)
    )


def count_upcoming(bookings: Iterable[BookingRecord], today: date) -> int:
    return sum(1 for b in bookings if b.status == BookingStatus.CONFIRMED and b.pickup_date > today)


def in_service(vehicles: Iterable[VehicleRecord]) -> list[VehicleRecord]:
    return [v for v in vehicles if is_in_service(v.status)]


def fleet_utilization(active_rentals: int, vehicles: Sequence[VehicleRecord]) -> float:
    fleet = len(in_service(vehicles))
    if fleet == 0:
        return 0.0
    return round(active_rentals / fleet * 100, 1)


def find_idle_vehicles(
    vehicles: Iterable[VehicleRecord],
    bookings: Iterable[BookingRecord],
    now: datetime,
    window_days: int = 14,
) -> list[VehicleRecord]:
    """In-service vehicles with no booking created in the trailing window."""
    since = now - timedelta(days=window_days)
    recently_booked = {b.vehicle_id for b in bookings if b.created_at >= since}
    return [v for v in in_service(vehicles) if v.id not in recently_booked]
