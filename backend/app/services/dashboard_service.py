"""
Dashboard service: loads bookings and vehicles once and hands them to the
pure aggregates in app.domain.statistics.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import Clock, as_utc
from app.core.config import get_settings
from app.core.logging import get_logger
from app.domain.statistics import (
    BookingRecord,
    VehicleRecord,
    count_active_rentals,
    count_upcoming,
    fleet_utilization,
    find_idle_vehicles,
    in_service,
    month_boundaries,
    percent_change,
    sum_revenue,
)
from app.models.booking import Booking
from app.models.vehicle import Vehicle
from app.schemas.dashboard import DashboardStats, IdleVehicle

logger = get_logger(__name__)
settings = get_settings()


async def _load_booking_records(db: AsyncSession) -> list[BookingRecord]:
    result = await db.execute(
        select(
            Booking.vehicle_id,
            Booking.status,
            Booking.created_at,
            Booking.total_cost,
            Booking.pickup_date,
            Booking.return_date,
        )
    )
    return [
        BookingRecord(
            vehicle_id=row.vehicle_id,
            status=row.status,
            created_at=as_utc(row.created_at),
            total_cost=row.total_cost,
            pickup_date=row.pickup_date,
            return_date=row.return_date,
        )
        for row in result.all()
    ]


async def _load_vehicle_records(db: AsyncSession) -> list[VehicleRecord]:
    result = await db.execute(select(Vehicle.id, Vehicle.status, Vehicle.make, Vehicle.model))
    return [
        VehicleRecord(id=row.id, status=row.status, make=row.make, model=row.model)
        for row in result.all()
    ]


async def get_dashboard_stats(db: AsyncSession, clock: Clock) -> DashboardStats:
    now = clock.now()
    today = clock.today()

    bookings = await _load_booking_records(db)
    vehicles = await _load_vehicle_records(db)

    this_month, last_month = month_boundaries(now)
    revenue_this_month = sum_revenue(bookings, start=this_month)
    revenue_last_month = sum_revenue(bookings, start=last_month, end=this_month)

    active = count_active_rentals(bookings, today)
    idle = find_idle_vehicles(vehicles, bookings, now, window_days=settings.IDLE_VEHICLE_WINDOW_DAYS)

    stats = DashboardStats(
        active_rentals=active,
        total_bookings=len(bookings),
        upcoming_bookings=count_upcoming(bookings, today),
        total_earned=sum_revenue(bookings),
        revenue_this_month=revenue_this_month,
        revenue_last_month=revenue_last_month,
        revenue_change_percent=percent_change(revenue_this_month, revenue_last_month),
        fleet_size=len(in_service(vehicles)),
        fleet_utilization=fleet_utilization(active, vehicles),
        idle_vehicles=[IdleVehicle(id=v.id, make=v.make, model=v.model) for v in idle],
    )

    logger.info(
        "dashboard_stats_computed",
        bookings=stats.total_bookings,
        active_rentals=stats.active_rentals,
        idle_vehicles=len(stats.idle_vehicles),
    )
    return stats
