"""
Vehicle availability for a requested rental period.

CONFLICT RULE
=============

A vehicle is unavailable for [pickup, return] when it has a booking in a
blocking state (confirmed, in_progress) such that

    existing.pickup_date <= requested.return_date
    AND existing.return_date >= requested.pickup_date

Both ends are inclusive, so a return on the 15th blocks a pickup on the 15th.
`conflict_criteria` is the only place this rule is written as SQL; the
availability search and booking creation both go through it so they can
never disagree about whether a car is free.
"""

from typing import Optional

from sqlalchemy import and_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import InternalError, InvalidInputError
from app.core.logging import get_logger
from app.core.metrics import record_availability_check
from app.domain.rental_period import RentalPeriod
from app.models.booking import Booking
from app.models.enums import CONFLICTING_STATUSES, VehicleStatus
from app.models.vehicle import Vehicle
from app.schemas.vehicle import AvailabilityResponse, AvailableVehicle, RequestedPeriod

logger = get_logger(__name__)


def conflict_criteria(period: RentalPeriod):
    return and_(
        Booking.status.in_(list(CONFLICTING_STATUSES)),
        Booking.pickup_date <= period.return_date,
        Booking.return_date >= period.pickup_date,
    )


async def find_conflicting_bookings(
    db: AsyncSession,
    vehicle_id: int,
    period: RentalPeriod,
) -> list[Booking]:
    """Blocking bookings on one vehicle that overlap the period."""
    result = await db.execute(
        select(Booking)
        .where(Booking.vehicle_id == vehicle_id, conflict_criteria(period))
        .order_by(Booking.pickup_date.asc())
    )
    return list(result.scalars().all())


def parse_vehicle_id(raw: Optional[str]) -> Optional[int]:
    if raw is None or raw.strip() == "":
        return None
    try:
        return int(raw)
    except ValueError:
        raise InvalidInputError("Invalid vehicleId") from None


def _requested_period(period: RentalPeriod) -> RequestedPeriod:
    return RequestedPeriod(
        pickup_date=period.pickup_date,
        return_date=period.return_date,
        days=period.days,
    )


async def check_availability(
    db: AsyncSession,
    period: RentalPeriod,
    vehicle_id: Optional[int] = None,
) -> AvailabilityResponse:
    """
    List vehicles that are in 'available' status and free for the whole period.

    No matching candidates is a normal, empty answer with an explanatory
    message. Database failures are logged and re-raised as InternalError so
    the caller never sees a partial list.
    """
    try:
        candidates_query = select(Vehicle).where(Vehicle.status == VehicleStatus.AVAILABLE)
        if vehicle_id is not None:
            candidates_query = candidates_query.where(Vehicle.id == vehicle_id)
        candidates = list((await db.execute(candidates_query.order_by(Vehicle.id))).scalars().all())

        if not candidates:
            message = "Vehicle not found or not available" if vehicle_id is not None else "No vehicles available"
            logger.info("availability_no_candidates", vehicle_id=vehicle_id)
            record_availability_check("unavailable")
            return AvailabilityResponse(
                available_vehicles=[],
                total_available=0,
                requested_period=_requested_period(period),
                message=message,
            )

        # One round trip for the whole fleet instead of one query per car
        blocked_result = await db.execute(
            select(Booking.vehicle_id)
            .where(
                Booking.vehicle_id.in_([v.id for v in candidates]),
                conflict_criteria(period),
            )
            .distinct()
        )
        blocked_ids = set(blocked_result.scalars().all())
    except SQLAlchemyError as exc:
        logger.exception("availability_check_failed", vehicle_id=vehicle_id, error=str(exc))
        record_availability_check("error")
        raise InternalError("Failed to check vehicle availability") from exc

    available = [
        AvailableVehicle(
            id=v.id,
            make=v.make,
            model=v.model,
            category=v.category,
            daily_rate=v.daily_rate,
            currency=v.currency,
            location=v.location,
            main_image=v.main_image,
            passenger_capacity=v.passenger_capacity,
            transmission=v.transmission,
            features=list(v.features or []),
        )
        for v in candidates
        if v.id not in blocked_ids
    ]

    logger.info(
        "availability_checked",
        vehicle_id=vehicle_id,
        pickup_date=period.pickup_date.isoformat(),
        return_date=period.return_date.isoformat(),
        candidates=len(candidates),
        available=len(available),
    )
    record_availability_check("available" if available else "unavailable")

    return AvailabilityResponse(
        available_vehicles=available,
        total_available=len(available),
        requested_period=_requested_period(period),
    )
