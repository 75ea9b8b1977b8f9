"""
Booking service with double-booking protection.

CONCURRENCY STRATEGY: Optimistic Locking with Retry
====================================================

Problem:
  Two clients request the same car for overlapping dates at the same moment.
  Both run the overlap query, both see no conflict, both insert.
  Result: the car is rented twice.

Solution:
  Every write that makes a booking block a vehicle also bumps that vehicle's
  `version` column, conditionally:

  1. Read the vehicle and remember its version
  2. Run the overlap query (same criteria as the availability search)
  3. UPDATE vehicles SET version = version + 1
     WHERE id = :vehicle_id AND version = :seen_version
  4. If rows_affected == 0, another booking for this car was written in the
     meantime -> re-read and check again

  The conditional UPDATE takes the row lock, so a concurrent writer for the
  same car waits for our commit and then fails its version predicate. On the
  retry its overlap query sees our booking and it gets a 409. Writers for
  different cars never touch the same row and don't contend.

  Each statement under READ COMMITTED sees the latest committed data, so a
  retry only needs to re-read the vehicle (populate_existing), not roll back
  the transaction. That keeps bulk updates intact when one row has to retry.
"""

import secrets
import string
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import Clock
from app.core.config import get_settings
from app.core.exceptions import ConflictError, InvalidInputError, NotFoundError
from app.core.logging import get_logger
from app.core.metrics import booking_retries, record_booking_attempt
from app.domain.booking_state import assert_booking_transition, can_transition
from app.domain.pricing import calculate_price
from app.domain.rental_period import RentalPeriod
from app.models.booking import Booking
from app.models.enums import BookingStatus, VehicleStatus, blocks_vehicle
from app.models.vehicle import Vehicle
from app.schemas.booking import BookingCreate, BookingUpdate
from app.services.availability_service import find_conflicting_bookings

logger = get_logger(__name__)
settings = get_settings()

_REFERENCE_ALPHABET = string.ascii_uppercase + string.digits


def generate_booking_reference(clock: Clock) -> str:
    """CAR + last 6 digits of the epoch millis + 6 random base-36 chars."""
    millis = str(int(clock.now().timestamp() * 1000))[-6:]
    suffix = "".join(secrets.choice(_REFERENCE_ALPHABET) for _ in range(6))
    return f"CAR{millis}{suffix}"


def describe_conflicts(conflicts: list[Booking]) -> list[dict]:
    return [
        {
            "bookingReference": b.booking_reference,
            "dates": f"{b.pickup_date.isoformat()} - {b.return_date.isoformat()}",
            "customer": b.customer_name,
        }
        for b in conflicts
    ]


async def _load_vehicle(db: AsyncSession, vehicle_id: int) -> Optional[Vehicle]:
    # populate_existing: the version column is bumped by bulk UPDATEs the
    # identity map never sees
    result = await db.execute(
        select(Vehicle).where(Vehicle.id == vehicle_id).execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _claim_vehicle(db: AsyncSession, vehicle_id: int, seen_version: int) -> bool:
    """Bump the vehicle version iff nobody else has since we read it."""
    result = await db.execute(
        update(Vehicle)
        .where(Vehicle.id == vehicle_id, Vehicle.version == seen_version)
        .values(version=Vehicle.version + 1)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def _reserve_dates(
    db: AsyncSession,
    vehicle_id: int,
    period: RentalPeriod,
) -> tuple[Optional[Vehicle], list[Booking]]:
    """
    Check the period against the vehicle's blocking bookings and claim it.

    Returns (vehicle, conflicts). On success conflicts is empty and the
    vehicle row is claimed for this transaction. Raises ConflictError when
    the claim keeps losing to concurrent writers.
    """
    max_attempts = settings.MAX_BOOKING_RETRIES
    for attempt in range(1, max_attempts + 1):
        vehicle = await _load_vehicle(db, vehicle_id)
        if vehicle is None:
            return None, []

        conflicts = await find_conflicting_bookings(db, vehicle_id, period)
        if conflicts:
            return vehicle, conflicts

        if await _claim_vehicle(db, vehicle_id, vehicle.version):
            return vehicle, []

        booking_retries.inc()
        logger.info(
            "booking_retry",
            vehicle_id=vehicle_id,
            attempt=attempt,
            reason="version_conflict",
        )

    raise ConflictError("Booking failed due to high demand. Please try again.")


async def create_booking(db: AsyncSession, data: BookingCreate, clock: Clock) -> Booking:
    """
    Reserve a vehicle for a client.

    Rejects with 404 for an unknown vehicle, 409 when the vehicle is not
    rentable or the dates overlap a blocking booking.
    """
    period = RentalPeriod.from_dates(data.pickup_date, data.return_date)

    vehicle = await _load_vehicle(db, data.vehicle_id)
    if vehicle is None:
        raise NotFoundError("Vehicle")
    if vehicle.status != VehicleStatus.AVAILABLE:
        record_booking_attempt("conflict")
        raise ConflictError("Vehicle is not available for booking")

    try:
        vehicle, conflicts = await _reserve_dates(db, data.vehicle_id, period)
    except ConflictError:
        record_booking_attempt("conflict")
        raise
    if vehicle is None:
        raise NotFoundError("Vehicle")

    if conflicts:
        logger.warning(
            "booking_conflict",
            vehicle_id=vehicle.id,
            pickup_date=period.pickup_date.isoformat(),
            return_date=period.return_date.isoformat(),
            conflicts=len(conflicts),
        )
        record_booking_attempt("conflict")
        raise ConflictError(
            "Vehicle is not available for the selected dates",
            extra={
                "conflicts": describe_conflicts(conflicts),
                "message": (
                    f"This vehicle has {len(conflicts)} conflicting booking(s) "
                    "during your requested period."
                ),
            },
        )

    add_ons = data.add_ons.model_dump()
    price = calculate_price(
        daily_rate=vehicle.daily_rate,
        rental_days=period.days,
        coverage=data.cdw_coverage,
        add_ons=add_ons,
        full_coverage_cost=settings.FULL_COVERAGE_DAILY_COST,
    )
    now = clock.now()
    client_info = data.client_info.model_dump()

    booking = Booking(
        booking_reference=generate_booking_reference(clock),
        client_info=client_info,
        client_email=client_info["email"].lower(),
        vehicle_id=vehicle.id,
        vehicle_info={
            "make": vehicle.make,
            "model": vehicle.model,
            "category": vehicle.category,
            "daily_rate": vehicle.daily_rate,
            "currency": vehicle.currency.value,
        },
        pickup_date=period.pickup_date,
        return_date=period.return_date,
        pickup_location=data.pickup_location,
        rental_days=period.days,
        cdw_coverage=data.cdw_coverage,
        add_ons=add_ons,
        base_daily_rate=price.base_daily_rate,
        cdw_cost=price.cdw_cost,
        add_ons_cost=price.add_ons_cost,
        total_daily_rate=price.total_daily_rate,
        total_cost=price.total_cost,
        status=BookingStatus.CONFIRMED,
        created_at=now,
        updated_at=now,
    )
    db.add(booking)
    await db.flush()
    await db.refresh(booking)

    logger.info(
        "booking_created",
        booking_id=booking.id,
        booking_reference=booking.booking_reference,
        vehicle_id=vehicle.id,
        rental_days=booking.rental_days,
        total_cost=booking.total_cost,
    )
    record_booking_attempt("success")
    return booking


async def get_booking(db: AsyncSession, booking_id: int) -> Booking:
    booking = (await db.execute(select(Booking).where(Booking.id == booking_id))).scalar_one_or_none()
    if booking is None:
        raise NotFoundError("Booking")
    return booking


async def lookup_bookings(
    db: AsyncSession,
    email: Optional[str],
    reference: Optional[str] = None,
) -> list[Booking]:
    """A client's bookings by email, optionally narrowed to one reference."""
    if not email or not email.strip():
        raise InvalidInputError("Email parameter is required")

    query = select(Booking).where(Booking.client_email == email.strip().lower())
    if reference:
        query = query.where(Booking.booking_reference == reference.strip())
    result = await db.execute(query.order_by(Booking.created_at.desc(), Booking.id.desc()))
    return list(result.scalars().all())


async def _apply_status(db: AsyncSession, booking: Booking, target: BookingStatus, clock: Clock) -> None:
    """Move a booking to `target`, re-checking dates when it starts blocking."""
    assert_booking_transition(booking.status, target)

    if blocks_vehicle(target) and not blocks_vehicle(booking.status):
        period = RentalPeriod.from_dates(booking.pickup_date, booking.return_date)
        _, conflicts = await _reserve_dates(db, booking.vehicle_id, period)
        if conflicts:
            raise ConflictError(
                "Vehicle is not available for the selected dates",
                extra={"conflicts": describe_conflicts(conflicts)},
            )

    previous = booking.status
    booking.status = target
    booking.updated_at = clock.now()
    logger.info(
        "booking_status_changed",
        booking_id=booking.id,
        from_status=BookingStatus(previous).value,
        to_status=target.value,
    )


async def update_booking(db: AsyncSession, booking_id: int, data: BookingUpdate, clock: Clock) -> Booking:
    booking = await get_booking(db, booking_id)

    if data.status is not None and data.status != booking.status:
        await _apply_status(db, booking, data.status, clock)

    if data.client_info is not None:
        changes = data.client_info.model_dump(exclude_none=True)
        if changes:
            # Reassign so the JSON column is marked dirty
            booking.client_info = {**booking.client_info, **changes}
            booking.updated_at = clock.now()

    await db.flush()
    await db.refresh(booking)
    return booking


async def cancel_booking(db: AsyncSession, booking_id: int, clock: Clock) -> Booking:
    """Cancel instead of deleting; completed bookings can't be cancelled."""
    booking = await get_booking(db, booking_id)
    await _apply_status(db, booking, BookingStatus.CANCELLED, clock)
    await db.flush()
    await db.refresh(booking)
    return booking


def _parse_status_filter(status: Optional[str]) -> Optional[BookingStatus]:
    if status is None or status == "" or status == "all":
        return None
    try:
        return BookingStatus(status)
    except ValueError:
        raise InvalidInputError(f"Unknown booking status: {status}") from None


async def list_bookings(
    db: AsyncSession,
    status: Optional[str] = None,
    limit: Optional[int] = None,
    offset: int = 0,
) -> tuple[list[Booking], int]:
    """Admin listing, newest first."""
    status_filter = _parse_status_filter(status)

    query = select(Booking)
    if status_filter is not None:
        query = query.where(Booking.status == status_filter)

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar()

    page_query = query.order_by(Booking.created_at.desc(), Booking.id.desc()).offset(offset)
    if limit is not None:
        page_query = page_query.limit(limit)
    bookings = list((await db.execute(page_query)).scalars().all())
    return bookings, total


async def bulk_update_status(
    db: AsyncSession,
    booking_ids: list[int],
    status: BookingStatus,
    clock: Clock,
) -> int:
    """
    Move every listed booking to `status` where that is a legal change.

    Unknown ids, bookings already in the target state, illegal transitions
    and transitions that would double-book a vehicle are skipped. Returns the
    number of bookings actually changed.
    """
    result = await db.execute(
        select(Booking).where(Booking.id.in_(set(booking_ids))).order_by(Booking.id)
    )
    bookings = list(result.scalars().all())

    modified = 0
    for booking in bookings:
        if booking.status == status or not can_transition(booking.status, status):
            continue
        try:
            await _apply_status(db, booking, status, clock)
        except ConflictError:
            logger.info("bulk_update_skipped_conflict", booking_id=booking.id)
            continue
        # Flush so later bookings on the same vehicle see this one
        await db.flush()
        modified += 1

    logger.info(
        "bookings_bulk_updated",
        requested=len(booking_ids),
        found=len(bookings),
        modified=modified,
        status=status.value,
    )
    return modified
