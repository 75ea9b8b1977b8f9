"""
Vehicle service: catalog reads, fleet management and custom per-date pricing.

Every write here changes what the public catalog shows, so callers invalidate
the vehicle list cache after a successful write.
"""

from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import InvalidInputError, NotFoundError
from app.core.logging import get_logger
from app.models.booking import Booking
from app.models.enums import CONFLICTING_STATUSES, VehicleStatus
from app.models.vehicle import Vehicle
from app.schemas.vehicle import CustomPrice, VehicleCreate, VehicleUpdate

logger = get_logger(__name__)


def _parse_status_filter(status: Optional[str]) -> Optional[VehicleStatus]:
    if not status or status == "all":
        return None
    try:
        return VehicleStatus(status)
    except ValueError:
        raise InvalidInputError(f"Unknown vehicle status: {status}") from None


async def create_vehicle(db: AsyncSession, data: VehicleCreate, added_by: int) -> Vehicle:
    plate = data.license_plate.strip().upper()
    existing = await db.execute(select(Vehicle.id).where(Vehicle.license_plate == plate))
    if existing.scalar_one_or_none() is not None:
        logger.warning("vehicle_create_failed", reason="plate_exists", license_plate=plate)
        raise InvalidInputError("Vehicle with this license plate already exists")

    vehicle = Vehicle(
        **data.model_dump(exclude={"license_plate"}),
        license_plate=plate,
        added_by=added_by,
    )
    db.add(vehicle)
    await db.flush()
    await db.refresh(vehicle)

    logger.info("vehicle_created", vehicle_id=vehicle.id, license_plate=plate, added_by=added_by)
    return vehicle


async def get_vehicle(db: AsyncSession, vehicle_id: int) -> Vehicle:
    result = await db.execute(select(Vehicle).where(Vehicle.id == vehicle_id))
    vehicle = result.scalar_one_or_none()
    if vehicle is None:
        raise NotFoundError("Vehicle")
    return vehicle


async def list_vehicles(
    db: AsyncSession,
    category: Optional[str] = None,
    location: Optional[str] = None,
    status: Optional[str] = None,
    page: int = 1,
    limit: int = 12,
) -> tuple[list[Vehicle], int]:
    """
    Filtered, paginated catalog, newest first.
    "all" (or nothing) for a filter means no filter.
    """
    query = select(Vehicle)

    if category and category != "all":
        query = query.where(Vehicle.category == category)
    if location and location != "all":
        query = query.where(Vehicle.location == location)
    status_filter = _parse_status_filter(status)
    if status_filter is not None:
        query = query.where(Vehicle.status == status_filter)

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar()

    vehicles_query = (
        query
        .order_by(Vehicle.created_at.desc(), Vehicle.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    result = await db.execute(vehicles_query)
    return list(result.scalars().all()), total


async def update_vehicle(db: AsyncSession, vehicle_id: int, data: VehicleUpdate) -> Vehicle:
    vehicle = await get_vehicle(db, vehicle_id)

    changes = data.model_dump(exclude_unset=True, exclude_none=True)
    for field, value in changes.items():
        setattr(vehicle, field, value)

    await db.flush()
    await db.refresh(vehicle)
    logger.info("vehicle_updated", vehicle_id=vehicle.id, fields=sorted(changes))
    return vehicle


async def retire_vehicle(db: AsyncSession, vehicle_id: int) -> Vehicle:
    """Take a vehicle out of the fleet. Its bookings stay on record."""
    vehicle = await get_vehicle(db, vehicle_id)
    vehicle.status = VehicleStatus.RETIRED
    await db.flush()
    await db.refresh(vehicle)
    logger.info("vehicle_retired", vehicle_id=vehicle.id)
    return vehicle


async def get_vehicle_calendar(db: AsyncSession, vehicle_id: int) -> list[Booking]:
    """Bookings currently holding the vehicle, in date order."""
    await get_vehicle(db, vehicle_id)
    result = await db.execute(
        select(Booking)
        .where(
            Booking.vehicle_id == vehicle_id,
            Booking.status.in_(list(CONFLICTING_STATUSES)),
        )
        .order_by(Booking.pickup_date.asc())
    )
    return list(result.scalars().all())


def _pricing_entries(vehicle: Vehicle) -> list[CustomPrice]:
    entries = [CustomPrice.model_validate(p) for p in (vehicle.custom_pricing or [])]
    return sorted(entries, key=lambda p: p.date)


def _store_pricing(vehicle: Vehicle, entries: list[CustomPrice]) -> None:
    # Reassign so the JSON column is marked dirty
    vehicle.custom_pricing = [p.model_dump(mode="json") for p in entries]


async def get_pricing(db: AsyncSession, vehicle_id: int) -> list[CustomPrice]:
    vehicle = await get_vehicle(db, vehicle_id)
    return _pricing_entries(vehicle)


async def replace_pricing(db: AsyncSession, vehicle_id: int, entries: list[CustomPrice]) -> list[CustomPrice]:
    vehicle = await get_vehicle(db, vehicle_id)

    # Last entry wins when a date repeats
    by_date = {p.date: p for p in entries}
    _store_pricing(vehicle, sorted(by_date.values(), key=lambda p: p.date))
    await db.flush()

    logger.info("vehicle_pricing_replaced", vehicle_id=vehicle_id, entries=len(by_date))
    return _pricing_entries(vehicle)


async def upsert_price(db: AsyncSession, vehicle_id: int, entry: CustomPrice) -> list[CustomPrice]:
    """Set the custom price for one date, replacing any price already there."""
    vehicle = await get_vehicle(db, vehicle_id)

    entries = [p for p in _pricing_entries(vehicle) if p.date != entry.date]
    entries.append(entry)
    _store_pricing(vehicle, sorted(entries, key=lambda p: p.date))
    await db.flush()

    logger.info("vehicle_price_set", vehicle_id=vehicle_id, date=entry.date.isoformat(), price=entry.price)
    return _pricing_entries(vehicle)


async def delete_price(db: AsyncSession, vehicle_id: int, day) -> list[CustomPrice]:
    vehicle = await get_vehicle(db, vehicle_id)

    entries = _pricing_entries(vehicle)
    remaining = [p for p in entries if p.date != day]
    if len(remaining) != len(entries):
        _store_pricing(vehicle, remaining)
        await db.flush()
        logger.info("vehicle_price_removed", vehicle_id=vehicle_id, date=day.isoformat())
    return remaining
