"""
Vehicle endpoints: public catalog with Redis caching, availability search,
and admin fleet and pricing management.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logging import get_logger
from app.core.security import get_current_user_id
from app.db.session import get_db
from app.domain.rental_period import parse_period
from app.schemas.vehicle import (
    AvailabilityResponse,
    CustomPrice,
    Pagination,
    PricingDelete,
    PricingDeleteResponse,
    PricingListResponse,
    PricingReplace,
    PricingUpsertResponse,
    VehicleCalendarEntry,
    VehicleCalendarResponse,
    VehicleCreate,
    VehicleListResponse,
    VehicleResponse,
    VehicleRetireResponse,
    VehicleUpdate,
)
from app.services import vehicle_service
from app.services.availability_service import check_availability, parse_vehicle_id
from app.services.cache_service import (
    get_cached_vehicle_list,
    invalidate_vehicle_cache,
    make_vehicle_list_key,
    set_cached_vehicle_list,
)

logger = get_logger(__name__)
router = APIRouter(prefix="/vehicles", tags=["Vehicles"])


async def _publish_fleet_write(db: AsyncSession) -> None:
    """Commit, then drop cached catalog pages so a refill can't read the old rows."""
    await db.commit()
    await invalidate_vehicle_cache()


@router.get("/", response_model=VehicleListResponse)
async def list_vehicles_endpoint(
    category: Optional[str] = Query(None),
    location: Optional[str] = Query(None),
    status_filter: Optional[str] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(12, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    """
    List the fleet with optional filters.
    Results are cached in Redis and invalidated on any fleet write.
    """
    cache_key = make_vehicle_list_key(category, location, status_filter, page, limit)
    cached = await get_cached_vehicle_list(cache_key)
    if cached:
        logger.info("vehicles_list_cache_hit", page=page)
        cached["cached"] = True
        return VehicleListResponse.model_validate(cached)

    vehicles, total = await vehicle_service.list_vehicles(
        db, category=category, location=location, status=status_filter, page=page, limit=limit,
    )

    response = VehicleListResponse(
        vehicles=[VehicleResponse.model_validate(v) for v in vehicles],
        pagination=Pagination(page=page, limit=limit, total=total, pages=-(-total // limit)),
        cached=False,
    )
    await set_cached_vehicle_list(cache_key, response.model_dump(mode="json"))
    return response


@router.post("/", response_model=VehicleResponse, status_code=status.HTTP_201_CREATED)
async def create_vehicle_endpoint(
    vehicle_data: VehicleCreate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Add a vehicle to the fleet. Requires authentication."""
    vehicle = await vehicle_service.create_vehicle(db, vehicle_data, user_id)
    await _publish_fleet_write(db)
    return vehicle


@router.get("/availability", response_model=AvailabilityResponse)
async def availability_endpoint(
    vehicle_id: Optional[str] = Query(None, alias="vehicleId"),
    pickup_date: Optional[str] = Query(None, alias="pickupDate"),
    return_date: Optional[str] = Query(None, alias="returnDate"),
    db: AsyncSession = Depends(get_db),
):
    """
    Which vehicles are free for the whole [pickupDate, returnDate] period.

    Never cached: the answer has to reflect the latest committed bookings.
    """
    period = parse_period(pickup_date, return_date)
    return await check_availability(db, period, parse_vehicle_id(vehicle_id))


@router.get("/{vehicle_id}", response_model=VehicleResponse)
async def get_vehicle_endpoint(
    vehicle_id: int,
    db: AsyncSession = Depends(get_db),
):
    return await vehicle_service.get_vehicle(db, vehicle_id)


@router.put("/{vehicle_id}", response_model=VehicleResponse)
async def update_vehicle_endpoint(
    vehicle_id: int,
    vehicle_data: VehicleUpdate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    vehicle = await vehicle_service.update_vehicle(db, vehicle_id, vehicle_data)
    await _publish_fleet_write(db)
    return vehicle


@router.delete("/{vehicle_id}", response_model=VehicleRetireResponse)
async def retire_vehicle_endpoint(
    vehicle_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Retire a vehicle. Vehicles are never hard-deleted."""
    vehicle = await vehicle_service.retire_vehicle(db, vehicle_id)
    await _publish_fleet_write(db)
    return VehicleRetireResponse(
        message="Vehicle retired successfully",
        vehicle_id=vehicle.id,
        status=vehicle.status,
    )


@router.get("/{vehicle_id}/bookings", response_model=VehicleCalendarResponse)
async def vehicle_calendar_endpoint(
    vehicle_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Bookings holding this vehicle, for the admin calendar view."""
    bookings = await vehicle_service.get_vehicle_calendar(db, vehicle_id)
    return VehicleCalendarResponse(
        bookings=[
            VehicleCalendarEntry(
                id=b.id,
                start_date=b.pickup_date,
                end_date=b.return_date,
                rental_days=b.rental_days,
                status=b.status,
                booking_reference=b.booking_reference,
                customer_name=b.customer_name,
                total_cost=b.total_cost,
                created_at=b.created_at,
            )
            for b in bookings
        ]
    )


@router.get("/{vehicle_id}/pricing", response_model=PricingListResponse)
async def get_pricing_endpoint(
    vehicle_id: int,
    db: AsyncSession = Depends(get_db),
):
    return PricingListResponse(pricing=await vehicle_service.get_pricing(db, vehicle_id))


@router.put("/{vehicle_id}/pricing", response_model=PricingListResponse)
async def replace_pricing_endpoint(
    vehicle_id: int,
    payload: PricingReplace,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Replace the vehicle's whole custom price list."""
    pricing = await vehicle_service.replace_pricing(db, vehicle_id, payload.pricing)
    await _publish_fleet_write(db)
    return PricingListResponse(pricing=pricing)


@router.post("/{vehicle_id}/pricing", response_model=PricingUpsertResponse)
async def upsert_price_endpoint(
    vehicle_id: int,
    entry: CustomPrice,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Set the price for one date, overwriting any existing price for it."""
    all_pricing = await vehicle_service.upsert_price(db, vehicle_id, entry)
    await _publish_fleet_write(db)
    return PricingUpsertResponse(pricing=entry, all_pricing=all_pricing)


@router.delete("/{vehicle_id}/pricing", response_model=PricingDeleteResponse)
async def delete_price_endpoint(
    vehicle_id: int,
    payload: PricingDelete,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    all_pricing = await vehicle_service.delete_price(db, vehicle_id, payload.date)
    await _publish_fleet_write(db)
    return PricingDeleteResponse(all_pricing=all_pricing)
