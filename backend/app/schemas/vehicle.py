"""
Pydantic schemas for the vehicle catalog, fleet management and availability.
"""

import datetime as dt
from datetime import date, datetime
from typing import Optional

from pydantic import Field, field_validator

from app.models.enums import BookingStatus, Currency, VehicleStatus
from app.schemas.common import APIModel


def _max_model_year() -> int:
    return date.today().year + 1


class VehicleBase(APIModel):
    make: str = Field(..., min_length=1, max_length=100)
    model: str = Field(..., min_length=1, max_length=100)
    year: int = Field(..., ge=1980)
    color: str = Field(..., min_length=1, max_length=50)
    license_plate: str = Field(..., min_length=1, max_length=20)
    category: str = Field(..., min_length=1, max_length=50)
    body_type: Optional[str] = Field(None, max_length=50)
    transmission: str = Field(..., min_length=1, max_length=50)
    fuel_air_con: Optional[str] = Field(None, max_length=50)
    passenger_capacity: int = Field(..., ge=1, le=9)
    door_count: int = Field(..., ge=2, le=5)
    big_suitcases: Optional[int] = Field(None, ge=0, le=10)
    small_suitcases: Optional[int] = Field(None, ge=0, le=10)
    features: list[str] = Field(default_factory=list)
    images: list[str] = Field(default_factory=list)
    main_image: Optional[str] = Field(None, max_length=500)
    daily_rate: float = Field(..., ge=0)
    currency: Currency = Currency.EUR
    location: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None

    @field_validator("year")
    @classmethod
    def year_not_in_far_future(cls, value: int) -> int:
        if value > _max_model_year():
            raise ValueError(f"year must be at most {_max_model_year()}")
        return value


class VehicleCreate(VehicleBase):
    status: VehicleStatus = VehicleStatus.AVAILABLE


class VehicleUpdate(APIModel):
    make: Optional[str] = Field(None, min_length=1, max_length=100)
    model: Optional[str] = Field(None, min_length=1, max_length=100)
    year: Optional[int] = Field(None, ge=1980)
    color: Optional[str] = Field(None, min_length=1, max_length=50)
    category: Optional[str] = Field(None, min_length=1, max_length=50)
    body_type: Optional[str] = Field(None, max_length=50)
    transmission: Optional[str] = Field(None, min_length=1, max_length=50)
    fuel_air_con: Optional[str] = Field(None, max_length=50)
    passenger_capacity: Optional[int] = Field(None, ge=1, le=9)
    door_count: Optional[int] = Field(None, ge=2, le=5)
    big_suitcases: Optional[int] = Field(None, ge=0, le=10)
    small_suitcases: Optional[int] = Field(None, ge=0, le=10)
    features: Optional[list[str]] = None
    images: Optional[list[str]] = None
    main_image: Optional[str] = Field(None, max_length=500)
    daily_rate: Optional[float] = Field(None, ge=0)
    currency: Optional[Currency] = None
    location: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    status: Optional[VehicleStatus] = None


class CustomPrice(APIModel):
    date: dt.date
    price: float = Field(..., gt=0)
    label: str = "Custom Price"
    type: str = "custom"


class VehicleResponse(VehicleBase):
    id: int
    status: VehicleStatus
    full_name: str
    custom_pricing: list[CustomPrice] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class Pagination(APIModel):
    page: int
    limit: int
    total: int
    pages: int


class VehicleListResponse(APIModel):
    vehicles: list[VehicleResponse]
    pagination: Pagination
    cached: bool = False


class PricingListResponse(APIModel):
    pricing: list[CustomPrice]


class PricingReplace(APIModel):
    pricing: list[CustomPrice]


class PricingDelete(APIModel):
    date: dt.date


class PricingUpsertResponse(APIModel):
    pricing: CustomPrice
    all_pricing: list[CustomPrice]


class PricingDeleteResponse(APIModel):
    all_pricing: list[CustomPrice]


class VehicleRetireResponse(APIModel):
    message: str
    vehicle_id: int
    status: VehicleStatus


class VehicleCalendarEntry(APIModel):
    id: int
    start_date: date
    end_date: date
    rental_days: int
    status: BookingStatus
    booking_reference: str
    customer_name: str
    total_cost: float
    created_at: datetime


class VehicleCalendarResponse(APIModel):
    bookings: list[VehicleCalendarEntry]


class AvailableVehicle(APIModel):
    id: int
    make: str
    model: str
    category: str
    daily_rate: float
    currency: Currency
    location: str
    main_image: Optional[str] = None
    passenger_capacity: int
    transmission: str
    features: list[str]
    available: bool = True


class RequestedPeriod(APIModel):
    pickup_date: date
    return_date: date
    days: int


class AvailabilityResponse(APIModel):
    available_vehicles: list[AvailableVehicle]
    total_available: int
    requested_period: RequestedPeriod
    message: Optional[str] = None
