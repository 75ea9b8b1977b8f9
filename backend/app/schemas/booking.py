"""
Pydantic schemas for booking-related request/response validation.
"""

from datetime import date, datetime
from typing import Optional

from pydantic import EmailStr, Field

from app.models.booking import Booking
from app.models.enums import BookingStatus, CoverageType, Currency
from app.schemas.common import APIModel


class ClientInfo(APIModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    country_code: str = Field(..., min_length=1, max_length=10)
    phone_number: str = Field(..., min_length=1, max_length=30)
    company: Optional[str] = None
    flight_number: Optional[str] = None
    promo_code: Optional[str] = None


class AddOns(APIModel):
    additional_driver: bool = False
    wifi_hotspot: bool = False
    roadside_assistance: bool = False
    tire_protection: bool = False
    personal_accident: bool = False
    theft_protection: bool = False
    extended_theft: bool = False
    interior_protection: bool = False


class BookingCreate(APIModel):
    client_info: ClientInfo
    vehicle_id: int
    pickup_date: date
    return_date: date
    pickup_location: str = Field(..., min_length=1, max_length=255)
    cdw_coverage: CoverageType = CoverageType.BASIC
    add_ons: AddOns = Field(default_factory=AddOns)


class VehicleInfo(APIModel):
    make: str
    model: str
    category: str
    daily_rate: float
    currency: Currency


class Pricing(APIModel):
    base_daily_rate: float
    cdw_cost: float
    add_ons_cost: float
    total_daily_rate: float
    total_cost: float


class BookingResponse(APIModel):
    id: int
    booking_reference: str
    client_info: ClientInfo
    vehicle_id: int
    vehicle_info: VehicleInfo
    pickup_date: date
    return_date: date
    pickup_location: str
    rental_days: int
    cdw_coverage: CoverageType
    add_ons: AddOns
    pricing: Pricing
    status: BookingStatus
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_booking(cls, booking: Booking) -> "BookingResponse":
        return cls(
            id=booking.id,
            booking_reference=booking.booking_reference,
            client_info=ClientInfo.model_validate(booking.client_info),
            vehicle_id=booking.vehicle_id,
            vehicle_info=VehicleInfo.model_validate(booking.vehicle_info),
            pickup_date=booking.pickup_date,
            return_date=booking.return_date,
            pickup_location=booking.pickup_location,
            rental_days=booking.rental_days,
            cdw_coverage=booking.cdw_coverage,
            add_ons=AddOns.model_validate(booking.add_ons or {}),
            pricing=Pricing(
                base_daily_rate=booking.base_daily_rate,
                cdw_cost=booking.cdw_cost,
                add_ons_cost=booking.add_ons_cost,
                total_daily_rate=booking.total_daily_rate,
                total_cost=booking.total_cost,
            ),
            status=booking.status,
            created_at=booking.created_at,
            updated_at=booking.updated_at,
        )


class BookingLookupResponse(APIModel):
    bookings: list[BookingResponse]


class ClientContactUpdate(APIModel):
    phone_number: Optional[str] = Field(None, min_length=1, max_length=30)
    flight_number: Optional[str] = Field(None, max_length=20)


class BookingUpdate(APIModel):
    status: Optional[BookingStatus] = None
    client_info: Optional[ClientContactUpdate] = None


class BookingCancelResponse(APIModel):
    message: str
    booking_id: int
    status: BookingStatus


class BookingConflict(APIModel):
    booking_reference: str
    dates: str
    customer: str


class AdminPagination(APIModel):
    limit: Optional[int]
    offset: int
    has_more: bool


class AdminBookingListResponse(APIModel):
    bookings: list[BookingResponse]
    total_count: int
    pagination: AdminPagination


class BulkStatusUpdate(APIModel):
    booking_ids: list[int] = Field(..., min_length=1)
    status: BookingStatus


class BulkStatusUpdateResponse(APIModel):
    message: str
    modified_count: int
