"""
Booking model: a client's reservation of one vehicle for a date range.

Key design decisions:
- Dates are calendar days; a booking occupies [pickup_date, return_date]
  inclusive on both ends
- Status changes replace deletion; cancelled bookings stay for reporting
- Vehicle make/model/rate are snapshotted so later fleet edits don't rewrite
  what the client agreed to
- Composite index on (vehicle_id, status, pickup_date, return_date) serves
  the overlap query used by availability and booking creation
"""

from sqlalchemy import (
    JSON, CheckConstraint, Column, Date, Enum, Float, ForeignKey, Index, Integer, String,
)

from app.db.base import Base, TimestampMixin
from app.models.enums import BookingStatus, CoverageType, enum_values


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    booking_reference = Column(String(20), unique=True, nullable=False, index=True)

    # Client contact, kept as one document: first_name, last_name, email,
    # country_code, phone_number, company, flight_number, promo_code
    client_info = Column(JSON, nullable=False)
    client_email = Column(String(255), nullable=False, index=True)

    vehicle_id = Column(Integer, ForeignKey("vehicles.id"), nullable=False, index=True)
    vehicle_info = Column(JSON, nullable=False)

    pickup_date = Column(Date, nullable=False)
    return_date = Column(Date, nullable=False)
    pickup_location = Column(String(255), nullable=False)
    rental_days = Column(Integer, nullable=False)

    cdw_coverage = Column(
        Enum(CoverageType, name="coverage_type", native_enum=False, length=10, values_callable=enum_values),
        nullable=False,
        default=CoverageType.BASIC,
    )
    add_ons = Column(JSON, nullable=False, default=dict)

    # Pricing breakdown
    base_daily_rate = Column(Float, nullable=False)
    cdw_cost = Column(Float, nullable=False, default=0.0)
    add_ons_cost = Column(Float, nullable=False, default=0.0)
    total_daily_rate = Column(Float, nullable=False)
    total_cost = Column(Float, nullable=False)

    status = Column(
        Enum(BookingStatus, name="booking_status", native_enum=False, length=20, values_callable=enum_values),
        nullable=False,
        default=BookingStatus.CONFIRMED,
        index=True,
    )

    __table_args__ = (
        CheckConstraint("pickup_date < return_date", name="check_booking_dates_ordered"),
        CheckConstraint("rental_days > 0", name="check_booking_rental_days_positive"),
        Index("ix_bookings_vehicle_status_dates", "vehicle_id", "status", "pickup_date", "return_date"),
        Index("ix_bookings_pickup_date", "pickup_date"),
    )

    @property
    def customer_name(self) -> str:
        info = self.client_info or {}
        return f"{info.get('first_name', '')} {info.get('last_name', '')}".strip()

    def __repr__(self) -> str:
        return (
            f"<Booking(id={self.id}, ref={self.booking_reference}, vehicle={self.vehicle_id}, "
            f"{self.pickup_date}..{self.return_date}, status={self.status})>"
        )
