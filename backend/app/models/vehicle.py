"""
Vehicle model: a rentable car in the fleet.

Key design decisions:
- Vehicles are retired, never deleted, so historical bookings keep their FK
- `version` is bumped every time a booking claims the vehicle; concurrent
  bookings for the same car race on it (optimistic locking)
- Features, images and custom per-date prices are small documents kept in
  JSON columns rather than child tables
"""

from sqlalchemy import (
    JSON, Column, Enum, Float, ForeignKey, Index, Integer, String, Text, CheckConstraint,
)

from app.db.base import Base, TimestampMixin
from app.models.enums import Currency, VehicleStatus, enum_values


class Vehicle(Base, TimestampMixin):
    __tablename__ = "vehicles"

    id = Column(Integer, primary_key=True, index=True)
    make = Column(String(100), nullable=False)
    model = Column(String(100), nullable=False)
    year = Column(Integer, nullable=False)
    color = Column(String(50), nullable=False)
    license_plate = Column(String(20), unique=True, nullable=False)

    category = Column(String(50), nullable=False)
    body_type = Column(String(50), nullable=True)
    transmission = Column(String(50), nullable=False)
    fuel_air_con = Column(String(50), nullable=True)

    passenger_capacity = Column(Integer, nullable=False)
    door_count = Column(Integer, nullable=False)
    big_suitcases = Column(Integer, nullable=True)
    small_suitcases = Column(Integer, nullable=True)

    features = Column(JSON, nullable=False, default=list)
    images = Column(JSON, nullable=False, default=list)
    main_image = Column(String(500), nullable=True)

    daily_rate = Column(Float, nullable=False)
    currency = Column(
        Enum(Currency, name="currency", native_enum=False, length=3, values_callable=enum_values),
        nullable=False,
        default=Currency.EUR,
    )
    custom_pricing = Column(JSON, nullable=False, default=list)

    status = Column(
        Enum(VehicleStatus, name="vehicle_status", native_enum=False, length=20, values_callable=enum_values),
        nullable=False,
        default=VehicleStatus.AVAILABLE,
    )
    location = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    version = Column(Integer, nullable=False, default=1)
    added_by = Column(Integer, ForeignKey("users.id"), nullable=True)

    __table_args__ = (
        CheckConstraint("daily_rate >= 0", name="check_vehicle_daily_rate_non_negative"),
        CheckConstraint("passenger_capacity BETWEEN 1 AND 9", name="check_vehicle_passenger_capacity"),
        Index("ix_vehicles_status_location", "status", "location"),
        Index("ix_vehicles_category_rate", "category", "daily_rate"),
    )

    @property
    def full_name(self) -> str:
        return f"{self.year} {self.make} {self.model}"

    def __repr__(self) -> str:
        return f"<Vehicle(id={self.id}, {self.make} {self.model}, status={self.status})>"
