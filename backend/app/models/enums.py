"""
Closed status vocabularies for vehicles and bookings.

Each classification below is a complete table over the enum. A member added
without a row here fails at import, not silently at query time.
"""

import enum


class VehicleStatus(str, enum.Enum):
    AVAILABLE = "available"
    ACTIVE = "active"
    BOOKED = "booked"
    MAINTENANCE = "maintenance"
    RETIRED = "retired"


class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class CoverageType(str, enum.Enum):
    BASIC = "basic"
    FULL = "full"


class Currency(str, enum.Enum):
    EUR = "EUR"
    USD = "USD"
    GBP = "GBP"
    HRK = "HRK"


# Does a booking in this state block the vehicle for its dates?
_BLOCKS_VEHICLE = {
    BookingStatus.PENDING: False,
    BookingStatus.CONFIRMED: True,
    BookingStatus.IN_PROGRESS: True,
    BookingStatus.COMPLETED: False,
    BookingStatus.CANCELLED: False,
}

# Does a booking in this state count as earned revenue?
_COUNTS_AS_REVENUE = {
    BookingStatus.PENDING: False,
    BookingStatus.CONFIRMED: True,
    BookingStatus.IN_PROGRESS: True,
    BookingStatus.COMPLETED: True,
    BookingStatus.CANCELLED: False,
}

# Is a vehicle in this state part of the rentable fleet?
_IN_SERVICE = {
    VehicleStatus.AVAILABLE: True,
    VehicleStatus.ACTIVE: True,
    VehicleStatus.BOOKED: True,
    VehicleStatus.MAINTENANCE: False,
    VehicleStatus.RETIRED: False,
}

for _table, _enum in ((_BLOCKS_VEHICLE, BookingStatus), (_COUNTS_AS_REVENUE, BookingStatus), (_IN_SERVICE, VehicleStatus)):
    if set(_table) != set(_enum):
        raise RuntimeError(f"incomplete status table for {_enum.__name__}")


def blocks_vehicle(status: BookingStatus) -> bool:
    return _BLOCKS_VEHICLE[BookingStatus(status)]


def counts_as_revenue(status: BookingStatus) -> bool:
    return _COUNTS_AS_REVENUE[BookingStatus(status)]


def is_in_service(status: VehicleStatus) -> bool:
    return _IN_SERVICE[VehicleStatus(status)]


CONFLICTING_STATUSES = frozenset(s for s, blocks in _BLOCKS_VEHICLE.items() if blocks)
REVENUE_STATUSES = frozenset(s for s, counts in _COUNTS_AS_REVENUE.items() if counts)
IN_SERVICE_STATUSES = frozenset(s for s, active in _IN_SERVICE.items() if active)


def enum_values(enum_cls) -> list[str]:
    """Persist enum members by value ("in_progress"), not by name."""
    return [member.value for member in enum_cls]
