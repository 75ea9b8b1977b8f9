"""
Rental periods and the overlap rule.

A rental occupies every calendar day from pickup to return, both included.
Two periods conflict when they share at least one day, so a car returned on
the 15th cannot be picked up by someone else on the 15th.

Callers may send plain dates or full ISO timestamps. A period keeps the exact
UTC instants for ordering and the day count; overlap checks only ever look at
the calendar dates.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

from app.core.exceptions import InvalidInputError

ONE_DAY = timedelta(days=1)


@dataclass(frozen=True)
class RentalPeriod:
    pickup_at: datetime
    return_at: datetime

    def __post_init__(self):
        if self.pickup_at >= self.return_at:
            raise InvalidInputError("Return date must be after pickup date")

    @classmethod
    def from_dates(cls, pickup_date: date, return_date: date) -> "RentalPeriod":
        return cls(start_of_day(pickup_date), start_of_day(return_date))

    @property
    def pickup_date(self) -> date:
        return self.pickup_at.date()

    @property
    def return_date(self) -> date:
        return self.return_at.date()

    @property
    def days(self) -> int:
        """Whole days elapsed, rounded down, plus one."""
        return (self.return_at - self.pickup_at) // ONE_DAY + 1


def start_of_day(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def ranges_overlap(a_start: date, a_end: date, b_start: date, b_end: date) -> bool:
    """Closed-interval overlap: touching endpoints count as a conflict."""
    return a_start <= b_end and a_end >= b_start


def rental_days(pickup_date: date, return_date: date) -> int:
    """Inclusive day count: 1 Feb to 5 Feb is 5 days."""
    return (return_date - pickup_date).days + 1


def parse_instant_param(value: Optional[str], field: str) -> datetime:
    """
    Parse an ISO date or timestamp query parameter into a UTC instant.

    A plain date ("2024-03-10") means midnight UTC. Timestamps without an
    offset are taken as UTC.
    """
    if value is None or not value.strip():
        raise InvalidInputError("pickupDate and returnDate are required")

    raw = value.strip()
    try:
        return start_of_day(date.fromisoformat(raw))
    except ValueError:
        pass
    try:
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        raise InvalidInputError(f"Invalid {field}: expected an ISO date") from None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_period(pickup: Optional[str], return_: Optional[str]) -> RentalPeriod:
    if not pickup or not return_:
        raise InvalidInputError("pickupDate and returnDate are required")
    return RentalPeriod(parse_instant_param(pickup, "pickupDate"), parse_instant_param(return_, "returnDate"))
