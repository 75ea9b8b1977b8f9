"""Booking status transitions."""

from app.core.exceptions import InvalidInputError
from app.models.enums import BookingStatus

BOOKING_TRANSITIONS = {
    BookingStatus.PENDING: {
        BookingStatus.CONFIRMED, BookingStatus.IN_PROGRESS, BookingStatus.COMPLETED, BookingStatus.CANCELLED,
    },
    BookingStatus.CONFIRMED: {BookingStatus.IN_PROGRESS, BookingStatus.COMPLETED, BookingStatus.CANCELLED},
    BookingStatus.IN_PROGRESS: {BookingStatus.COMPLETED, BookingStatus.CANCELLED},
    BookingStatus.COMPLETED: set(),
    BookingStatus.CANCELLED: set(),
}


def can_transition(current: BookingStatus, target: BookingStatus) -> bool:
    return BookingStatus(target) in BOOKING_TRANSITIONS[BookingStatus(current)]


def assert_booking_transition(current: BookingStatus, target: BookingStatus) -> None:
    current, target = BookingStatus(current), BookingStatus(target)
    if current == BookingStatus.COMPLETED and target == BookingStatus.CANCELLED:
        raise InvalidInputError("Cannot cancel a completed booking")
    if current == target == BookingStatus.CANCELLED:
        raise InvalidInputError("Booking is already cancelled")
    if not can_transition(current, target):
        raise InvalidInputError(f"Invalid booking transition: {current.value} -> {target.value}")
