"""
Tests for rental periods, pricing and booking status rules.
"""

from datetime import date, datetime, timezone

import pytest

from app.core.exceptions import InvalidInputError
from app.domain.booking_state import assert_booking_transition, can_transition
from app.domain.pricing import add_ons_daily_cost, calculate_price, coverage_daily_cost
from app.domain.rental_period import (
    RentalPeriod, parse_instant_param, parse_period, ranges_overlap, rental_days,
)
from app.models.enums import (
    BookingStatus, CoverageType, VehicleStatus, blocks_vehicle, counts_as_revenue, is_in_service,
)


class TestRentalPeriod:
    def test_days_are_inclusive(self):
        assert rental_days(date(2024, 2, 1), date(2024, 2, 5)) == 5
        assert RentalPeriod.from_dates(date(2024, 2, 28), date(2024, 3, 1)).days == 3  # leap year

    @pytest.mark.parametrize("pickup,return_", [
        (date(2024, 3, 10), date(2024, 3, 10)),
        (date(2024, 3, 11), date(2024, 3, 10)),
    ])
    def test_pickup_must_precede_return(self, pickup, return_):
        with pytest.raises(InvalidInputError, match="Return date must be after pickup date"):
            RentalPeriod.from_dates(pickup, return_)

    def test_same_day_instants_are_one_day(self):
        period = parse_period("2024-03-10T10:00:00Z", "2024-03-10T18:00:00Z")
        assert period.pickup_date == period.return_date == date(2024, 3, 10)
        assert period.days == 1

    def test_partial_days_round_down(self):
        period = parse_period("2024-02-01T12:00:00Z", "2024-02-05T08:00:00Z")
        assert period.days == 4
        assert (period.pickup_date, period.return_date) == (date(2024, 2, 1), date(2024, 2, 5))

    def test_reversed_instants_rejected(self):
        with pytest.raises(InvalidInputError, match="Return date must be after pickup date"):
            parse_period("2024-03-10T18:00:00Z", "2024-03-10T10:00:00Z")

    def test_touching_ranges_overlap(self):
        assert ranges_overlap(date(2024, 3, 10), date(2024, 3, 15), date(2024, 3, 15), date(2024, 3, 20))
        assert not ranges_overlap(date(2024, 3, 10), date(2024, 3, 15), date(2024, 3, 16), date(2024, 3, 20))

    def test_overlap_is_symmetric(self):
        a = (date(2024, 3, 1), date(2024, 3, 31))
        b = (date(2024, 3, 10), date(2024, 3, 12))
        assert ranges_overlap(*a, *b) and ranges_overlap(*b, *a)

    def test_parse_plain_date_and_timestamp(self):
        assert parse_instant_param("2024-03-10", "pickupDate") == datetime(2024, 3, 10, tzinfo=timezone.utc)
        assert parse_instant_param(" 2024-03-10 ", "pickupDate") == datetime(2024, 3, 10, tzinfo=timezone.utc)
        assert parse_instant_param("2024-03-10T23:15:00Z", "pickupDate") == datetime(
            2024, 3, 10, 23, 15, tzinfo=timezone.utc,
        )

    def test_offsets_normalised_to_utc(self):
        assert parse_instant_param("2024-03-11T01:00:00+02:00", "pickupDate") == datetime(
            2024, 3, 10, 23, 0, tzinfo=timezone.utc,
        )
        assert parse_instant_param("2024-03-10T08:00:00", "pickupDate").tzinfo == timezone.utc

    def test_parse_rejects_garbage(self):
        with pytest.raises(InvalidInputError, match="Invalid returnDate"):
            parse_instant_param("10/03/2024", "returnDate")

    @pytest.mark.parametrize("pickup,return_", [(None, "2024-03-10"), ("2024-03-10", None), ("", "")])
    def test_parse_period_requires_both(self, pickup, return_):
        with pytest.raises(InvalidInputError, match="pickupDate and returnDate are required"):
            parse_period(pickup, return_)


class TestPricing:
    def test_basic_coverage_no_add_ons(self):
        price = calculate_price(40.0, 5, CoverageType.BASIC, {}, full_coverage_cost=15.0)
        assert price.cdw_cost == 0.0
        assert price.total_daily_rate == 40.0
        assert price.total_cost == 200.0

    def test_full_coverage_and_every_add_on(self):
        everything = {name: True for name in (
            "additional_driver", "wifi_hotspot", "roadside_assistance", "tire_protection",
            "personal_accident", "theft_protection", "extended_theft", "interior_protection",
        )}
        assert add_ons_daily_cost(everything) == pytest.approx(33.97)

        price = calculate_price(50.0, 3, CoverageType.FULL, everything, full_coverage_cost=15.0)
        assert price.add_ons_cost == 33.97
        assert price.total_daily_rate == 98.97
        assert price.total_cost == 296.91

    def test_unselected_and_unknown_add_ons_are_free(self):
        assert add_ons_daily_cost({"wifi_hotspot": False, "jetpack": True}) == 0

    def test_coverage_cost_is_configurable(self):
        assert coverage_daily_cost(CoverageType.FULL, 20.0) == 20.0
        assert coverage_daily_cost("basic", 20.0) == 0.0


class TestBookingTransitions:
    @pytest.mark.parametrize("current,target", [
        (BookingStatus.PENDING, BookingStatus.CONFIRMED),
        (BookingStatus.CONFIRMED, BookingStatus.IN_PROGRESS),
        (BookingStatus.CONFIRMED, BookingStatus.COMPLETED),
        (BookingStatus.IN_PROGRESS, BookingStatus.CANCELLED),
    ])
    def test_forward_moves_allowed(self, current, target):
        assert can_transition(current, target)
        assert_booking_transition(current, target)

    @pytest.mark.parametrize("current,target", [
        (BookingStatus.CONFIRMED, BookingStatus.PENDING),
        (BookingStatus.COMPLETED, BookingStatus.IN_PROGRESS),
        (BookingStatus.CANCELLED, BookingStatus.CONFIRMED),
    ])
    def test_backward_moves_rejected(self, current, target):
        assert not can_transition(current, target)
        with pytest.raises(InvalidInputError, match="Invalid booking transition"):
            assert_booking_transition(current, target)

    def test_completed_booking_cannot_be_cancelled(self):
        with pytest.raises(InvalidInputError, match="Cannot cancel a completed booking"):
            assert_booking_transition(BookingStatus.COMPLETED, BookingStatus.CANCELLED)

    def test_plain_strings_accepted(self):
        assert can_transition("pending", "confirmed")


class TestStatusTables:
    def test_blocking_statuses(self):
        assert {s for s in BookingStatus if blocks_vehicle(s)} == {BookingStatus.CONFIRMED, BookingStatus.IN_PROGRESS}

    def test_revenue_statuses(self):
        assert {s for s in BookingStatus if counts_as_revenue(s)} == {
            BookingStatus.CONFIRMED, BookingStatus.IN_PROGRESS, BookingStatus.COMPLETED,
        }

    def test_in_service_statuses(self):
        assert {s for s in VehicleStatus if is_in_service(s)} == {
            VehicleStatus.AVAILABLE, VehicleStatus.ACTIVE, VehicleStatus.BOOKED,
        }

    def test_unknown_status_raises(self):
        with pytest.raises(ValueError):
            blocks_vehicle("on_hold")
