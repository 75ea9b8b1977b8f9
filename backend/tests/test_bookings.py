"""
Tests for booking endpoints including conflict and concurrency scenarios.
"""

import re
from datetime import date

import pytest
from httpx import AsyncClient
from sqlalchemy import select, update

from app.models.booking import Booking
from app.models.enums import BookingStatus, VehicleStatus
from app.models.vehicle import Vehicle
from app.services import booking_service

BOOKINGS = "/api/v1/bookings/"


@pytest.mark.asyncio
async def test_create_booking(client: AsyncClient, make_vehicle, booking_payload):
    """Successful booking is confirmed, priced and snapshots the vehicle."""
    vehicle = await make_vehicle(daily_rate=40.0)

    response = await client.post(BOOKINGS, json=booking_payload(vehicle.id, "2024-03-10", "2024-03-14"))

    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "confirmed"
    assert data["vehicleId"] == vehicle.id
    assert data["pickupDate"] == "2024-03-10"
    assert data["returnDate"] == "2024-03-14"
    assert data["rentalDays"] == 5
    assert data["pricing"]["totalCost"] == 200.0
    assert data["vehicleInfo"] == {
        "make": "Volkswagen", "model": "Golf", "category": "compact", "dailyRate": 40.0, "currency": "EUR",
    }
    assert re.fullmatch(r"CAR\d{6}[A-Z0-9]{6}", data["bookingReference"])


@pytest.mark.asyncio
async def test_create_booking_with_coverage_and_add_ons(client: AsyncClient, make_vehicle, booking_payload):
    vehicle = await make_vehicle(daily_rate=40.0)

    response = await client.post(BOOKINGS, json=booking_payload(
        vehicle.id, "2024-03-10", "2024-03-11",
        cdwCoverage="full",
        addOns={"additionalDriver": True, "wifiHotspot": True},
    ))

    assert response.status_code == 201
    pricing = response.json()["pricing"]
    assert pricing["cdwCost"] == 15.0
    assert pricing["addOnsCost"] == 9.35
    assert pricing["totalDailyRate"] == 64.35
    assert pricing["totalCost"] == 128.7


@pytest.mark.asyncio
async def test_create_booking_unknown_vehicle(client: AsyncClient, db_session, booking_payload):
    response = await client.post(BOOKINGS, json=booking_payload(9999, "2024-03-10", "2024-03-12"))
    assert response.status_code == 404
    assert response.json() == {"error": "Vehicle not found"}


@pytest.mark.asyncio
async def test_create_booking_vehicle_in_maintenance(client: AsyncClient, make_vehicle, booking_payload):
    vehicle = await make_vehicle(status=VehicleStatus.MAINTENANCE)
    response = await client.post(BOOKINGS, json=booking_payload(vehicle.id, "2024-03-10", "2024-03-12"))
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_create_booking_dates_out_of_order(client: AsyncClient, make_vehicle, booking_payload):
    vehicle = await make_vehicle()
    response = await client.post(BOOKINGS, json=booking_payload(vehicle.id, "2024-03-12", "2024-03-10"))
    assert response.status_code == 400
    assert response.json() == {"error": "Return date must be after pickup date"}


@pytest.mark.asyncio
async def test_create_booking_conflict_lists_existing(
    client: AsyncClient, make_vehicle, make_booking, booking_payload,
):
    """Overlapping request returns 409 with the bookings in the way."""
    vehicle = await make_vehicle()
    existing = await make_booking(vehicle, date(2024, 3, 10), date(2024, 3, 15))

    response = await client.post(BOOKINGS, json=booking_payload(vehicle.id, "2024-03-15", "2024-03-20"))

    assert response.status_code == 409
    body = response.json()
    assert body["error"] == "Vehicle is not available for the selected dates"
    assert body["conflicts"] == [{
        "bookingReference": existing.booking_reference,
        "dates": "2024-03-10 - 2024-03-15",
        "customer": "Marko Kovac",
    }]


@pytest.mark.asyncio
async def test_second_identical_booking_rejected(client: AsyncClient, make_vehicle, booking_payload):
    vehicle = await make_vehicle()
    payload = booking_payload(vehicle.id, "2024-03-10", "2024-03-12")

    first = await client.post(BOOKINGS, json=payload)
    second = await client.post(BOOKINGS, json=payload)

    assert first.status_code == 201
    assert second.status_code == 409


@pytest.mark.asyncio
async def test_booking_bumps_vehicle_version(client: AsyncClient, make_vehicle, booking_payload, session_factory):
    vehicle = await make_vehicle()

    response = await client.post(BOOKINGS, json=booking_payload(vehicle.id, "2024-03-10", "2024-03-12"))
    assert response.status_code == 201

    async with session_factory() as session:
        stored = (await session.execute(select(Vehicle).where(Vehicle.id == vehicle.id))).scalar_one()
    assert stored.version == vehicle.version + 1


@pytest.mark.asyncio
async def test_lost_version_race_exhausts_retries(
    client: AsyncClient, make_vehicle, booking_payload, monkeypatch, session_factory,
):
    """A vehicle whose version keeps moving under us ends in a 409, not a double booking."""
    vehicle = await make_vehicle()
    attempts = []

    async def always_stale(db, vehicle_id, seen_version):
        attempts.append(seen_version)
        return False

    monkeypatch.setattr(booking_service, "_claim_vehicle", always_stale)

    response = await client.post(BOOKINGS, json=booking_payload(vehicle.id, "2024-03-10", "2024-03-12"))

    assert response.status_code == 409
    assert response.json() == {"error": "Booking failed due to high demand. Please try again."}
    assert len(attempts) == 3

    async with session_factory() as session:
        count = len((await session.execute(select(Booking))).scalars().all())
    assert count == 0


@pytest.mark.asyncio
async def test_rival_booking_between_check_and_claim(
    client: AsyncClient, make_vehicle, make_booking, booking_payload, monkeypatch, session_factory,
):
    """
    Another client books the same car after our overlap check but before our
    version claim. The claim fails, the retry re-reads the vehicle, sees the
    rival booking and rejects with its details.
    """
    vehicle = await make_vehicle()
    real_check = booking_service.find_conflicting_bookings
    checks = []
    rival = {}

    async def check_then_lose_race(db, vehicle_id, period):
        conflicts = await real_check(db, vehicle_id, period)
        checks.append(len(conflicts))
        if len(checks) == 1:
            rival["booking"] = await make_booking(vehicle, date(2024, 3, 11), date(2024, 3, 13))
            async with session_factory() as session:
                await session.execute(
                    update(Vehicle).where(Vehicle.id == vehicle.id).values(version=Vehicle.version + 1)
                )
                await session.commit()
        return conflicts

    monkeypatch.setattr(booking_service, "find_conflicting_bookings", check_then_lose_race)

    response = await client.post(BOOKINGS, json=booking_payload(vehicle.id, "2024-03-10", "2024-03-12"))

    assert response.status_code == 409
    body = response.json()
    assert body["error"] == "Vehicle is not available for the selected dates"
    assert [c["bookingReference"] for c in body["conflicts"]] == [rival["booking"].booking_reference]
    assert checks == [0, 1]

    async with session_factory() as session:
        blocking = (await session.execute(
            select(Booking).where(
                Booking.vehicle_id == vehicle.id,
                Booking.status.in_([BookingStatus.CONFIRMED, BookingStatus.IN_PROGRESS]),
            )
        )).scalars().all()
        stored = (await session.execute(select(Vehicle).where(Vehicle.id == vehicle.id))).scalar_one()
    assert [b.id for b in blocking] == [rival["booking"].id]
    assert stored.version == vehicle.version + 1


@pytest.mark.asyncio
async def test_lookup_by_email(client: AsyncClient, make_vehicle, booking_payload):
    vehicle = await make_vehicle()
    created = await client.post(BOOKINGS, json=booking_payload(vehicle.id, "2024-03-10", "2024-03-12"))
    reference = created.json()["bookingReference"]

    # Stored lower-cased, matched case-insensitively
    response = await client.get(BOOKINGS, params={"email": "IVANA.babic@example.com"})
    assert response.status_code == 200
    assert [b["bookingReference"] for b in response.json()["bookings"]] == [reference]

    narrowed = await client.get(BOOKINGS, params={"email": "ivana.babic@example.com", "reference": "CAR000000XXXXXX"})
    assert narrowed.json()["bookings"] == []


@pytest.mark.asyncio
async def test_lookup_requires_email(client: AsyncClient, db_session):
    response = await client.get(BOOKINGS)
    assert response.status_code == 400
    assert response.json() == {"error": "Email parameter is required"}


@pytest.mark.asyncio
async def test_get_booking_not_found(client: AsyncClient, db_session):
    response = await client.get(f"{BOOKINGS}4242")
    assert response.status_code == 404
    assert response.json() == {"error": "Booking not found"}


@pytest.mark.asyncio
async def test_update_contact_details(client: AsyncClient, make_vehicle, make_booking):
    vehicle = await make_vehicle()
    booking = await make_booking(vehicle, date(2024, 3, 10), date(2024, 3, 12))

    response = await client.put(f"{BOOKINGS}{booking.id}", json={
        "clientInfo": {"phoneNumber": "955555555", "flightNumber": "OU 654"},
    })

    assert response.status_code == 200
    info = response.json()["clientInfo"]
    assert info["phoneNumber"] == "955555555"
    assert info["flightNumber"] == "OU 654"
    assert info["firstName"] == "Marko"


@pytest.mark.asyncio
async def test_illegal_transition_rejected(client: AsyncClient, make_vehicle, make_booking):
    vehicle = await make_vehicle()
    booking = await make_booking(vehicle, date(2024, 3, 10), date(2024, 3, 12), status=BookingStatus.COMPLETED)

    response = await client.put(f"{BOOKINGS}{booking.id}", json={"status": "confirmed"})

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid booking transition: completed -> confirmed"}


@pytest.mark.asyncio
async def test_confirming_pending_booking_rechecks_dates(client: AsyncClient, make_vehicle, make_booking):
    vehicle = await make_vehicle()
    await make_booking(vehicle, date(2024, 3, 10), date(2024, 3, 15))
    pending = await make_booking(vehicle, date(2024, 3, 14), date(2024, 3, 16), status=BookingStatus.PENDING)

    response = await client.put(f"{BOOKINGS}{pending.id}", json={"status": "confirmed"})

    assert response.status_code == 409
    assert len(response.json()["conflicts"]) == 1


@pytest.mark.asyncio
async def test_cancel_releases_dates(client: AsyncClient, make_vehicle, make_booking):
    vehicle = await make_vehicle()
    booking = await make_booking(vehicle, date(2024, 3, 10), date(2024, 3, 15))

    response = await client.delete(f"{BOOKINGS}{booking.id}")
    assert response.status_code == 200
    assert response.json() == {
        "message": "Booking cancelled successfully",
        "bookingId": booking.id,
        "status": "cancelled",
    }

    availability = await client.get("/api/v1/vehicles/availability", params={
        "pickupDate": "2024-03-12", "returnDate": "2024-03-13",
    })
    assert [v["id"] for v in availability.json()["availableVehicles"]] == [vehicle.id]


@pytest.mark.asyncio
async def test_cannot_cancel_completed_booking(client: AsyncClient, make_vehicle, make_booking):
    vehicle = await make_vehicle()
    booking = await make_booking(vehicle, date(2024, 2, 10), date(2024, 2, 15), status=BookingStatus.COMPLETED)

    response = await client.delete(f"{BOOKINGS}{booking.id}")

    assert response.status_code == 400
    assert response.json() == {"error": "Cannot cancel a completed booking"}


@pytest.mark.asyncio
async def test_cannot_cancel_twice(client: AsyncClient, make_vehicle, make_booking):
    vehicle = await make_vehicle()
    booking = await make_booking(vehicle, date(2024, 3, 10), date(2024, 3, 15), status=BookingStatus.CANCELLED)

    response = await client.delete(f"{BOOKINGS}{booking.id}")

    assert response.status_code == 400
    assert response.json() == {"error": "Booking is already cancelled"}


@pytest.mark.asyncio
async def test_invalid_body_is_422(client: AsyncClient, make_vehicle):
    vehicle = await make_vehicle()
    response = await client.post(BOOKINGS, json={"vehicleId": vehicle.id})
    assert response.status_code == 422
    assert response.json()["error"] == "Validation error"
