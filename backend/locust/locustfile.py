"""
Locust Load Test Suite

Run scenarios:
  locust -f locustfile.py --tags concurrency  # Test double booking
  locust -f locustfile.py --tags throughput   # Test catalog cache + availability search
  locust -f locustfile.py --tags edge         # Test bad input
  locust -f locustfile.py                     # All tests
"""

import random
import string
from datetime import date, timedelta

from locust import HttpUser, task, between, tag, events

# Shared state
VEHICLE_IDS = []
CONCURRENCY_VEHICLE_ID = None
BOOKED = {"created": 0, "rejected": 0}

ADMIN_PASSWORD = "loadtest-admin-1"
LOCATIONS = ["Split Airport", "Zagreb Airport", "Dubrovnik Airport"]


def random_email():
    return f"load_{random.randint(10000, 99999)}@test.com"


def random_plate():
    return "LT-" + "".join(random.choices(string.ascii_uppercase + string.digits, k=6))


def future_period(start_in_days: int, length: int) -> tuple[str, str]:
    pickup = date.today() + timedelta(days=start_in_days)
    return pickup.isoformat(), (pickup + timedelta(days=length)).isoformat()


def vehicle_body(location: str) -> dict:
    return {
        "make": "Skoda",
        "model": random.choice(["Fabia", "Octavia", "Kodiaq"]),
        "year": 2023,
        "color": "White",
        "licensePlate": random_plate(),
        "category": random.choice(["economy", "compact", "suv"]),
        "transmission": "manual",
        "passengerCapacity": 5,
        "doorCount": 5,
        "dailyRate": random.choice([35, 45, 60]),
        "location": location,
    }


def booking_body(vehicle_id: int, pickup: str, return_: str) -> dict:
    return {
        "clientInfo": {
            "firstName": "Load",
            "lastName": "Tester",
            "email": random_email(),
            "countryCode": "+385",
            "phoneNumber": "911234567",
        },
        "vehicleId": vehicle_id,
        "pickupDate": pickup,
        "returnDate": return_,
        "pickupLocation": "Split Airport",
    }


def admin_headers(client) -> dict:
    """Register a throwaway admin and return its bearer header."""
    email = random_email()
    client.post("/api/v1/auth/register", json={
        "email": email,
        "firstName": "Load",
        "lastName": "Admin",
        "password": ADMIN_PASSWORD,
    })
    resp = client.post("/api/v1/auth/login", json={"email": email, "password": ADMIN_PASSWORD})
    if resp.status_code != 200:
        return {}
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "="*60)
    print("SETUP: Creating concurrency test vehicle...")
    print("="*60)


@events.test_stop.add_listener
def on_test_stop(environment, **kwargs):
    print(f"\nConcurrency vehicle {CONCURRENCY_VEHICLE_ID}: "
          f"{BOOKED['created']} created, {BOOKED['rejected']} rejected (expect created <= 1)\n")


class ConcurrencyUser(HttpUser):
    """
    TEST 1: Concurrency - 100 clients → 1 car, same dates

    Run: locust -f locustfile.py --tags concurrency -u 100 -r 50 --run-time 30s

    After test, verify:
      SELECT COUNT(*) FROM bookings WHERE vehicle_id = X AND status = 'confirmed';
    Should be ≤ 1
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        global CONCURRENCY_VEHICLE_ID
        if CONCURRENCY_VEHICLE_ID:
            return
        headers = admin_headers(self.client)
        if not headers:
            return
        resp = self.client.post("/api/v1/vehicles/", json=vehicle_body("Split Airport"), headers=headers)
        if resp.status_code == 201 and not CONCURRENCY_VEHICLE_ID:
            CONCURRENCY_VEHICLE_ID = resp.json()["id"]
            print(f"\n✓ Created vehicle {CONCURRENCY_VEHICLE_ID}\n")

    @tag("concurrency")
    @task
    def book_same_car(self):
        """All clients fight for the same car on overlapping dates."""
        if not CONCURRENCY_VEHICLE_ID:
            return

        pickup, return_ = future_period(30, random.randint(2, 5))
        with self.client.post("/api/v1/bookings/",
            json=booking_body(CONCURRENCY_VEHICLE_ID, pickup, return_),
            name="/api/v1/bookings/ [contended]",
            catch_response=True
        ) as resp:
            if resp.status_code == 201:
                BOOKED["created"] += 1
                resp.success()
            elif resp.status_code == 409:
                BOOKED["rejected"] += 1
                resp.success()  # Expected: dates taken or retries exhausted
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ThroughputUser(HttpUser):
    """
    TEST 2: Throughput - Catalog cache and availability search

    Run twice:
      1. With Redis: locust -f locustfile.py --tags throughput -u 100 -r 20 --run-time 60s
      2. Without Redis: REDIS_ENABLED=false, run again

    Compare:
      - Avg response time
      - Requests/sec
      - P95/P99 latency
    """
    wait_time = between(0.1, 0.5)

    @tag("throughput", "read")
    @task(10)
    def list_vehicles_cached(self):
        """Hammer the cached endpoint."""
        page = random.randint(1, 3)
        resp = self.client.get(f"/api/v1/vehicles/?page={page}&limit=12",
            name="/api/v1/vehicles/ [cached]")
        if resp.status_code == 200:
            for vehicle in resp.json().get("vehicles", []):
                if vehicle["id"] not in VEHICLE_IDS:
                    VEHICLE_IDS.append(vehicle["id"])

    @tag("throughput", "read")
    @task(6)
    def search_availability(self):
        """Availability search is never cached."""
        pickup, return_ = future_period(random.randint(1, 60), random.randint(1, 10))
        self.client.get(
            f"/api/v1/vehicles/availability?pickupDate={pickup}&returnDate={return_}",
            name="/api/v1/vehicles/availability",
        )

    @tag("throughput", "read")
    @task(3)
    def get_vehicle_detail(self):
        if VEHICLE_IDS:
            self.client.get(f"/api/v1/vehicles/{random.choice(VEHICLE_IDS)}",
                name="/api/v1/vehicles/{id}")

    @tag("throughput")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Edge cases - Bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    System should NOT crash, return proper error codes.
    """
    wait_time = between(0.5, 1.5)

    def _expect(self, resp, codes):
        if resp.status_code in codes:
            resp.success()
        else:
            resp.failure(f"Expected {codes}, got {resp.status_code}")

    @tag("edge")
    @task
    def unknown_vehicle(self):
        pickup, return_ = future_period(10, 3)
        with self.client.post("/api/v1/bookings/", json=booking_body(999999, pickup, return_),
                              catch_response=True) as resp:
            self._expect(resp, [404])

    @tag("edge")
    @task
    def reversed_dates(self):
        pickup, return_ = future_period(10, 3)
        with self.client.post("/api/v1/bookings/", json=booking_body(1, return_, pickup),
                              catch_response=True) as resp:
            self._expect(resp, [400, 404])

    @tag("edge")
    @task
    def availability_missing_dates(self):
        with self.client.get("/api/v1/vehicles/availability?pickupDate=2030-01-01",
                             catch_response=True) as resp:
            self._expect(resp, [400])

    @tag("edge")
    @task
    def availability_bad_vehicle_id(self):
        pickup, return_ = future_period(10, 3)
        with self.client.get(
            f"/api/v1/vehicles/availability?vehicleId=abc&pickupDate={pickup}&returnDate={return_}",
            catch_response=True,
        ) as resp:
            self._expect(resp, [400])

    @tag("edge")
    @task
    def malformed_json(self):
        with self.client.post("/api/v1/bookings/", data="not json at all",
                              catch_response=True) as resp:
            self._expect(resp, [400, 422])

    @tag("edge")
    @task
    def fleet_write_without_auth(self):
        with self.client.post("/api/v1/vehicles/", json=vehicle_body("Split Airport"),
                              catch_response=True) as resp:
            self._expect(resp, [401])


class RealisticUser(HttpUser):
    """
    TEST 4: Realistic mixed workload

    Run: locust -f locustfile.py -u 200 -r 20 --run-time 120s

    Simulates real traffic:
      - Mostly searching and browsing
      - Some bookings
      - Rare fleet additions
    """
    wait_time = between(1, 3)

    def on_start(self):
        self.headers = admin_headers(self.client) if random.random() < 0.1 else {}

    @task(40)
    def search(self):
        pickup, return_ = future_period(random.randint(1, 90), random.randint(1, 14))
        resp = self.client.get(
            f"/api/v1/vehicles/availability?pickupDate={pickup}&returnDate={return_}",
            name="/api/v1/vehicles/availability",
        )
        if resp.status_code == 200:
            self.last_search = (pickup, return_, [v["id"] for v in resp.json()["availableVehicles"]])

    @task(20)
    def browse(self):
        self.client.get(f"/api/v1/vehicles/?location={random.choice(LOCATIONS)}",
            name="/api/v1/vehicles/?location")

    @task(10)
    def book_from_search(self):
        """Book something the last search said was free; a 409 means someone was faster."""
        search = getattr(self, "last_search", None)
        if not search or not search[2]:
            return
        pickup, return_, ids = search
        with self.client.post("/api/v1/bookings/", json=booking_body(random.choice(ids), pickup, return_),
                              catch_response=True) as resp:
            if resp.status_code in (201, 409):
                resp.success()
            else:
                resp.failure(f"Unexpected: {resp.status_code}")

    @task(2)
    def add_vehicle(self):
        if self.headers:
            resp = self.client.post("/api/v1/vehicles/",
                json=vehicle_body(random.choice(LOCATIONS)),
                headers=self.headers)
            if resp.status_code == 201:
                VEHICLE_IDS.append(resp.json()["id"])
