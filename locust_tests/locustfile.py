"""
SupplyTrack Load Test — Locust Script
======================================
Simulates a fleet of drivers streaming GPS fixes while control-tower
operators and suppliers poll the live view.

Usage:
    python manage.py seed_demo_accounts
    locust -f locust_tests/locustfile.py --host=http://localhost:8000 \
           --users=500 --spawn-rate=50 --run-time=5m --headless

Each DriverDevice needs an ASSIGNED or IN_TRANSIT shipment; set
SHIPMENT_IDS to the ids of shipments assigned to driver@supplytrack.local.
"""

import os
import random
from datetime import datetime, timezone
from locust import HttpUser, task, between, events
from locust.exception import StopUser

DEMO_PASSWORD = os.environ.get("DEMO_PASSWORD", "demo-pass-123")
SHIPMENT_IDS  = [s for s in os.environ.get("SHIPMENT_IDS", "").split(",") if s]

# Rough Kigali bounding box
LAT_RANGE = (-2.05, -1.90)
LNG_RANGE = (29.98, 30.20)


def login(client, email):
    resp = client.post(
        "/api/auth/login/",
        json={"email": email, "password": DEMO_PASSWORD},
        name="/api/auth/login/",
    )
    if resp.status_code != 200:
        raise StopUser()
    return {"Authorization": f"Bearer {resp.json()['access']}"}


class DriverDevice(HttpUser):
    """A phone in a truck cab reporting position every few seconds."""
    wait_time = between(2, 5)
    weight    = 8

    def on_start(self):
        if not SHIPMENT_IDS:
            raise StopUser()
        self.headers     = login(self.client, "driver@supplytrack.local")
        self.shipment_id = random.choice(SHIPMENT_IDS)
        self.lat = random.uniform(*LAT_RANGE)
        self.lng = random.uniform(*LNG_RANGE)

    @task(10)
    def report_fix(self):
        self.lat = min(max(self.lat + random.uniform(-0.002, 0.002), LAT_RANGE[0]), LAT_RANGE[1])
        self.lng = min(max(self.lng + random.uniform(-0.002, 0.002), LNG_RANGE[0]), LNG_RANGE[1])
        self.client.post(
            "/api/tracking/update/",
            json={
                "shipment_id": self.shipment_id,
                "latitude":    round(self.lat, 6),
                "longitude":   round(self.lng, 6),
                "speed":       round(random.uniform(0, 80), 1),
                "recorded_at": datetime.now(timezone.utc).isoformat(),
            },
            headers=self.headers,
            name="/api/tracking/update/",
        )

    @task(1)
    def my_shipments(self):
        self.client.get("/api/shipments/", headers=self.headers, name="/api/shipments/")


class ControlTowerOperator(HttpUser):
    """Admins watching the whole fleet (fewer, heavier queries)."""
    wait_time = between(2, 5)
    weight    = 1

    def on_start(self):
        self.headers = login(self.client, "admin@supplytrack.local")

    @task(5)
    def live_view(self):
        self.client.get("/api/tracking/live/", headers=self.headers, name="/api/tracking/live/")

    @task(2)
    def dashboard(self):
        self.client.get("/api/admin/dashboard/summary/", headers=self.headers, name="/api/admin/dashboard/")

    @task(1)
    def route_replay(self):
        if SHIPMENT_IDS:
            self.client.get(
                f"/api/tracking/{random.choice(SHIPMENT_IDS)}/history/?limit=200",
                headers=self.headers,
                name="/api/tracking/[id]/history/",
            )


class SupplierDesk(HttpUser):
    """Suppliers checking on their own deliveries."""
    wait_time = between(3, 8)
    weight    = 2

    def on_start(self):
        self.headers = login(self.client, "supplier@supplytrack.local")

    @task(3)
    def live_view(self):
        self.client.get("/api/tracking/live/", headers=self.headers, name="/api/tracking/live/ (supplier)")

    @task(1)
    def health_check(self):
        self.client.get("/api/health/deep/", name="/api/health/deep/")


# ── Custom events for Locust reporting ────────────────────────────────────────
@events.test_stop.add_listener
def on_test_stop(environment, **kwargs):
    print("\n=== SupplyTrack Load Test Complete ===")
    stats = environment.stats.total
    print(f"Total requests:      {stats.num_requests}")
    print(f"Failures:            {stats.num_failures}")
    print(f"Avg response time:   {stats.avg_response_time:.0f}ms")
    print(f"95th percentile:     {stats.get_response_time_percentile(0.95):.0f}ms")
    print(f"Requests/sec:        {stats.current_rps:.1f}")
    if stats.num_failures / max(stats.num_requests, 1) > 0.01:
        print("FAILURE RATE > 1%")
    else:
        print("System stable under load")
