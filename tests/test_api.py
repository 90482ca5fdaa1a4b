"""
HTTP surface: the end-to-end delivery scenario, role-scoped listing, public
tracking, the error body contract, ops endpoints and notification delivery.
"""

import pytest
import requests
from unittest.mock import MagicMock, patch

from django.core import mail
from django.db import OperationalError
from rest_framework import status

from apps.shipments.models import Shipment, StatusHistoryEntry
from apps.tracking.models import GpsFix

S = Shipment.Status


def create_via_api(client, consumer, **overrides):
    payload = {
        "consumer_email":      consumer.email,
        "goods_description":   "12 sacks of coffee beans",
        "origin_address":      "Huye Washing Station",
        "destination_address": "Kigali Roastery",
        **overrides,
    }
    return client.post("/api/shipments/create/", payload, format="json")


# ═══════════════════════════════════════════════════════════════════════════════
# INTEGRATION TESTS — Happy path
# ═══════════════════════════════════════════════════════════════════════════════

@pytest.mark.django_db
class TestDeliveryScenario:
    """create → assign → first fix (auto in_transit) → out_for_delivery → delivered → frozen."""

    def test_full_lifecycle(self, client_for, supplier, consumer, driver, admin):
        resp = create_via_api(client_for(supplier), consumer)
        assert resp.status_code == status.HTTP_201_CREATED
        shipment_id   = resp.data["id"]
        tracking_code = resp.data["tracking_code"]
        assert resp.data["status"] == S.CREATED

        resp = client_for(admin).post(f"/api/shipments/{shipment_id}/assign-driver/",
                                      {"driver_id": str(driver.pk)}, format="json")
        assert resp.status_code == 200
        assert resp.data["status"] == S.ASSIGNED
        assert resp.data["driver_name"] == "Jean"

        resp = client_for(driver).post("/api/tracking/update/", {
            "shipment_id": shipment_id, "latitude": -1.9536, "longitude": 30.0606, "speed": 42,
        }, format="json")
        assert resp.status_code == status.HTTP_201_CREATED
        assert resp.data["transition"]["to_status"] == S.IN_TRANSIT
        fix_id = resp.data["fix"]["id"]

        resp = client_for(consumer).get(f"/api/tracking/{shipment_id}/current/")
        assert resp.status_code == 200
        assert resp.data["id"] == fix_id
        assert resp.data["status"] == S.IN_TRANSIT

        for target in (S.OUT_FOR_DELIVERY, S.DELIVERED):
            resp = client_for(driver).post(f"/api/shipments/{shipment_id}/status/",
                                           {"status": target}, format="json")
            assert resp.status_code == 200, resp.data

        resp = client_for(driver).post(f"/api/shipments/{shipment_id}/status/",
                                       {"status": S.CANCELLED}, format="json")
        assert resp.status_code == status.HTTP_409_CONFLICT
        assert resp.data["error"] == "terminal_state"
        assert resp.data["current_status"] == S.DELIVERED

        resp = client_for(driver).post("/api/tracking/update/", {
            "shipment_id": shipment_id, "latitude": -1.95, "longitude": 30.06,
        }, format="json")
        assert resp.data["error"] == "terminal_state"

        resp = client_for(consumer).get(f"/api/shipments/{shipment_id}/")
        assert resp.data["delivered_at"] is not None
        assert [h["to_status"] for h in resp.data["history"]] == [
            S.CREATED, S.ASSIGNED, S.IN_TRANSIT, S.OUT_FOR_DELIVERY, S.DELIVERED,
        ]

        resp = client_for(admin).get(f"/api/shipments/track/{tracking_code}/")
        assert resp.data["status"] == S.DELIVERED


# ═══════════════════════════════════════════════════════════════════════════════
# API TESTS — shipments
# ═══════════════════════════════════════════════════════════════════════════════

@pytest.mark.django_db
class TestShipmentAPI:

    def test_unknown_consumer_email(self, client_for, supplier):
        resp = client_for(supplier).post("/api/shipments/create/", {
            "consumer_email": "ghost@example.com", "goods_description": "x",
            "origin_address": "a", "destination_address": "b",
        }, format="json")
        assert resp.status_code == status.HTTP_404_NOT_FOUND
        assert resp.data["error"] == "consumer_not_found"

    def test_driver_cannot_create(self, client_for, driver, consumer):
        resp = create_via_api(client_for(driver), consumer)
        assert resp.status_code == status.HTTP_403_FORBIDDEN
        assert resp.data == {
            "error": "forbidden",
            "detail": "Access denied. Required roles: SUPPLIER",
            "required_roles": ["SUPPLIER"],
        }

    def test_delivery_before_pickup_rejected(self, client_for, supplier, consumer):
        resp = create_via_api(client_for(supplier), consumer,
                              pickup_date="2026-03-10", expected_delivery_date="2026-03-01")
        assert resp.status_code == status.HTTP_400_BAD_REQUEST
        assert "expected_delivery_date" in resp.data["detail"]

    def test_list_is_role_scoped(self, client_for, make_shipment, make_account, supplier, consumer):
        make_shipment()
        make_shipment()
        make_shipment(by=make_account("SUPPLIER"))

        assert client_for(supplier).get("/api/shipments/").data["count"] == 2
        assert client_for(consumer).get("/api/shipments/").data["count"] == 3
        assert client_for(make_account("DRIVER")).get("/api/shipments/").data["count"] == 0

    def test_list_filters_by_status(self, client_for, assigned_shipment, make_shipment, admin):
        make_shipment()
        resp = client_for(admin).get("/api/shipments/", {"status": S.ASSIGNED})
        assert [row["id"] for row in resp.data["results"]] == [str(assigned_shipment.pk)]
        assert resp.data["results"][0]["next_status"] == S.PICKED_UP

    def test_invisible_shipment_is_not_found(self, client_for, assigned_shipment, make_account):
        resp = client_for(make_account("CONSUMER")).get(f"/api/shipments/{assigned_shipment.pk}/")
        assert resp.status_code == status.HTTP_404_NOT_FOUND
        assert resp.data == {"error": "not_found", "detail": "Shipment not found."}

    def test_skip_reports_allowed_targets(self, client_for, assigned_shipment, driver):
        resp = client_for(driver).post(f"/api/shipments/{assigned_shipment.pk}/status/",
                                       {"status": S.OUT_FOR_DELIVERY}, format="json")
        assert resp.status_code == status.HTTP_409_CONFLICT
        assert resp.data["error"] == "invalid_transition"
        assert resp.data["allowed"] == [S.PICKED_UP]

    def test_wrong_driver_not_assigned(self, client_for, assigned_shipment, make_account):
        resp = client_for(make_account("DRIVER")).post(
            f"/api/shipments/{assigned_shipment.pk}/status/", {"status": S.PICKED_UP}, format="json",
        )
        assert resp.status_code == status.HTTP_403_FORBIDDEN
        assert resp.data["error"] == "not_assigned"

    def test_expected_status_conflict(self, client_for, assigned_shipment, driver):
        resp = client_for(driver).post(f"/api/shipments/{assigned_shipment.pk}/status/", {
            "status": S.PICKED_UP, "expected_status": S.CREATED,
        }, format="json")
        assert resp.status_code == status.HTTP_409_CONFLICT
        assert resp.data["error"] == "conflict"
        assert resp.data["expected_status"] == S.CREATED

    def test_half_a_location_is_invalid(self, client_for, assigned_shipment, driver):
        resp = client_for(driver).post(f"/api/shipments/{assigned_shipment.pk}/status/", {
            "status": S.PICKED_UP, "latitude": 1.5,
        }, format="json")
        assert resp.status_code == status.HTTP_400_BAD_REQUEST

    def test_assign_unavailable_driver(self, client_for, make_shipment, admin, consumer):
        shipment = make_shipment()
        resp = client_for(admin).post(f"/api/shipments/{shipment.pk}/assign-driver/",
                                      {"driver_id": str(consumer.pk)}, format="json")
        assert resp.status_code == status.HTTP_409_CONFLICT
        assert resp.data["error"] == "driver_unavailable"

    def test_supplier_cancels(self, client_for, make_shipment, supplier):
        shipment = make_shipment()
        resp = client_for(supplier).post(f"/api/shipments/{shipment.pk}/cancel/",
                                         {"note": "Out of stock"}, format="json")
        assert resp.status_code == 200
        assert resp.data["to_status"] == S.CANCELLED

    def test_history_endpoint_limit(self, client_for, assigned_shipment, driver):
        resp = client_for(driver).get(f"/api/shipments/{assigned_shipment.pk}/history/", {"limit": 1})
        assert [h["to_status"] for h in resp.data] == [S.ASSIGNED]


# ═══════════════════════════════════════════════════════════════════════════════
# API TESTS — public tracking
# ═══════════════════════════════════════════════════════════════════════════════

@pytest.mark.django_db
class TestPublicTracking:

    def test_lookup_without_credentials(self, api_client, assigned_shipment):
        resp = api_client.get(f"/api/shipments/track/{assigned_shipment.tracking_code}/")
        assert resp.status_code == 200
        assert resp.data["supplier_name"] == "Kigali Foods"
        assert resp.data["driver_name"] == "Jean"
        assert [h["to_status"] for h in resp.data["history"]] == [S.CREATED, S.ASSIGNED]

    def test_no_identity_fields_leak(self, api_client, assigned_shipment):
        resp = api_client.get(f"/api/shipments/track/{assigned_shipment.tracking_code}/")
        body = str(resp.data)
        for secret in ("example.com", "+25078", str(assigned_shipment.pk)):
            assert secret not in body
        assert all(set(h) == {"to_status", "note", "latitude", "longitude", "occurred_at"} for h in resp.data["history"])

    def test_history_carries_reported_location(self, api_client, shipment_service, assigned_shipment, driver):
        shipment_service.advance_status(driver, assigned_shipment.pk, S.PICKED_UP, location=(-1.95, 30.06))

        resp = api_client.get(f"/api/shipments/track/{assigned_shipment.tracking_code}/")
        last = resp.data["history"][-1]
        assert last["to_status"] == S.PICKED_UP
        assert (last["latitude"], last["longitude"]) == (-1.95, 30.06)
        assert resp.data["history"][0]["latitude"] is None

    def test_unknown_code_matches_private_not_found(self, api_client, client_for, assigned_shipment,
                                                   make_account):
        public = api_client.get("/api/shipments/track/SCT-ZZZZZZZZZZ/")
        private = client_for(make_account("CONSUMER")).get(f"/api/shipments/{assigned_shipment.pk}/")
        assert public.status_code == private.status_code == status.HTTP_404_NOT_FOUND
        assert public.data == private.data


# ═══════════════════════════════════════════════════════════════════════════════
# API TESTS — tracking
# ═══════════════════════════════════════════════════════════════════════════════

@pytest.mark.django_db
class TestTrackingAPI:

    def test_out_of_range_coordinates(self, client_for, assigned_shipment, driver):
        resp = client_for(driver).post("/api/tracking/update/", {
            "shipment_id": str(assigned_shipment.pk), "latitude": 95, "longitude": 30,
        }, format="json")
        assert resp.status_code == status.HTTP_400_BAD_REQUEST
        assert resp.data["error"] == "invalid_coordinates"

    def test_current_before_any_fix(self, client_for, assigned_shipment, admin):
        resp = client_for(admin).get(f"/api/tracking/{assigned_shipment.pk}/current/")
        assert resp.status_code == status.HTTP_404_NOT_FOUND
        assert resp.data["detail"] == "No GPS data found for this shipment."

    def test_route_limit_is_clamped(self, client_for, assigned_shipment, position_store, driver, settings):
        settings.TRACKING_HISTORY_MAX_LIMIT = 2
        for i in range(4):
            position_store.record_fix(driver, assigned_shipment.pk, i, i)
        resp = client_for(driver).get(f"/api/tracking/{assigned_shipment.pk}/history/", {"limit": 100})
        assert resp.data["count"] == 2
        assert [p["latitude"] for p in resp.data["points"]] == [2, 3]

    def test_live_view(self, client_for, assigned_shipment, position_store, driver, supplier):
        position_store.record_fix(driver, assigned_shipment.pk, -1.95, 30.06)
        resp = client_for(supplier).get("/api/tracking/live/")
        assert resp.status_code == 200
        assert resp.data["count"] == 1
        row = resp.data["shipments"][0]
        assert row["tracking_code"] == assigned_shipment.tracking_code
        assert row["status"] == S.IN_TRANSIT
        assert row["location"]["latitude"] == -1.95

    def test_live_view_forbidden_for_consumers(self, client_for, consumer):
        resp = client_for(consumer).get("/api/tracking/live/")
        assert resp.status_code == status.HTTP_403_FORBIDDEN
        assert resp.data["required_roles"] == ["ADMIN", "SUPPLIER"]

    def test_storage_timeout_is_generic(self, client_for, assigned_shipment, driver):
        with patch.object(GpsFix.objects, "create",
                          side_effect=OperationalError("canceling statement due to lock timeout")):
            resp = client_for(driver).post("/api/tracking/update/", {
                "shipment_id": str(assigned_shipment.pk), "latitude": 1, "longitude": 1,
            }, format="json")
        assert resp.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        assert resp.data["error"] == "timeout"
        assert len(resp.data["correlation_id"]) == 16
        assert "lock timeout" not in str(resp.data)
        assigned_shipment.refresh_from_db()
        assert assigned_shipment.status == S.ASSIGNED


# ═══════════════════════════════════════════════════════════════════════════════
# OPS
# ═══════════════════════════════════════════════════════════════════════════════

@pytest.mark.django_db
class TestOps:

    def test_deep_health(self, api_client):
        resp = api_client.get("/api/health/deep/")
        assert resp.data["checks"]["database"] == "ok"
        assert resp.data["checks"]["channel_layer"] == "ok"

    def test_dashboard_summary(self, client_for, assigned_shipment, make_shipment, admin):
        make_shipment()
        resp = client_for(admin).get("/api/admin/dashboard/summary/")
        assert resp.status_code == 200
        assert resp.data["active_shipments"] == 1
        assert resp.data["awaiting_assignment"] == 1

    def test_dashboard_admin_only(self, client_for, supplier):
        assert client_for(supplier).get("/api/admin/dashboard/summary/").status_code == 403


# ═══════════════════════════════════════════════════════════════════════════════
# NOTIFICATIONS
# ═══════════════════════════════════════════════════════════════════════════════

@pytest.mark.django_db
class TestNotifications:

    def test_status_change_texts_both_parties(self, assigned_shipment):
        from apps.notifications.service import NotificationService
        entry = StatusHistoryEntry.objects.filter(shipment=assigned_shipment).last()

        with patch("apps.notifications.service.requests.post") as mock_post:
            mock_post.return_value = MagicMock(status_code=200)
            sent = NotificationService().send_status_change(entry)

        assert sent == 2
        phones = {c.kwargs["json"]["phone"] for c in mock_post.call_args_list}
        assert phones == {"+250781000001", "+250781000002"}

    def test_gateway_down_is_not_fatal(self, assigned_shipment):
        from apps.notifications.service import NotificationService
        entry = StatusHistoryEntry.objects.filter(shipment=assigned_shipment).last()

        with patch("apps.notifications.service.requests.post",
                   side_effect=requests.ConnectionError("gateway down")):
            assert NotificationService().send_status_change(entry) == 0

    def test_created_notification_emails_consumer(self, assigned_shipment):
        from apps.notifications.tasks import notify_shipment_created

        with patch("apps.notifications.service.requests.post") as mock_post:
            mock_post.return_value = MagicMock(status_code=200)
            notify_shipment_created.delay(str(assigned_shipment.pk))

        assert mail.outbox[0].to == ["consumer@example.com"]
        assert assigned_shipment.tracking_code in mail.outbox[0].subject

    def test_broker_outage_is_logged_not_raised(self, assigned_shipment):
        from kombu.exceptions import OperationalError as BrokerUnavailable
        from apps.notifications.service import NotificationService

        with patch("apps.notifications.tasks.notify_shipment_created.delay",
                   side_effect=BrokerUnavailable("no broker")):
            assert NotificationService().shipment_created(assigned_shipment) is False
