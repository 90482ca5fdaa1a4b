"""
Operations views:
  - Deep health check (DB, cache/Redis, channel layer, disk)
  - Admin dashboard summary
"""

import os
import logging
from datetime import timedelta

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.db import DatabaseError, connection
from django.db.models import Count
from django.utils import timezone
from redis.exceptions import RedisError
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, AllowAny
from drf_spectacular.utils import extend_schema

from apps.authentication.gate import require_role
from apps.shipments import lifecycle
from apps.shipments.models import Shipment
from apps.tracking.models import GpsFix

logger = logging.getLogger("supplytrack.ops")

Account = get_user_model()


def _check_database():
    try:
        with connection.cursor() as cur:
            cur.execute("SELECT 1")
        return "ok"
    except DatabaseError as exc:
        logger.error("Health check: database unreachable: %s", exc)
        return "error"


def _check_cache():
    try:
        cache.set("healthcheck", "1", 5)
        return "ok" if cache.get("healthcheck") == "1" else "miss"
    except (RedisError, ConnectionError) as exc:
        logger.error("Health check: cache unreachable: %s", exc)
        return "error"


def _check_channel_layer():
    layer = get_channel_layer()
    if layer is None:
        return "missing"
    try:
        async_to_sync(layer.group_send)("healthcheck", {"type": "health.ping"})
        return "ok"
    except (RedisError, ConnectionError, OSError) as exc:
        logger.error("Health check: channel layer unreachable: %s", exc)
        return "error"


# ── GET /api/health/deep/ ─────────────────────────────────────────────────────
@extend_schema(tags=["Ops"], summary="Deep health check: DB, cache, channel layer, disk")
class DeepHealthView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request):
        checks = {
            "database":      _check_database(),
            "cache":         _check_cache(),
            "channel_layer": _check_channel_layer(),
        }

        stat    = os.statvfs("/")
        free_gb = (stat.f_bavail * stat.f_frsize) / (1024 ** 3)
        checks["disk_free_gb"] = round(free_gb, 2)
        checks["disk"] = "ok" if free_gb > 1 else "low"

        overall = "ok" if all(v == "ok" for k, v in checks.items() if k != "disk_free_gb") else "degraded"
        return Response({"status": overall, "checks": checks}, status=200 if overall == "ok" else 503)


# ── GET /api/admin/dashboard/summary/ ────────────────────────────────────────
@extend_schema(tags=["Admin"], summary="Control tower: fleet activity overview (Admin only)")
class DashboardSummaryView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        require_role(request.user, [Account.Role.ADMIN])

        hour_ago = timezone.now() - timedelta(hours=1)
        shipment_summary = dict(
            Shipment.objects.values_list("status").annotate(c=Count("id")).order_by()
        )

        return Response({
            "active_shipments":     Shipment.objects.filter(status__in=list(lifecycle.ACTIVE)).count(),
            "awaiting_assignment":  shipment_summary.get(Shipment.Status.CREATED.value, 0),
            "fixes_last_hour":      GpsFix.objects.filter(received_at__gte=hour_ago).count(),
            "reporting_drivers":    GpsFix.objects.filter(received_at__gte=hour_ago)
                                          .values("driver").distinct().count(),
            "active_accounts":      Account.objects.filter(is_active=True).count(),
            "shipments_by_status":  shipment_summary,
        })
