"""
Tracking REST views.
Drivers POST fixes here; viewers poll the current position, replay the
route, or subscribe to ws/tracking/<shipment_id>/ for pushed updates.
"""

from django.conf import settings
from rest_framework import status
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from drf_spectacular.utils import OpenApiParameter, extend_schema

from .service import PositionStore
from . import serializers as sz

position_store = PositionStore()


def history_limit(raw):
    """Clamp ?limit= to 1..TRACKING_HISTORY_MAX_LIMIT, falling back to the default."""
    try:
        limit = int(raw) if raw not in (None, "") else settings.TRACKING_HISTORY_DEFAULT_LIMIT
    except (TypeError, ValueError):
        limit = settings.TRACKING_HISTORY_DEFAULT_LIMIT
    return max(1, min(limit, settings.TRACKING_HISTORY_MAX_LIMIT))


# ── POST /api/tracking/update/ ────────────────────────────────────────────────
@extend_schema(tags=["Tracking"], summary="Report a GPS fix (assigned Driver only)",
               request=sz.FixInputSerializer, responses=sz.FixReceiptSerializer)
class FixUpdateView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request):
        ser = sz.FixInputSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        d = ser.validated_data
        receipt = position_store.record_fix(
            request.user, d["shipment_id"], d["latitude"], d["longitude"],
            heading     = d.get("heading"),
            speed       = d.get("speed"),
            accuracy    = d.get("accuracy"),
            recorded_at = d.get("recorded_at"),
        )
        return Response(sz.FixReceiptSerializer(receipt).data, status=status.HTTP_201_CREATED)


# ── GET /api/tracking/{shipment_id}/current/ ─────────────────────────────────
@extend_schema(tags=["Tracking"], summary="Latest known position of a shipment",
               responses=sz.GpsFixSerializer)
class CurrentLocationView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, shipment_id):
        shipment, fix = position_store.current_location(request.user, shipment_id)
        data = sz.GpsFixSerializer(fix).data
        data["status"] = shipment.status
        return Response(data)


# ── GET /api/tracking/{shipment_id}/history/ ─────────────────────────────────
@extend_schema(tags=["Tracking"], summary="Route replay, oldest fix first",
               parameters=[OpenApiParameter("limit", int, required=False)],
               responses=sz.GpsFixSerializer(many=True))
class RouteHistoryView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, shipment_id):
        limit = history_limit(request.query_params.get("limit"))
        shipment, fixes = position_store.route(request.user, shipment_id, limit)
        points = sz.GpsFixSerializer(fixes, many=True).data
        return Response({
            "shipment_id":   str(shipment.pk),
            "tracking_code": shipment.tracking_code,
            "count":         len(points),
            "points":        points,
        })


# ── GET /api/tracking/live/ ───────────────────────────────────────────────────
@extend_schema(tags=["Tracking"], summary="Active shipments with their latest fix (Admin / Supplier)",
               parameters=[OpenApiParameter("supplier_id", str, required=False)],
               responses=sz.LiveEntrySerializer(many=True))
class LiveView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        entries = position_store.live_snapshot(
            request.user, supplier_id=request.query_params.get("supplier_id") or None,
        )
        return Response({
            "count":     len(entries),
            "shipments": sz.LiveEntrySerializer(entries, many=True).data,
        })
