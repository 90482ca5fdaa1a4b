"""Shipment API views."""

import logging
from rest_framework import generics, status, permissions
from rest_framework.response import Response
from rest_framework.views import APIView
from drf_spectacular.utils import OpenApiParameter, extend_schema
from django_filters.rest_framework import DjangoFilterBackend

from .service import ShipmentService
from . import serializers as sz

logger = logging.getLogger("supplytrack.shipments")
shipment_service = ShipmentService()


def _limit_param(request):
    raw = request.query_params.get("limit")
    if not raw:
        return None
    try:
        return max(1, int(raw))
    except ValueError:
        return None


# ── POST /api/shipments/create/ ───────────────────────────────────────────────
@extend_schema(tags=["Shipments"], summary="Create a shipment (Supplier only)",
               request=sz.ShipmentCreateSerializer, responses=sz.ShipmentDetailSerializer)
class ShipmentCreateView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request):
        ser = sz.ShipmentCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        details = dict(ser.validated_data)
        consumer_email = details.pop("consumer_email")
        shipment = shipment_service.create_shipment(request.user, consumer_email, details)
        return Response(sz.ShipmentDetailSerializer(shipment).data, status=status.HTTP_201_CREATED)


# ── GET /api/shipments/ ───────────────────────────────────────────────────────
@extend_schema(tags=["Shipments"], summary="Shipments visible to the caller, newest first")
class ShipmentListView(generics.ListAPIView):
    serializer_class   = sz.ShipmentSerializer
    permission_classes = [permissions.IsAuthenticated]
    filter_backends    = [DjangoFilterBackend]
    filterset_fields   = ["status"]

    def get_queryset(self):
        return shipment_service.visible_shipments(self.request.user).order_by("-created_at", "id")


# ── GET /api/shipments/{id}/ ──────────────────────────────────────────────────
@extend_schema(tags=["Shipments"], summary="Retrieve a shipment with its status history")
class ShipmentDetailView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request, pk):
        shipment = shipment_service.get_visible(request.user, pk)
        return Response(sz.ShipmentDetailSerializer(shipment).data)


# ── POST /api/shipments/{id}/assign-driver/ ───────────────────────────────────
@extend_schema(tags=["Shipments"], summary="Assign a driver (Admin only)",
               request=sz.AssignDriverSerializer, responses=sz.ShipmentSerializer)
class AssignDriverView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, pk):
        ser = sz.AssignDriverSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        entry = shipment_service.assign_driver(request.user, pk, ser.validated_data["driver_id"])
        return Response(sz.ShipmentSerializer(entry.shipment).data)


# ── POST /api/shipments/{id}/status/ ──────────────────────────────────────────
@extend_schema(tags=["Shipments"], summary="Advance shipment status (assigned Driver only)",
               request=sz.StatusUpdateSerializer, responses=sz.StatusHistorySerializer)
class StatusUpdateView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, pk):
        ser = sz.StatusUpdateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        d = ser.validated_data
        entry = shipment_service.advance_status(
            request.user, pk, d["status"],
            location        = ser.location,
            note            = d.get("note", ""),
            expected_status = d.get("expected_status"),
        )
        return Response(sz.StatusHistorySerializer(entry).data)


# ── POST /api/shipments/{id}/cancel/ ──────────────────────────────────────────
@extend_schema(tags=["Shipments"], summary="Cancel a shipment (Admin or owning Supplier)",
               request=sz.CancelSerializer, responses=sz.StatusHistorySerializer)
class CancelView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, pk):
        ser = sz.CancelSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        entry = shipment_service.cancel(
            request.user, pk,
            note            = ser.validated_data.get("note", ""),
            expected_status = ser.validated_data.get("expected_status"),
        )
        return Response(sz.StatusHistorySerializer(entry).data)


# ── GET /api/shipments/{id}/history/ ──────────────────────────────────────────
@extend_schema(tags=["Shipments"], summary="Status history, oldest first",
               parameters=[OpenApiParameter("limit", int, required=False)],
               responses=sz.StatusHistorySerializer(many=True))
class StatusHistoryView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request, pk):
        entries = shipment_service.status_history(request.user, pk, limit=_limit_param(request))
        return Response(sz.StatusHistorySerializer(entries, many=True).data)


# ── GET /api/shipments/track/{tracking_code}/ ─────────────────────────────────
@extend_schema(tags=["Public"], summary="Track a shipment by its public code (no login)")
class PublicTrackView(APIView):
    permission_classes     = [permissions.AllowAny]
    authentication_classes = []

    def get(self, request, tracking_code):
        shipment, history = shipment_service.track_by_public_code(tracking_code)
        data = sz.PublicShipmentSerializer(shipment).data
        data["history"] = sz.PublicHistorySerializer(history, many=True).data
        return Response(data)
