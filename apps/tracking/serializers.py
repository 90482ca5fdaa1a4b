"""Tracking serializers."""

from rest_framework import serializers
from apps.shipments.serializers import StatusHistorySerializer
from .models import GpsFix


class FixInputSerializer(serializers.Serializer):
    shipment_id = serializers.UUIDField()
    # range checks live in validate_coordinates so every entry point rejects the same way
    latitude    = serializers.FloatField()
    longitude   = serializers.FloatField()
    heading     = serializers.FloatField(required=False, allow_null=True, min_value=0, max_value=360)
    speed       = serializers.FloatField(required=False, allow_null=True, min_value=0)
    accuracy    = serializers.FloatField(required=False, allow_null=True, min_value=0)
    recorded_at = serializers.DateTimeField(required=False)


class GpsFixSerializer(serializers.ModelSerializer):
    shipment_id = serializers.UUIDField(read_only=True)
    driver_name = serializers.CharField(source="driver.name", read_only=True)

    class Meta:
        model  = GpsFix
        fields = ["id", "shipment_id", "latitude", "longitude", "heading",
                  "speed", "accuracy", "driver_name", "recorded_at"]


class FixReceiptSerializer(serializers.Serializer):
    fix        = GpsFixSerializer()
    transition = StatusHistorySerializer(allow_null=True)


class LiveEntrySerializer(serializers.Serializer):
    """One row of the live view: an active shipment and where it was last seen."""
    shipment_id   = serializers.UUIDField(source="shipment.id")
    tracking_code = serializers.CharField(source="shipment.tracking_code")
    status        = serializers.CharField(source="shipment.status")
    supplier_name = serializers.CharField(source="shipment.supplier.display_name")
    driver_name   = serializers.CharField(source="shipment.driver.name", default=None)
    driver_phone  = serializers.CharField(source="shipment.driver.phone", default=None)
    updated_at    = serializers.DateTimeField(source="shipment.updated_at")
    location      = GpsFixSerializer(source="fix", allow_null=True)
