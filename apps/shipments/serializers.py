"""Shipment serializers."""

from rest_framework import serializers
from .lifecycle import next_driver_status
from .models import Shipment, StatusHistoryEntry


class StatusHistorySerializer(serializers.ModelSerializer):
    actor_name = serializers.CharField(source="actor.name", read_only=True, default=None)
    actor_role = serializers.CharField(source="actor.role", read_only=True, default=None)

    class Meta:
        model  = StatusHistoryEntry
        fields = ["from_status", "to_status", "latitude", "longitude",
                  "note", "actor_name", "actor_role", "occurred_at"]


class PublicHistorySerializer(serializers.ModelSerializer):
    """History as shown to anonymous tracking-code holders: no actor identity."""
    class Meta:
        model  = StatusHistoryEntry
        fields = ["to_status", "note", "latitude", "longitude", "occurred_at"]


class ShipmentCreateSerializer(serializers.Serializer):
    consumer_email         = serializers.EmailField()
    goods_description      = serializers.CharField()
    origin_address         = serializers.CharField(max_length=255)
    destination_address    = serializers.CharField(max_length=255)
    pickup_date            = serializers.DateField(required=False, allow_null=True)
    expected_delivery_date = serializers.DateField(required=False, allow_null=True)

    def validate(self, data):
        pickup, expected = data.get("pickup_date"), data.get("expected_delivery_date")
        if pickup and expected and expected < pickup:
            raise serializers.ValidationError(
                {"expected_delivery_date": "Cannot be before the pickup date."}
            )
        return data


class AssignDriverSerializer(serializers.Serializer):
    driver_id = serializers.UUIDField()


class StatusUpdateSerializer(serializers.Serializer):
    status          = serializers.ChoiceField(choices=Shipment.Status.choices)
    latitude        = serializers.FloatField(required=False, allow_null=True)
    longitude       = serializers.FloatField(required=False, allow_null=True)
    note            = serializers.CharField(required=False, allow_blank=True, max_length=255)
    expected_status = serializers.ChoiceField(choices=Shipment.Status.choices, required=False)

    def validate(self, data):
        if (data.get("latitude") is None) != (data.get("longitude") is None):
            raise serializers.ValidationError("latitude and longitude must be sent together.")
        return data

    @property
    def location(self):
        lat = self.validated_data.get("latitude")
        return None if lat is None else (lat, self.validated_data["longitude"])


class CancelSerializer(serializers.Serializer):
    note            = serializers.CharField(required=False, allow_blank=True, max_length=255)
    expected_status = serializers.ChoiceField(choices=Shipment.Status.choices, required=False)


class ShipmentSerializer(serializers.ModelSerializer):
    supplier_name  = serializers.CharField(source="supplier.display_name", read_only=True)
    consumer_name  = serializers.CharField(source="consumer.name",         read_only=True)
    consumer_email = serializers.CharField(source="consumer.email",        read_only=True)
    driver_name    = serializers.CharField(source="driver.name",  read_only=True, default=None)
    driver_phone   = serializers.CharField(source="driver.phone", read_only=True, default=None)
    next_status    = serializers.SerializerMethodField()

    class Meta:
        model  = Shipment
        fields = [
            "id", "tracking_code", "status", "next_status",
            "supplier_name", "consumer_name", "consumer_email",
            "driver_name", "driver_phone",
            "goods_description", "origin_address", "destination_address",
            "pickup_date", "expected_delivery_date",
            "created_at", "updated_at", "delivered_at",
        ]

    def get_next_status(self, obj):
        return next_driver_status(obj.status)


class ShipmentDetailSerializer(ShipmentSerializer):
    history = serializers.SerializerMethodField()

    class Meta(ShipmentSerializer.Meta):
        fields = ShipmentSerializer.Meta.fields + ["history"]

    def get_history(self, obj):
        entries = obj.history.select_related("actor").order_by("occurred_at", "id")
        return StatusHistorySerializer(entries, many=True).data


class PublicShipmentSerializer(serializers.ModelSerializer):
    supplier_name = serializers.CharField(source="supplier.display_name", read_only=True)
    driver_name   = serializers.CharField(source="driver.name", read_only=True, default=None)

    class Meta:
        model  = Shipment
        fields = [
            "tracking_code", "status", "supplier_name", "driver_name",
            "origin_address", "destination_address",
            "pickup_date", "expected_delivery_date", "delivered_at",
        ]
