"""
Shipment models.
A Shipment is the aggregate root; its status only moves through
apps.shipments.lifecycle and every move leaves a StatusHistoryEntry behind.
"""

import uuid
from django.db import models
from django.conf import settings
from django.db.models import Q
from django.utils import timezone


class ShipmentQuerySet(models.QuerySet):
    def visible_to(self, identity):
        """Rows the caller may see. Invisible rows look exactly like missing ones."""
        role = identity.role
        if role == "ADMIN":
            return self
        if role == "SUPPLIER":
            return self.filter(supplier=identity)
        if role == "DRIVER":
            return self.filter(driver=identity)
        if role == "CONSUMER":
            return self.filter(consumer=identity)
        return self.none()


class Shipment(models.Model):
    """Goods moving from a supplier to a consumer, carried by one driver."""

    class Status(models.TextChoices):
        CREATED          = "CREATED",          "Created"
        ASSIGNED         = "ASSIGNED",         "Driver Assigned"
        PICKED_UP        = "PICKED_UP",        "Picked Up"
        IN_TRANSIT       = "IN_TRANSIT",       "In Transit"
        OUT_FOR_DELIVERY = "OUT_FOR_DELIVERY", "Out for Delivery"
        DELIVERED        = "DELIVERED",        "Delivered"
        CANCELLED        = "CANCELLED",        "Cancelled"

    id            = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tracking_code = models.CharField(max_length=20, unique=True, editable=False)
    status        = models.CharField(max_length=16, choices=Status.choices, default=Status.CREATED)

    supplier      = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT,
                                      related_name="supplied_shipments")
    consumer      = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT,
                                      related_name="ordered_shipments")
    driver        = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT,
                                      null=True, blank=True, related_name="driven_shipments")

    goods_description      = models.TextField()
    origin_address         = models.CharField(max_length=255)
    destination_address    = models.CharField(max_length=255)
    pickup_date            = models.DateField(null=True, blank=True)
    expected_delivery_date = models.DateField(null=True, blank=True)

    created_at    = models.DateTimeField(auto_now_add=True)
    updated_at    = models.DateTimeField(default=timezone.now, db_index=True)
    delivered_at  = models.DateTimeField(null=True, blank=True)

    objects = ShipmentQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        indexes  = [
            models.Index(fields=["status", "-updated_at"], name="shipment_status_updated_idx"),
            models.Index(fields=["supplier", "status"], name="shipment_supplier_status_idx"),
            models.Index(fields=["driver", "status"], name="shipment_driver_status_idx"),
            models.Index(fields=["consumer"], name="shipment_consumer_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(driver__isnull=False) | Q(status__in=["CREATED", "CANCELLED"]),
                name="shipment_driver_set_once_assigned",
            ),
        ]

    def __str__(self):
        return f"{self.tracking_code} [{self.status}]"


class StatusHistoryEntry(models.Model):
    """Immutable audit row for every status change, replayed oldest first."""
    shipment    = models.ForeignKey(Shipment, on_delete=models.CASCADE, related_name="history")
    from_status = models.CharField(max_length=16, blank=True)
    to_status   = models.CharField(max_length=16, choices=Shipment.Status.choices)
    latitude    = models.FloatField(null=True, blank=True)
    longitude   = models.FloatField(null=True, blank=True)
    note        = models.CharField(max_length=255, blank=True)
    actor       = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT,
                                    null=True, related_name="+")
    occurred_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["occurred_at", "id"]
        verbose_name_plural = "status history"
        indexes  = [models.Index(fields=["shipment", "occurred_at"], name="history_shipment_time_idx")]

    def __str__(self):
        return f"{self.shipment_id}: {self.from_status or '-'} → {self.to_status}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Status history is append-only.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Status history is append-only.")
