"""
Position models.

GpsFix is the append-only history used for route replay. LatestFix is a
one-row-per-shipment side table kept in step with GpsFix inside the same
transaction, so "where is it now" never scans history.
"""

from django.conf import settings
from django.db import models
from django.utils import timezone

from apps.shipments.models import Shipment


class GpsFix(models.Model):
    """A single position report from a driver device."""
    shipment    = models.ForeignKey(Shipment, on_delete=models.CASCADE, related_name="fixes")
    driver      = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT,
                                    related_name="gps_fixes")
    latitude    = models.FloatField()
    longitude   = models.FloatField()
    heading     = models.FloatField(null=True, blank=True)   # degrees from north
    speed       = models.FloatField(null=True, blank=True)   # km/h
    accuracy    = models.FloatField(null=True, blank=True)   # metres
    recorded_at = models.DateTimeField(default=timezone.now)  # device time
    received_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["recorded_at", "id"]
        verbose_name = "GPS fix"
        indexes  = [models.Index(fields=["shipment", "-recorded_at", "-id"], name="gpsfix_shipment_recent_idx")]

    def __str__(self):
        return f"{self.shipment_id} @ {self.latitude:.5f},{self.longitude:.5f}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("GPS fixes are append-only.")
        super().save(*args, **kwargs)


class LatestFix(models.Model):
    """The newest fix (by device timestamp) of each shipment."""
    shipment    = models.OneToOneField(Shipment, on_delete=models.CASCADE,
                                       primary_key=True, related_name="latest_fix")
    fix         = models.ForeignKey(GpsFix, on_delete=models.CASCADE, related_name="+")
    recorded_at = models.DateTimeField()

    def __str__(self):
        return f"{self.shipment_id} → fix {self.fix_id}"
