"""
Pushes committed fixes and status changes to the Channels group of their
shipment. Always called from transaction.on_commit, so viewers never see a
position or status that was rolled back.
"""

import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer

logger = logging.getLogger("supplytrack.tracking")


def group_name(shipment_id):
    return f"tracking.{shipment_id}"


def fix_payload(fix):
    return {
        "type":        "location.update",
        "shipment_id": str(fix.shipment_id),
        "latitude":    fix.latitude,
        "longitude":   fix.longitude,
        "heading":     fix.heading,
        "speed":       fix.speed,
        "accuracy":    fix.accuracy,
        "recorded_at": fix.recorded_at.isoformat(),
    }


def status_payload(entry):
    return {
        "type":        "status.update",
        "shipment_id": str(entry.shipment_id),
        "from_status": entry.from_status,
        "status":      entry.to_status,
        "note":        entry.note,
        "occurred_at": entry.occurred_at.isoformat(),
    }


class TrackingBroadcaster:
    """Fire-and-forget publisher; a missing or failing layer never breaks a write."""

    def __init__(self, channel_layer=None):
        self._layer = channel_layer

    def _send(self, shipment_id, payload):
        layer = self._layer or get_channel_layer()
        if layer is None:
            return False
        try:
            async_to_sync(layer.group_send)(group_name(shipment_id), payload)
        except Exception:
            logger.warning("Broadcast to %s failed", group_name(shipment_id), exc_info=True)
            return False
        return True

    def fix_recorded(self, fix):
        return self._send(fix.shipment_id, fix_payload(fix))

    def status_changed(self, entry):
        return self._send(entry.shipment_id, status_payload(entry))
