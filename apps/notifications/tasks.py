"""Celery tasks for shipment notifications."""

import logging

from supplytrack.celery import app

logger = logging.getLogger("supplytrack.notifications")


@app.task(ignore_result=True)
def notify_shipment_created(shipment_id: str):
    from apps.shipments.models import Shipment
    from apps.notifications.service import NotificationService

    try:
        shipment = Shipment.objects.select_related("supplier", "consumer").get(pk=shipment_id)
    except Shipment.DoesNotExist:
        logger.error("Shipment %s not found for created notification", shipment_id)
        return 0
    return NotificationService().send_shipment_created(shipment)


@app.task(ignore_result=True)
def notify_status_change(entry_id: int):
    from apps.shipments.models import StatusHistoryEntry
    from apps.notifications.service import NotificationService

    try:
        entry = StatusHistoryEntry.objects.select_related(
            "shipment__supplier", "shipment__consumer"
        ).get(pk=entry_id)
    except StatusHistoryEntry.DoesNotExist:
        logger.error("History entry %s not found for status notification", entry_id)
        return 0
    return NotificationService().send_status_change(entry)
