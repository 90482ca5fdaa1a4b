"""
Notification service.
Supports SMS (via the SMS gateway) and Email.
Shipment events are queued on Celery so the request path never waits on a
gateway; delivery failures are logged, never raised.
"""

import logging
import requests
from django.conf import settings
from django.core.mail import send_mail
from kombu.exceptions import OperationalError as BrokerUnavailable

logger = logging.getLogger("supplytrack.notifications")


class NotificationService:
    """Queue and send shipment notifications. Fails silently, never blocks the main flow."""

    # ── Queueing (called after commit) ────────────────────────────────────────
    def shipment_created(self, shipment):
        from apps.notifications.tasks import notify_shipment_created
        return self._enqueue(notify_shipment_created, str(shipment.pk))

    def status_changed(self, entry):
        from apps.notifications.tasks import notify_status_change
        return self._enqueue(notify_status_change, entry.pk)

    def _enqueue(self, task, *args):
        try:
            task.delay(*args)
            return True
        except BrokerUnavailable as exc:
            logger.warning("Could not queue %s%s: %s", task.name, args, exc)
            return False

    # ── Delivery (runs in the worker) ─────────────────────────────────────────
    def send_shipment_created(self, shipment):
        message = (
            f"{shipment.supplier.display_name} created shipment {shipment.tracking_code} "
            f"for you: {shipment.goods_description[:60]}"
        )
        consumer = shipment.consumer
        sent = 0
        if consumer.phone and self.send_sms(consumer.phone, message):
            sent += 1
        if self.send_email(consumer.email, f"New shipment {shipment.tracking_code}", message):
            sent += 1
        return sent

    def send_status_change(self, entry):
        shipment = entry.shipment
        label = shipment.get_status_display()
        message = f"Shipment {shipment.tracking_code} is now {label}."
        if entry.note:
            message += f" {entry.note}"
        sent = 0
        for party in (shipment.consumer, shipment.supplier):
            if party.phone and self.send_sms(party.phone, message):
                sent += 1
        return sent

    # ── Channels ──────────────────────────────────────────────────────────────
    def send_sms(self, phone: str, message: str) -> bool:
        """Send SMS via gateway. Returns True on success."""
        try:
            resp = requests.post(
                f"{settings.SMS_GATEWAY_URL}/send",
                json={"phone": phone, "message": message},
                timeout=3,
            )
            if resp.status_code == 200:
                logger.info("SMS sent to %s", phone)
                return True
            logger.warning("SMS gateway returned %s for %s", resp.status_code, phone)
        except requests.RequestException as exc:
            logger.warning("SMS failed for %s: %s", phone, exc)
        return False

    def send_email(self, email: str, subject: str, body: str) -> bool:
        """Send email through the configured Django email backend."""
        delivered = send_mail(subject, body, None, [email], fail_silently=True)
        if delivered:
            logger.info("EMAIL → %s | Subject: %s", email, subject)
        return bool(delivered)
