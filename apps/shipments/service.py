"""
ShipmentService: the shipment state machine.

Flow:  create_shipment  →  assign_driver  →  advance_status … DELIVERED
                                 │                 ↑
                                 └── record_fix ───┘  (first fix: → IN_TRANSIT)
       cancel: any non-terminal state → CANCELLED

Every transition is one atomic unit: a status UPDATE conditioned on the
status the caller observed, plus the StatusHistoryEntry insert. If another
writer moved the shipment first the UPDATE matches no row and the caller
gets Conflict; nothing is committed. Where the database supports it the row
is also held with SELECT … FOR UPDATE for the duration of the unit, so a
second writer waits and is evaluated against the post-state.
"""

import logging
import secrets
from functools import partial

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from apps.authentication.gate import has_role, require_role
from apps.notifications.service import NotificationService
from apps.shipments import lifecycle
from apps.shipments.models import Shipment, StatusHistoryEntry
from apps.tracking.broadcast import TrackingBroadcaster
from apps.tracking.coordinates import validate_coordinates
from supplytrack.errors import (
    Conflict, ConsumerNotFound, DriverUnavailable, NotAssigned, NotFound,
    atomic_unit,
)

logger = logging.getLogger("supplytrack.shipments")

Account = get_user_model()
Role = Account.Role
S = Shipment.Status

# No 0/O or 1/I: codes get read out over the phone
TRACKING_ALPHABET    = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
TRACKING_CODE_LENGTH = 10

DETAIL_FIELDS = (
    "goods_description", "origin_address", "destination_address",
    "pickup_date", "expected_delivery_date",
)


def generate_tracking_code():
    suffix = "".join(secrets.choice(TRACKING_ALPHABET) for _ in range(TRACKING_CODE_LENGTH))
    return f"{settings.TRACKING_CODE_PREFIX}-{suffix}"


class ShipmentService:
    """
    Shipment lifecycle orchestration.
    Dependencies are injected so they can be swapped in tests.
    """

    def __init__(self, notification_service=None, broadcaster=None):
        self.notifier    = notification_service or NotificationService()
        self.broadcaster = broadcaster          or TrackingBroadcaster()

    # ── Reads ─────────────────────────────────────────────────────────────────
    def visible_shipments(self, identity):
        return (
            Shipment.objects.visible_to(identity)
            .select_related("supplier", "consumer", "driver")
        )

    def get_visible(self, identity, shipment_id):
        try:
            return self.visible_shipments(identity).get(pk=shipment_id)
        except (Shipment.DoesNotExist, ValidationError, ValueError):
            raise NotFound()

    def status_history(self, identity, shipment_id, limit=None):
        """History entries oldest first; with ``limit``, only the most recent ones."""
        shipment = self.get_visible(identity, shipment_id)
        recent = shipment.history.select_related("actor").order_by("-occurred_at", "-id")
        if limit:
            recent = recent[:limit]
        entries = list(recent)
        entries.reverse()
        return entries

    def track_by_public_code(self, tracking_code):
        """
        Unauthenticated lookup. Unknown and malformed codes take the same path
        as known ones and fail with the same NotFound.
        """
        try:
            shipment = (
                Shipment.objects.select_related("supplier", "driver")
                .get(tracking_code=str(tracking_code).strip().upper())
            )
        except Shipment.DoesNotExist:
            raise NotFound()
        history = list(shipment.history.order_by("occurred_at", "id"))
        return shipment, history

    # ── Step 1: create ────────────────────────────────────────────────────────
    def create_shipment(self, supplier, consumer_email, details: dict) -> Shipment:
        require_role(supplier, [Role.SUPPLIER])
        consumer = Account.objects.filter(
            email__iexact=consumer_email, role=Role.CONSUMER, is_active=True,
        ).first()
        if consumer is None:
            raise ConsumerNotFound()

        with atomic_unit("create_shipment"):
            tracking_code = generate_tracking_code()
            while Shipment.objects.filter(tracking_code=tracking_code).exists():
                tracking_code = generate_tracking_code()

            shipment = Shipment.objects.create(
                tracking_code = tracking_code,
                supplier      = supplier,
                consumer      = consumer,
                **{k: v for k, v in details.items() if k in DETAIL_FIELDS},
            )
            StatusHistoryEntry.objects.create(
                shipment=shipment, from_status="", to_status=S.CREATED,
                actor=supplier, note="Shipment created",
                occurred_at=shipment.updated_at,
            )
            transaction.on_commit(partial(self.notifier.shipment_created, shipment))

        logger.info("Shipment %s created by supplier %s", tracking_code, supplier.pk)
        return shipment

    # ── Step 2: assign driver (admin) ─────────────────────────────────────────
    def assign_driver(self, admin, shipment_id, driver_id) -> StatusHistoryEntry:
        require_role(admin, [Role.ADMIN])
        with atomic_unit("assign_driver"):
            shipment = self.lock_for_update(shipment_id)
            lifecycle.check_transition(lifecycle.ADMIN_EDGES, shipment.status, S.ASSIGNED)

            driver = self._available_driver(driver_id)
            return self._commit_transition(
                shipment, S.ASSIGNED, actor=admin,
                note=f"Driver {driver.name} assigned",
                driver=driver,
            )

    # ── Step 3: driver moves it along ─────────────────────────────────────────
    def advance_status(self, driver, shipment_id, new_status, location=None,
                       note="", expected_status=None) -> StatusHistoryEntry:
        require_role(driver, [Role.DRIVER])
        latitude = longitude = None
        if location is not None:
            latitude, longitude = validate_coordinates(*location)

        with atomic_unit("advance_status"):
            shipment = self.lock_for_update(shipment_id)
            if shipment.driver_id != driver.pk:
                raise NotAssigned()
            self._check_expected(shipment, expected_status)
            if shipment.status not in lifecycle.TERMINAL and new_status == shipment.status:
                # a concurrent request already made this exact move
                raise Conflict(
                    f"Shipment is already {shipment.status}.",
                    expected_status=lifecycle.previous_driver_status(new_status),
                    current_status=shipment.status,
                )
            target = lifecycle.check_transition(lifecycle.DRIVER_EDGES, shipment.status, new_status)
            return self._commit_transition(
                shipment, target, actor=driver, note=note or "",
                latitude=latitude, longitude=longitude,
            )

    # ── Cancellation (admin, or the owning supplier) ──────────────────────────
    def cancel(self, actor, shipment_id, note="", expected_status=None) -> StatusHistoryEntry:
        require_role(actor, [Role.ADMIN, Role.SUPPLIER])
        scope = Shipment.objects.all()
        if not has_role(actor, Role.ADMIN):
            scope = scope.filter(supplier=actor)

        with atomic_unit("cancel"):
            shipment = self.lock_for_update(shipment_id, scope)
            self._check_expected(shipment, expected_status)
            lifecycle.check_transition(lifecycle.CANCEL_EDGES, shipment.status, S.CANCELLED)
            return self._commit_transition(
                shipment, S.CANCELLED, actor=actor, note=note or "Shipment cancelled",
            )

    # ── Position store hook ───────────────────────────────────────────────────
    def advance_on_fix(self, shipment, fix):
        """
        Called by PositionStore.record_fix inside its atomic unit, with the
        shipment row already locked. Returns the history entry, or None when
        the shipment is already past the pickup stages.
        """
        if shipment.status not in lifecycle.FIX_EDGES:
            return None
        target = lifecycle.check_transition(lifecycle.FIX_EDGES, shipment.status, S.IN_TRANSIT)
        return self._commit_transition(
            shipment, target, actor=fix.driver,
            note="Departed: first GPS fix received",
            latitude=fix.latitude, longitude=fix.longitude,
        )

    # ── Internals ─────────────────────────────────────────────────────────────
    def lock_for_update(self, shipment_id, queryset=None):
        """Row-lock a shipment for the current atomic unit; also used by PositionStore.record_fix."""
        queryset = Shipment.objects.all() if queryset is None else queryset
        try:
            return queryset.select_for_update().get(pk=shipment_id)
        except (Shipment.DoesNotExist, ValidationError, ValueError):
            raise NotFound()

    def _available_driver(self, driver_id):
        try:
            return Account.objects.get(pk=driver_id, role=Role.DRIVER, is_active=True)
        except (Account.DoesNotExist, ValidationError, ValueError):
            raise DriverUnavailable()

    @staticmethod
    def _check_expected(shipment, expected_status):
        if expected_status and expected_status != shipment.status:
            raise Conflict(
                f"Shipment is {shipment.status}, not {expected_status}.",
                expected_status=expected_status,
                current_status=shipment.status,
            )

    def _commit_transition(self, shipment, target, actor, note="",
                           latitude=None, longitude=None, **changes):
        now    = timezone.now()
        fields = {"status": target, "updated_at": now, **changes}
        if target == S.DELIVERED:
            fields["delivered_at"] = now

        prior   = shipment.status
        updated = Shipment.objects.filter(pk=shipment.pk, status=prior).update(**fields)
        if updated != 1:
            logger.info("Stale transition on %s from %s rejected", shipment.tracking_code, prior)
            current = Shipment.objects.filter(pk=shipment.pk).values_list("status", flat=True).first()
            raise Conflict(expected_status=prior, current_status=current)

        entry = StatusHistoryEntry.objects.create(
            shipment=shipment, from_status=prior, to_status=target,
            latitude=latitude, longitude=longitude,
            note=note, actor=actor, occurred_at=now,
        )
        for name, value in fields.items():
            setattr(shipment, name, value)

        transaction.on_commit(partial(self._announce, entry))
        logger.info(
            "Shipment %s: %s → %s by %s",
            shipment.tracking_code, prior, target, getattr(actor, "pk", None),
        )
        return entry

    def _announce(self, entry):
        self.notifier.status_changed(entry)
        self.broadcaster.status_changed(entry)
