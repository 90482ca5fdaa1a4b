"""
Position store and live aggregation view.

record_fix is the one place where position tracking touches the state
machine: the fix insert, the LatestFix promotion and the optional
ASSIGNED/PICKED_UP → IN_TRANSIT move commit together or not at all, and the
move is returned to the caller in the FixReceipt instead of happening
silently.
"""

import logging
import uuid
from collections import namedtuple
from functools import partial

from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils import timezone

from apps.authentication.gate import has_role, require_role
from apps.shipments import lifecycle
from apps.shipments.models import Shipment
from apps.shipments.service import ShipmentService
from apps.tracking.coordinates import validate_coordinates
from apps.tracking.models import GpsFix, LatestFix
from supplytrack.errors import NotAssigned, NotFound, TerminalState, atomic_unit

logger = logging.getLogger("supplytrack.tracking")

Role = get_user_model().Role

FixReceipt = namedtuple("FixReceipt", ["fix", "transition"])
LiveEntry  = namedtuple("LiveEntry", ["shipment", "fix"])


class Scope(namedtuple("Scope", ["supplier_id"])):
    """Visibility boundary of the live view: everything, or one supplier's shipments."""

    @classmethod
    def everything(cls):
        return cls(None)

    @classmethod
    def for_supplier(cls, supplier_id):
        return cls(supplier_id)


def _latest_of(shipment):
    try:
        return shipment.latest_fix.fix
    except LatestFix.DoesNotExist:
        return None


class PositionStore:
    """Append-only GPS ingestion plus the queries built on it."""

    def __init__(self, shipment_service=None, broadcaster=None):
        self.shipments   = shipment_service or ShipmentService()
        self.broadcaster = broadcaster      or self.shipments.broadcaster

    # ── Ingestion ─────────────────────────────────────────────────────────────
    def record_fix(self, driver, shipment_id, latitude, longitude,
                   heading=None, speed=None, accuracy=None, recorded_at=None) -> FixReceipt:
        require_role(driver, [Role.DRIVER])
        latitude, longitude = validate_coordinates(latitude, longitude)
        recorded_at = recorded_at or timezone.now()

        with atomic_unit("record_fix"):
            shipment = self.shipments.lock_for_update(shipment_id)
            if shipment.driver_id != driver.pk:
                raise NotAssigned()
            if shipment.status in lifecycle.TERMINAL:
                raise TerminalState(
                    f"Shipment is already {shipment.status}; no more positions are accepted.",
                    current_status=shipment.status,
                )

            fix = GpsFix.objects.create(
                shipment=shipment, driver=driver,
                latitude=latitude, longitude=longitude,
                heading=heading, speed=speed, accuracy=accuracy,
                recorded_at=recorded_at,
            )
            self._promote_latest(fix)

            transition = self.shipments.advance_on_fix(shipment, fix)
            if transition is None:
                Shipment.objects.filter(pk=shipment.pk).update(updated_at=timezone.now())
            transaction.on_commit(partial(self.broadcaster.fix_recorded, fix))

        logger.debug("Fix %s recorded for %s", fix.pk, shipment.tracking_code)
        return FixReceipt(fix, transition)

    def _promote_latest(self, fix):
        """Point LatestFix at ``fix`` unless a newer one is already there; a later insert wins ties."""
        promoted = LatestFix.objects.filter(
            shipment_id=fix.shipment_id, recorded_at__lte=fix.recorded_at,
        ).update(fix=fix, recorded_at=fix.recorded_at)
        if promoted:
            return True
        _, created = LatestFix.objects.get_or_create(
            shipment_id=fix.shipment_id,
            defaults={"fix": fix, "recorded_at": fix.recorded_at},
        )
        if not created:
            logger.info("Out-of-order fix %s kept in history only", fix.pk)
        return created

    # ── Queries ───────────────────────────────────────────────────────────────
    def latest_fix(self, shipment_id):
        try:
            return (
                LatestFix.objects.select_related("fix__driver")
                .get(shipment_id=shipment_id).fix
            )
        except LatestFix.DoesNotExist:
            raise NotFound("No GPS data found for this shipment.")

    def history(self, shipment_id, limit):
        """
        The ``limit`` most recent fixes, yielded oldest to newest.
        A generator: rows are fetched on first iteration and it cannot be replayed.
        """
        window = (
            GpsFix.objects.filter(shipment_id=shipment_id)
            .order_by("-recorded_at", "-id").values("pk")[:limit]
        )
        fixes = (
            GpsFix.objects.filter(pk__in=window)
            .select_related("driver").order_by("recorded_at", "id")
        )
        yield from fixes.iterator()

    def current_location(self, identity, shipment_id):
        shipment = self.shipments.get_visible(identity, shipment_id)
        return shipment, self.latest_fix(shipment.pk)

    def route(self, identity, shipment_id, limit):
        shipment = self.shipments.get_visible(identity, shipment_id)
        return shipment, self.history(shipment.pk, limit)

    # ── Live aggregation view ─────────────────────────────────────────────────
    def snapshot(self, scope):
        """
        Active shipments joined with their latest fix (or None), most recently
        updated first, ties by id. One query through the LatestFix side table.
        """
        shipments = Shipment.objects.filter(status__in=list(lifecycle.ACTIVE))
        if scope.supplier_id is not None:
            shipments = shipments.filter(supplier_id=scope.supplier_id)
        shipments = (
            shipments.select_related("supplier", "driver", "latest_fix__fix")
            .order_by("-updated_at", "id")
        )
        return [LiveEntry(s, _latest_of(s)) for s in shipments]

    def live_snapshot(self, identity, supplier_id=None):
        require_role(identity, [Role.ADMIN, Role.SUPPLIER])
        if has_role(identity, Role.SUPPLIER):
            scope = Scope.for_supplier(identity.pk)
        elif supplier_id:
            try:
                scope = Scope.for_supplier(uuid.UUID(str(supplier_id)))
            except ValueError:
                raise NotFound("Supplier not found.")
        else:
            scope = Scope.everything()
        return self.snapshot(scope)
