"""
Live tracking over WebSocket.

    ws/tracking/<shipment_id>/?token=<access token>

The socket is read-only: fixes arrive through POST /api/tracking/update/ and
are pushed here by TrackingBroadcaster after commit. Close codes:
4001 bad or missing token, 4004 shipment unknown or not visible to the caller.
"""

import logging
from urllib.parse import parse_qs

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncJsonWebsocketConsumer

from supplytrack.errors import TrackingError
from .broadcast import fix_payload, group_name

logger = logging.getLogger("supplytrack.tracking")

CLOSE_UNAUTHENTICATED = 4001
CLOSE_NOT_FOUND       = 4004


class TrackingConsumer(AsyncJsonWebsocketConsumer):
    """Pushes location.update / status.update events for one shipment."""

    async def connect(self):
        self.shipment_id = str(self.scope["url_route"]["kwargs"]["shipment_id"])
        self.group_name  = group_name(self.shipment_id)
        self.joined      = False

        token = parse_qs(self.scope.get("query_string", b"").decode()).get("token", [None])[0]
        try:
            identity = await self._identity(token)
        except TrackingError as exc:
            logger.info("WS rejected for %s: %s", self.shipment_id, exc.default_code)
            await self.close(code=CLOSE_UNAUTHENTICATED)
            return

        try:
            latest = await self._latest_for(identity)
        except TrackingError:
            await self.close(code=CLOSE_NOT_FOUND)
            return

        await self.channel_layer.group_add(self.group_name, self.channel_name)
        self.joined = True
        await self.accept()
        logger.debug("WS %s joined %s", identity.pk, self.group_name)
        if latest is not None:
            await self.send_json(fix_payload(latest))

    async def disconnect(self, code):
        if self.joined:
            await self.channel_layer.group_discard(self.group_name, self.channel_name)

    async def receive_json(self, content, **kwargs):
        await self.send_json({"type": "error", "error": "read_only",
                              "detail": "Report positions via POST /api/tracking/update/."})

    # ── Group events ──────────────────────────────────────────────────────────
    async def location_update(self, event):
        await self.send_json(event)

    async def status_update(self, event):
        await self.send_json(event)

    # ── DB access ─────────────────────────────────────────────────────────────
    @database_sync_to_async
    def _identity(self, token):
        from apps.authentication.gate import resolve_identity
        return resolve_identity(token)

    @database_sync_to_async
    def _latest_for(self, identity):
        """Raise NotFound unless visible; return the latest fix or None."""
        from apps.tracking.service import PositionStore

        store = PositionStore()
        shipment = store.shipments.get_visible(identity, self.shipment_id)
        try:
            return store.latest_fix(shipment.pk)
        except TrackingError:
            return None
