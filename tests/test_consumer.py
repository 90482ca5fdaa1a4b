"""
WebSocket live tracking consumer.
Driven through channels' WebsocketCommunicator; each test body is a coroutine
run with async_to_sync so no async pytest plugin is needed.
"""

import uuid

import pytest
from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from channels.routing import URLRouter
from channels.testing import WebsocketCommunicator
from rest_framework_simplejwt.tokens import AccessToken

from apps.tracking.broadcast import group_name
from apps.tracking.consumers import CLOSE_NOT_FOUND, CLOSE_UNAUTHENTICATED
from apps.tracking.routing import websocket_urlpatterns


def communicator(shipment_id, token=None):
    path = f"/ws/tracking/{shipment_id}/"
    if token is not None:
        path += f"?token={token}"
    return WebsocketCommunicator(URLRouter(websocket_urlpatterns), path)


@pytest.mark.django_db(transaction=True)
class TestTrackingConsumer:

    def test_missing_token_closes_4001(self):
        async def run():
            ws = communicator(uuid.uuid4())
            connected, code = await ws.connect()
            assert not connected
            assert code == CLOSE_UNAUTHENTICATED
        async_to_sync(run)()

    def test_invisible_shipment_closes_4004(self, assigned_shipment, make_account):
        token = AccessToken.for_user(make_account("CONSUMER"))

        async def run():
            ws = communicator(assigned_shipment.pk, token)
            connected, code = await ws.connect()
            assert not connected
            assert code == CLOSE_NOT_FOUND
        async_to_sync(run)()

    def test_consumer_receives_pushed_fix(self, assigned_shipment, consumer):
        token = AccessToken.for_user(consumer)
        event = {
            "type": "location.update", "shipment_id": str(assigned_shipment.pk),
            "latitude": -1.95, "longitude": 30.06,
        }

        async def run():
            ws = communicator(assigned_shipment.pk, token)
            connected, _ = await ws.connect()
            assert connected
            await get_channel_layer().group_send(group_name(assigned_shipment.pk), event)
            message = await ws.receive_json_from(timeout=2)
            assert message == event

            await ws.send_json_to({"lat": 0, "lng": 0})
            reply = await ws.receive_json_from(timeout=2)
            assert reply["error"] == "read_only"
            await ws.disconnect()
        async_to_sync(run)()
