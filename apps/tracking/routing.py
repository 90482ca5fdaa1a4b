"""WebSocket URL routing for tracking."""
from django.urls import path
from .consumers import TrackingConsumer

websocket_urlpatterns = [
    path("ws/tracking/<uuid:shipment_id>/", TrackingConsumer.as_asgi()),
]
