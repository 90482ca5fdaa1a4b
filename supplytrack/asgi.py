"""ASGI entrypoint: HTTP through Django, WebSocket through Channels."""

import os

from django.core.asgi import get_asgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "supplytrack.settings")

django_asgi_app = get_asgi_application()

from channels.routing import ProtocolTypeRouter, URLRouter  # noqa: E402

from apps.tracking.routing import websocket_urlpatterns  # noqa: E402

application = ProtocolTypeRouter({
    "http":      django_asgi_app,
    "websocket": URLRouter(websocket_urlpatterns),
})
