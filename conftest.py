"""
pytest configuration for SupplyTrack.
Sets Django settings and provides shared fixtures.
"""

import os
import tempfile
import threading
import uuid
from datetime import timedelta
from unittest.mock import MagicMock

import pytest
from django.conf import settings


def pytest_configure(config):
    """Configure Django settings before tests run."""
    if not settings.configured:
        settings.configure(
            DATABASES={
                "default": {
                    "ENGINE": "django.db.backends.sqlite3",
                    "NAME":   ":memory:",
                    # file-backed so threaded tests get real connections; IMMEDIATE
                    # makes a second writer wait for the first instead of failing
                    "TEST":   {"NAME": os.path.join(tempfile.gettempdir(), "supplytrack_test.sqlite3")},
                    "OPTIONS": {"transaction_mode": "IMMEDIATE", "timeout": 20},
                }
            },
            INSTALLED_APPS=[
                "django.contrib.admin",
                "django.contrib.contenttypes",
                "django.contrib.auth",
                "django.contrib.sessions",
                "django.contrib.messages",
                "django.contrib.staticfiles",
                "rest_framework",
                "rest_framework_simplejwt",
                "drf_spectacular",
                "django_filters",
                "corsheaders",
                "channels",
                "apps.authentication",
                "apps.shipments",
                "apps.tracking",
                "apps.notifications",
                "apps.ops",
            ],
            AUTH_USER_MODEL="authentication.Account",
            REST_FRAMEWORK={
                "DEFAULT_AUTHENTICATION_CLASSES": [
                    "apps.authentication.gate.GateAuthentication",
                ],
                "DEFAULT_PERMISSION_CLASSES": [
                    "rest_framework.permissions.IsAuthenticated",
                ],
                "DEFAULT_FILTER_BACKENDS": [
                    "django_filters.rest_framework.DjangoFilterBackend",
                    "rest_framework.filters.OrderingFilter",
                ],
                "DEFAULT_PAGINATION_CLASS": "rest_framework.pagination.PageNumberPagination",
                "PAGE_SIZE": 20,
                "DEFAULT_SCHEMA_CLASS": "drf_spectacular.openapi.AutoSchema",
                "EXCEPTION_HANDLER": "supplytrack.errors.exception_handler",
            },
            SPECTACULAR_SETTINGS={
                "TITLE": "SupplyTrack API",
                "DESCRIPTION": "Shipment lifecycle and live position tracking",
                "VERSION": "1.0.0",
                "SERVE_INCLUDE_SCHEMA": False,
            },
            SECRET_KEY="test-secret-key-not-for-production",
            DEBUG=True,
            USE_TZ=True,
            TIME_ZONE="UTC",
            ROOT_URLCONF="supplytrack.urls",
            DEFAULT_AUTO_FIELD="django.db.models.BigAutoField",
            TEMPLATES=[{
                "BACKEND": "django.template.backends.django.DjangoTemplates",
                "DIRS": [],
                "APP_DIRS": True,
                "OPTIONS": {
                    "context_processors": [
                        "django.template.context_processors.debug",
                        "django.template.context_processors.request",
                        "django.contrib.auth.context_processors.auth",
                        "django.contrib.messages.context_processors.messages",
                    ],
                },
            }],
            MIDDLEWARE=[
                "django.middleware.security.SecurityMiddleware",
                "corsheaders.middleware.CorsMiddleware",
                "django.contrib.sessions.middleware.SessionMiddleware",
                "django.middleware.common.CommonMiddleware",
                "django.middleware.csrf.CsrfViewMiddleware",
                "django.contrib.auth.middleware.AuthenticationMiddleware",
                "django.contrib.messages.middleware.MessageMiddleware",
            ],
            CHANNEL_LAYERS={
                "default": {
                    "BACKEND": "channels.layers.InMemoryChannelLayer",
                }
            },
            ASGI_APPLICATION="supplytrack.asgi.application",
            STATIC_URL="/static/",
            STATIC_ROOT="/tmp/staticfiles_test",
            # Dummy external service URL (mocked in tests)
            SMS_GATEWAY_URL="http://sms-mock:8003",
            EMAIL_BACKEND="django.core.mail.backends.locmem.EmailBackend",
            CACHES={
                "default": {
                    "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
                }
            },
            CELERY_TASK_ALWAYS_EAGER=True,   # Execute tasks synchronously in tests
            CELERY_TASK_EAGER_PROPAGATES=True,
            CORS_ALLOW_ALL_ORIGINS=True,
            SIMPLE_JWT={
                "ACCESS_TOKEN_LIFETIME":  timedelta(hours=8),
                "REFRESH_TOKEN_LIFETIME": timedelta(days=7),
                "ALGORITHM": "HS256",
                "AUTH_HEADER_TYPES": ("Bearer",),
            },
            TRACKING_CODE_PREFIX="SCT",
            TRACKING_HISTORY_DEFAULT_LIMIT=50,
            TRACKING_HISTORY_MAX_LIMIT=500,
        )


# ═══════════════════════════════════════════════════════════════════════════════
# SHARED FIXTURES
# ═══════════════════════════════════════════════════════════════════════════════

@pytest.fixture
def api_client():
    from rest_framework.test import APIClient
    return APIClient()


@pytest.fixture
def make_account(db):
    from django.contrib.auth import get_user_model
    Account = get_user_model()

    def _make(role="SUPPLIER", email=None, **kwargs):
        email = email or f"{role.lower()}-{uuid.uuid4().hex[:8]}@example.com"
        kwargs.setdefault("name", f"Test {role.title()}")
        return Account.objects.create_user(email=email, password="Test@1234", role=role, **kwargs)
    return _make


@pytest.fixture
def supplier(make_account):
    return make_account("SUPPLIER", email="supplier@example.com", company_name="Kigali Foods",
                        phone="+250781000001")


@pytest.fixture
def consumer(make_account):
    return make_account("CONSUMER", email="consumer@example.com", name="Aline",
                        phone="+250781000002")


@pytest.fixture
def driver(make_account):
    return make_account("DRIVER", email="driver@example.com", name="Jean", phone="+250781000003")


@pytest.fixture
def admin(make_account):
    return make_account("ADMIN", email="admin@example.com", name="Control Tower", is_staff=True)


@pytest.fixture
def client_for(api_client):
    """client_for(account) → APIClient authenticated as that account."""
    def _client(account):
        api_client.force_authenticate(user=account)
        return api_client
    return _client


@pytest.fixture
def notifier():
    return MagicMock(name="NotificationService")


@pytest.fixture
def broadcaster():
    return MagicMock(name="TrackingBroadcaster")


@pytest.fixture
def shipment_service(notifier, broadcaster):
    from apps.shipments.service import ShipmentService
    return ShipmentService(notification_service=notifier, broadcaster=broadcaster)


@pytest.fixture
def position_store(shipment_service):
    from apps.tracking.service import PositionStore
    return PositionStore(shipment_service=shipment_service)


@pytest.fixture
def make_shipment(shipment_service, supplier, consumer):
    def _make(by=None, **details):
        details.setdefault("goods_description", "20 crates of avocados")
        details.setdefault("origin_address", "Kigali, Nyarugenge")
        details.setdefault("destination_address", "Musanze Market")
        return shipment_service.create_shipment(by or supplier, consumer.email, details)
    return _make


@pytest.fixture
def assigned_shipment(make_shipment, shipment_service, admin, driver):
    shipment = make_shipment()
    shipment_service.assign_driver(admin, shipment.pk, driver.pk)
    shipment.refresh_from_db()
    return shipment


@pytest.fixture
def race():
    """Run callables on separate threads released together; returns results or raised exceptions."""
    from django.db import connection

    def _race(*calls):
        barrier  = threading.Barrier(len(calls))
        outcomes = [None] * len(calls)

        def run(idx, call):
            barrier.wait()
            try:
                outcomes[idx] = call()
            except Exception as exc:
                outcomes[idx] = exc
            finally:
                connection.close()

        threads = [threading.Thread(target=run, args=(i, c)) for i, c in enumerate(calls)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=30)
        return outcomes
    return _race
