"""SupplyTrack root URL configuration."""

from django.contrib import admin
from django.urls import path, include
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView

urlpatterns = [
    path("admin/", admin.site.urls),

    # OpenAPI / Interactive Docs
    path("api/schema/",  SpectacularAPIView.as_view(),       name="schema"),
    path("api/docs/",    SpectacularSwaggerView.as_view(),   name="swagger-ui"),

    # Auth
    path("api/auth/",    include("apps.authentication.urls")),

    # Core logistics
    path("api/",          include("apps.shipments.urls")),
    path("api/tracking/", include("apps.tracking.urls")),

    # Ops / Admin
    path("api/admin/",  include("apps.ops.urls")),
    path("api/health/", include("apps.ops.health_urls")),

    # Prometheus metrics
    path("", include("django_prometheus.urls")),
]
