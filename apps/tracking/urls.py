from django.urls import path
from .views import CurrentLocationView, FixUpdateView, LiveView, RouteHistoryView

urlpatterns = [
    path("update/",                      FixUpdateView.as_view(),       name="tracking-update"),
    path("live/",                        LiveView.as_view(),            name="tracking-live"),
    path("<uuid:shipment_id>/current/",  CurrentLocationView.as_view(), name="tracking-current"),
    path("<uuid:shipment_id>/history/",  RouteHistoryView.as_view(),    name="tracking-history"),
]
