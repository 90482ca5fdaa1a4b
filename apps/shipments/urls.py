from django.urls import path
from .views import (
    AssignDriverView, CancelView, PublicTrackView, ShipmentCreateView,
    ShipmentDetailView, ShipmentListView, StatusHistoryView, StatusUpdateView,
)

urlpatterns = [
    path("shipments/create/",                   ShipmentCreateView.as_view(), name="shipment-create"),
    path("shipments/",                          ShipmentListView.as_view(),   name="shipment-list"),
    path("shipments/track/<str:tracking_code>/", PublicTrackView.as_view(),   name="shipment-track"),
    path("shipments/<uuid:pk>/",                ShipmentDetailView.as_view(), name="shipment-detail"),
    path("shipments/<uuid:pk>/assign-driver/",  AssignDriverView.as_view(),   name="shipment-assign-driver"),
    path("shipments/<uuid:pk>/status/",         StatusUpdateView.as_view(),   name="shipment-status"),
    path("shipments/<uuid:pk>/cancel/",         CancelView.as_view(),         name="shipment-cancel"),
    path("shipments/<uuid:pk>/history/",        StatusHistoryView.as_view(),  name="shipment-history"),
]
