from django.contrib import admin
from .models import Shipment, StatusHistoryEntry


class StatusHistoryInline(admin.TabularInline):
    model           = StatusHistoryEntry
    extra           = 0
    can_delete      = False
    readonly_fields = ("from_status", "to_status", "actor", "note", "latitude", "longitude", "occurred_at")

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Shipment)
class ShipmentAdmin(admin.ModelAdmin):
    list_display  = ("tracking_code", "status", "supplier", "consumer", "driver", "updated_at", "created_at")
    list_filter   = ("status",)
    search_fields = ("tracking_code", "supplier__email", "consumer__email", "driver__email")
    # status only moves through ShipmentService so every change is recorded
    readonly_fields = ("id", "tracking_code", "status", "driver", "created_at", "updated_at", "delivered_at")
    ordering      = ("-created_at",)
    inlines       = [StatusHistoryInline]


@admin.register(StatusHistoryEntry)
class StatusHistoryEntryAdmin(admin.ModelAdmin):
    list_display  = ("shipment", "from_status", "to_status", "actor", "occurred_at")
    list_filter   = ("to_status",)

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
