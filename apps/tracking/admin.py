from django.contrib import admin
from .models import GpsFix, LatestFix


@admin.register(GpsFix)
class GpsFixAdmin(admin.ModelAdmin):
    list_display  = ("shipment", "driver", "latitude", "longitude", "speed", "recorded_at", "received_at")
    search_fields = ("shipment__tracking_code", "driver__email")
    date_hierarchy = "recorded_at"

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(LatestFix)
class LatestFixAdmin(admin.ModelAdmin):
    list_display = ("shipment", "fix", "recorded_at")

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
