from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from .models import Account


@admin.register(Account)
class AccountAdmin(BaseUserAdmin):
    list_display  = ("email", "name", "role", "company_name", "is_active", "created_at")
    list_filter   = ("role", "is_active")
    search_fields = ("email", "name", "company_name", "phone")
    ordering      = ("-created_at",)
    fieldsets = (
        (None,          {"fields": ("email", "password")}),
        ("Personal",    {"fields": ("name", "phone", "address", "company_name")}),
        ("Role",        {"fields": ("role",)}),
        ("Permissions", {"fields": ("is_active", "is_staff", "is_superuser", "groups", "user_permissions")}),
    )
    add_fieldsets = (
        (None, {"classes": ("wide",), "fields": ("email", "name", "role", "password1", "password2")}),
    )

    def get_readonly_fields(self, request, obj=None):
        # role is fixed once the account exists
        return ("role",) if obj else ()
