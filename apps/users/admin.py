"""Admin registrations for the users domain."""

from __future__ import annotations

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.utils.translation import gettext_lazy as _

from .models import CustomUser


@admin.register(CustomUser)
class CustomUserAdmin(BaseUserAdmin):
    fieldsets = (
        (None, {"fields": ("email", "password")}),
        (_("Personal info"), {"fields": ("username", "first_name", "last_name", "phone", "role")}),
        (
            _("Verification"),
            {"fields": ("is_email_verified", "is_phone_verified", "is_identity_verified")},
        ),
        (_("Wallet"), {"fields": ("wallet_balance",)}),
        (_("Permissions"), {"fields": ("is_active", "is_staff", "is_superuser", "groups", "user_permissions")}),
        (_("Important dates"), {"fields": ("last_login", "date_joined")}),
    )
    add_fieldsets = (
        (
            None,
            {
                "classes": ("wide",),
                "fields": ("email", "username", "role", "password1", "password2"),
            },
        ),
    )
    list_display = ("email", "username", "role", "is_email_verified", "is_identity_verified", "is_active")
    list_filter = ("role", "is_active", "is_staff", "is_identity_verified")
    search_fields = ("email", "username", "phone")
    ordering = ("-created_at",)
    readonly_fields = ("wallet_balance",)
