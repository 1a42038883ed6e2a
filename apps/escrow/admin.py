"""Admin registration for the escrow ledger (read-only)."""

from __future__ import annotations

from django.contrib import admin

from .models import EscrowTransaction


@admin.register(EscrowTransaction)
class EscrowTransactionAdmin(admin.ModelAdmin):
    list_display = ("id", "type", "amount", "currency", "status", "booking", "timestamp")
    list_filter = ("type", "status", "currency")
    search_fields = ("id", "booking__id", "paystack_reference")
    date_hierarchy = "timestamp"

    def has_add_permission(self, request):  # type: ignore
        return False

    def has_change_permission(self, request, obj=None):  # type: ignore
        return False

    def has_delete_permission(self, request, obj=None):  # type: ignore
        return False
