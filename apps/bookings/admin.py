"""Admin registration for bookings."""

from __future__ import annotations

from django.contrib import admin

from .models import Booking


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "listing",
        "user",
        "date",
        "status",
        "payment_status",
        "total_price",
        "escrow_release_date",
        "created_at",
    )
    list_filter = ("status", "payment_status", "caution_status", "cancelled_by", "date")
    search_fields = ("id", "group_id", "listing__title", "user__email")
    readonly_fields = (
        "id",
        "listing",
        "user",
        "date",
        "duration",
        "hours",
        "total_price",
        "service_fee",
        "caution_fee",
        "payment_status",
        "escrow_release_date",
        "group_id",
        "transaction_ids",
        "refund_amount",
        "created_at",
        "updated_at",
    )

    def has_delete_permission(self, request, obj=None):  # type: ignore
        return False
