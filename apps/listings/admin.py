"""Admin registrations for the listings domain."""

from __future__ import annotations

from django.contrib import admin

from .models import Listing, ListingAddOn


class ListingAddOnInline(admin.TabularInline):
    model = ListingAddOn
    extra = 0
    fields = ("name", "price")


@admin.register(Listing)
class ListingAdmin(admin.ModelAdmin):
    list_display = (
        "title",
        "host",
        "status",
        "price",
        "price_unit",
        "capacity",
        "caution_fee",
        "cancellation_policy",
    )
    list_filter = ("status", "price_unit", "cancellation_policy", "allow_recurring")
    search_fields = ("title", "host__email")
    inlines = (ListingAddOnInline,)
    readonly_fields = ("created_at", "updated_at")
