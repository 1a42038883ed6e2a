"""Serializers for listing read endpoints."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from .models import Listing, ListingAddOn


class ListingAddOnSerializer(serializers.ModelSerializer):
    class Meta:
        model = ListingAddOn
        fields = ["id", "name", "price"]


class ListingSerializer(serializers.ModelSerializer):
    add_ons = ListingAddOnSerializer(many=True, read_only=True)
    host_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = Listing
        fields = [
            "id",
            "host_id",
            "title",
            "status",
            "price",
            "price_unit",
            "currency",
            "capacity",
            "included_guests",
            "price_per_extra_guest",
            "caution_fee",
            "cancellation_policy",
            "allow_recurring",
            "requires_identity_verification",
            "add_ons",
        ]
        read_only_fields = fields


class DateAvailabilitySerializer(serializers.Serializer):
    date = serializers.DateField()
    status = serializers.CharField()
    is_available = serializers.BooleanField()
    open_hours = serializers.ListField(child=serializers.IntegerField())
    booked_hours = serializers.ListField(child=serializers.IntegerField())
