"""Serializers for escrow endpoints."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from .ledger import DisputeDecision
from .models import EscrowTransaction


class EscrowTransactionSerializer(serializers.ModelSerializer):
    class Meta:
        model = EscrowTransaction
        fields = [
            "id",
            "booking",
            "type",
            "amount",
            "currency",
            "status",
            "timestamp",
            "from_user",
            "to_user",
            "paystack_reference",
            "metadata",
        ]
        read_only_fields = fields


class UpcomingReleaseSerializer(serializers.Serializer):
    booking_id = serializers.UUIDField(source="booking.pk")
    listing_title = serializers.CharField(source="booking.listing.title")
    host_id = serializers.IntegerField(allow_null=True)
    release_date = serializers.DateTimeField()
    hours_until_release = serializers.FloatField()
    is_overdue = serializers.BooleanField()
    net_payout = serializers.DecimalField(max_digits=12, decimal_places=2)


class DisputeResolutionSerializer(serializers.Serializer):
    decision = serializers.ChoiceField(choices=[d.value for d in DisputeDecision])
    notes = serializers.CharField(required=False, allow_blank=True, default="")
