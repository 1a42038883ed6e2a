"""Serializers for the booking domain."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from .domain.availability import MIN_SERIES_LENGTH, RecurrenceFrequency
from .models import Booking
from .services import BookingRequest


class BookingRequestSerializer(serializers.Serializer):
    """Booking or quote request as sent by the client."""

    PAYMENT_METHODS = ("wallet", "card")

    listing = serializers.UUIDField()
    dates = serializers.ListField(child=serializers.DateField(), min_length=1)
    duration_units = serializers.IntegerField(min_value=1, default=1)
    hours = serializers.ListField(
        child=serializers.IntegerField(min_value=0, max_value=23),
        required=False,
        allow_empty=False,
    )
    guest_count = serializers.IntegerField(min_value=1, default=1)
    selected_add_on_ids = serializers.ListField(child=serializers.CharField(), required=False, default=list)
    is_recurring = serializers.BooleanField(default=False)
    recurrence_freq = serializers.ChoiceField(
        choices=[f.value for f in RecurrenceFrequency],
        required=False,
        default=RecurrenceFrequency.WEEKLY.value,
    )
    recurrence_count = serializers.IntegerField(min_value=MIN_SERIES_LENGTH, required=False)
    payment_method = serializers.ChoiceField(choices=PAYMENT_METHODS, default="wallet")
    draft = serializers.BooleanField(default=False)

    def validate(self, attrs):  # type: ignore
        if attrs.get("is_recurring") and not attrs.get("recurrence_count"):
            raise serializers.ValidationError({"recurrence_count": "Required for recurring bookings."})
        return attrs

    def to_request(self, user) -> BookingRequest:
        data = self.validated_data
        return BookingRequest(
            listing_id=data["listing"],
            user_id=user.pk,
            dates=list(data["dates"]),
            duration_units=data["duration_units"],
            hours=data.get("hours"),
            guest_count=data["guest_count"],
            selected_add_on_ids=tuple(data.get("selected_add_on_ids") or ()),
            is_recurring=data["is_recurring"],
            recurrence_freq=data.get("recurrence_freq"),
            recurrence_count=data.get("recurrence_count"),
            draft=data["draft"],
        )


class PaymentMethodSerializer(serializers.Serializer):
    payment_method = serializers.ChoiceField(choices=BookingRequestSerializer.PAYMENT_METHODS, default="wallet")


class CancelBookingSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default="", max_length=255)


class BookingSerializer(serializers.ModelSerializer):
    """Detailed booking representation."""

    guest_id = serializers.ReadOnlyField(source="user.id")
    listing_id = serializers.ReadOnlyField(source="listing.id")
    listing_title = serializers.ReadOnlyField(source="listing.title")
    net_payout = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = Booking
        fields = [
            "id",
            "guest_id",
            "listing_id",
            "listing_title",
            "date",
            "duration",
            "hours",
            "guest_count",
            "selected_add_ons",
            "status",
            "payment_status",
            "total_price",
            "service_fee",
            "caution_fee",
            "caution_status",
            "net_payout",
            "currency",
            "escrow_release_date",
            "group_id",
            "transaction_ids",
            "refund_amount",
            "cancelled_at",
            "cancelled_by",
            "cancellation_reason",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields
