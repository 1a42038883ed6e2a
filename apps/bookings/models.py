"""Booking domain models.

One row is one unit of space-time ownership: a single date (plus nights or
hour slots) on a listing. A recurring series is several rows sharing a
group_id. Rows are never deleted, only transitioned.
"""

from __future__ import annotations

import uuid
from datetime import datetime, time, timedelta, tzinfo
from decimal import Decimal

from django.conf import settings  # type: ignore
from django.core.exceptions import ValidationError  # type: ignore
from django.core.validators import MinValueValidator  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from apps.listings.models import default_currency

from .exceptions import InvalidTransitionError


class Booking(models.Model):
    """A guest's reservation of a listing."""

    class Status(models.TextChoices):
        RESERVED = "Reserved", _("Reserved (draft, unpaid)")
        PENDING = "Pending", _("Pending host confirmation")
        CONFIRMED = "Confirmed", _("Confirmed")
        COMPLETED = "Completed", _("Completed")
        CANCELLED = "Cancelled", _("Cancelled")

    class PaymentStatus(models.TextChoices):
        PAID_ESCROW = "Paid - Escrow", _("Paid, held in escrow")
        RELEASED = "Released", _("Released to host")
        REFUNDED = "Refunded", _("Refunded")

    class CancelledBy(models.TextChoices):
        GUEST = "guest", _("Guest")
        HOST = "host", _("Host")
        SYSTEM = "system", _("System")
        ADMIN = "admin", _("Administrator")

    class CautionStatus(models.TextChoices):
        HELD = "Held", _("Held")
        RETURNED = "Returned", _("Returned")

    ALLOWED_TRANSITIONS = {
        "Reserved": {"Pending", "Cancelled"},
        "Pending": {"Confirmed", "Cancelled"},
        "Confirmed": {"Completed", "Cancelled"},
        # dispute refunds
        "Completed": {"Cancelled"},
        "Cancelled": set(),
    }

    IDENTITY_FIELDS = ("listing_id", "date", "hours")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    listing = models.ForeignKey(
        "listings.Listing",
        on_delete=models.PROTECT,
        related_name="bookings",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="bookings",
    )
    date = models.DateField(help_text=_("Start date of this occurrence."))
    duration = models.PositiveSmallIntegerField(
        default=1,
        help_text=_("Nights for daily listings, hour count for hourly listings."),
    )
    hours = models.JSONField(
        null=True,
        blank=True,
        help_text=_("Booked hours of the day (0-23), hourly listings only."),
    )
    total_price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    service_fee = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    caution_fee = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    currency = models.CharField(max_length=3, default=default_currency)
    status = models.CharField(max_length=20, choices=Status.choices)
    payment_status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        null=True,
        blank=True,
    )
    escrow_release_date = models.DateTimeField(
        null=True,
        blank=True,
        help_text=_("When escrowed funds become payable to the host. Fixed at creation."),
    )
    group_id = models.UUIDField(
        null=True,
        blank=True,
        db_index=True,
        help_text=_("Shared by all bookings of one recurring series."),
    )
    guest_count = models.PositiveSmallIntegerField(default=1)
    selected_add_ons = models.JSONField(default=list, blank=True)
    transaction_ids = models.JSONField(
        default=list,
        blank=True,
        help_text=_("Ledger transaction ids touching this booking, in order."),
    )
    caution_status = models.CharField(
        max_length=10,
        choices=CautionStatus.choices,
        null=True,
        blank=True,
    )
    refund_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        null=True,
        blank=True,
    )
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancelled_by = models.CharField(
        max_length=10,
        choices=CancelledBy.choices,
        blank=True,
    )
    cancellation_reason = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Booking")
        verbose_name_plural = _("Bookings")
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(duration__gte=1),
                name="booking_duration_positive",
            ),
        ]
        indexes = [
            models.Index(fields=["listing", "date"], name="booking_listing_date_idx"),
            models.Index(fields=["status"], name="booking_status_idx"),
            models.Index(fields=["payment_status", "escrow_release_date"], name="booking_escrow_release_idx"),
        ]

    def __str__(self) -> str:
        return f"Booking {self.id} on {self.date} ({self.status})"

    def save(self, *args, **kwargs):  # type: ignore
        if not self._state.adding:
            self._ensure_identity_unchanged(kwargs.get("update_fields"))
        super().save(*args, **kwargs)

    def _ensure_identity_unchanged(self, update_fields) -> None:
        if update_fields is not None:
            touched = {f"{name}_id" if name == "listing" else name for name in update_fields}
            if touched & set(self.IDENTITY_FIELDS):
                raise ValidationError(_("Listing, date and hours of a booking cannot change."))
            return

        stored = type(self).objects.filter(pk=self.pk).values(*self.IDENTITY_FIELDS).first()
        if stored is None:
            return
        for name in self.IDENTITY_FIELDS:
            if stored[name] != getattr(self, name):
                raise ValidationError(_("Listing, date and hours of a booking cannot change."))

    def delete(self, *args, **kwargs):  # type: ignore
        raise ValidationError(_("Bookings are never deleted; cancel them instead."))

    # ===== State machine =====

    def can_transition_to(self, status: str) -> bool:
        return str(status) in self.ALLOWED_TRANSITIONS.get(str(self.status), set())

    def ensure_can_transition_to(self, status: str) -> None:
        if not self.can_transition_to(status):
            raise InvalidTransitionError(f"Cannot move booking {self.id} from {self.status} to {status}")

    # ===== Money =====

    @property
    def net_payout(self) -> Decimal:
        """What the host receives on release."""
        return max(self.total_price - self.service_fee - self.caution_fee, Decimal("0.00"))

    @property
    def is_escrowed(self) -> bool:
        return self.payment_status == self.PaymentStatus.PAID_ESCROW

    # ===== Time =====

    def end_datetime(self, tz: tzinfo, checkout_hour: int) -> datetime:
        """Local end of the booking: after its last hour, or check-out on the last day."""
        if self.hours:
            last_hour = max(self.hours)
            return datetime.combine(self.date, time.min, tzinfo=tz) + timedelta(hours=last_hour + 1)
        checkout_day = self.date + timedelta(days=self.duration or 1)
        return datetime.combine(checkout_day, time(hour=checkout_hour), tzinfo=tz)
