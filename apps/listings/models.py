"""Listing domain models.

A listing is a bookable space owned by a host. The booking core only
reads listings: pricing terms, the host-defined availability calendar,
capacity, add-ons and the cancellation policy.
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.conf import settings  # type: ignore
from django.core.validators import MinValueValidator  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


def default_currency() -> str:
    return getattr(settings, "BOOKING_CURRENCY", "NGN")


class Listing(models.Model):
    """A space offered by a host, priced per hour or per day."""

    class Status(models.TextChoices):
        DRAFT = "Draft", _("Draft")
        LIVE = "Live", _("Live")
        DELETED = "Deleted", _("Deleted")

    class PriceUnit(models.TextChoices):
        HOURLY = "Hourly", _("Hourly")
        DAILY = "Daily", _("Daily")

    class CancellationPolicy(models.TextChoices):
        FLEXIBLE = "Flexible", _("Flexible (full refund 24h before)")
        MODERATE = "Moderate", _("Moderate (full refund 7 days before)")
        STRICT = "Strict", _("Strict (50% refund 14 days before)")
        NON_REFUNDABLE = "Non-refundable", _("Non-refundable")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    host = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="listings",
    )
    title = models.CharField(max_length=255)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.DRAFT)
    price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
        help_text=_("Price per hour or per day, depending on price_unit."),
    )
    price_unit = models.CharField(max_length=10, choices=PriceUnit.choices, default=PriceUnit.DAILY)
    currency = models.CharField(max_length=3, default=default_currency)
    availability = models.JSONField(
        null=True,
        blank=True,
        default=dict,
        help_text=_("Mapping of ISO date to the list of open hours (0-23). Missing dates are closed."),
    )
    capacity = models.PositiveSmallIntegerField(default=1)
    included_guests = models.PositiveSmallIntegerField(default=1)
    price_per_extra_guest = models.DecimalField(
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
        help_text=_("Refundable security deposit, charged once per booking or series."),
    )
    cancellation_policy = models.CharField(
        max_length=20,
        choices=CancellationPolicy.choices,
        default=CancellationPolicy.FLEXIBLE,
    )
    allow_recurring = models.BooleanField(default=False)
    requires_identity_verification = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Listing")
        verbose_name_plural = _("Listings")
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["host", "status"], name="listing_host_status_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.title} ({self.get_price_unit_display()})"

    @property
    def is_hourly(self) -> bool:
        return self.price_unit == self.PriceUnit.HOURLY


class ListingAddOn(models.Model):
    """Optional extra sold with a listing, charged flat per occurrence."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    listing = models.ForeignKey(Listing, on_delete=models.CASCADE, related_name="add_ons")
    name = models.CharField(max_length=120)
    price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
    )

    class Meta:
        verbose_name = _("Add-on")
        verbose_name_plural = _("Add-ons")
        ordering = ["name"]

    def __str__(self) -> str:
        return f"{self.name} (+{self.price})"
