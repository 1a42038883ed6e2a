"""Escrow ledger models."""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.conf import settings  # type: ignore
from django.core.exceptions import ValidationError  # type: ignore
from django.core.validators import MinValueValidator  # type: ignore
from django.db import models  # type: ignore
from django.utils import timezone  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class EscrowTransaction(models.Model):
    """Immutable ledger entry settling part of a booking."""

    class Type(models.TextChoices):
        GUEST_PAYMENT = "GUEST_PAYMENT", _("Guest payment")
        SERVICE_FEE = "SERVICE_FEE", _("Service fee")
        HOST_PAYOUT = "HOST_PAYOUT", _("Host payout")
        REFUND = "REFUND", _("Refund")

    class Status(models.TextChoices):
        PENDING = "PENDING", _("Pending")
        COMPLETED = "COMPLETED", _("Completed")
        FAILED = "FAILED", _("Failed")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    booking = models.ForeignKey(
        "bookings.Booking",
        on_delete=models.PROTECT,
        related_name="escrow_transactions",
    )
    type = models.CharField(max_length=20, choices=Type.choices)
    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    currency = models.CharField(max_length=3, default="NGN")
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.COMPLETED)
    timestamp = models.DateTimeField(default=timezone.now, db_index=True)
    from_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="escrow_debits",
    )
    to_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="escrow_credits",
    )
    paystack_reference = models.CharField(max_length=100, blank=True)
    metadata = models.JSONField(default=dict, blank=True)

    class Meta:
        verbose_name = _("Escrow transaction")
        verbose_name_plural = _("Escrow transactions")
        ordering = ["timestamp"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gte=0),
                name="escrow_transaction_amount_non_negative",
            ),
        ]
        indexes = [
            models.Index(fields=["booking", "type"], name="escrow_tx_booking_type_idx"),
            models.Index(fields=["type", "status"], name="escrow_tx_type_status_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.type} {self.amount} {self.currency} for booking {self.booking_id}"

    def save(self, *args, **kwargs):  # type: ignore
        if not self._state.adding:
            raise ValidationError(_("Escrow transactions are immutable."))
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):  # type: ignore
        raise ValidationError(_("Escrow transactions cannot be deleted."))
