"""
Booking Store

The only writer of Booking rows. Identity fields (listing, date, hours) are
set once in create() and never touched again; status and payment status
move through dedicated methods.
"""

from __future__ import annotations

from typing import Iterable, List
from uuid import UUID, uuid4
import logging

from django.db import transaction  # type: ignore
from django.db.models import F, QuerySet  # type: ignore
from django.db.models.functions import Now  # type: ignore

from .models import Booking

logger = logging.getLogger(__name__)


class BookingRepository:
    """ORM-backed store for bookings."""

    def create(self, booking: Booking) -> Booking:
        """
        Persist a new booking.

        Assigns an id when missing. Availability is not re-checked here;
        callers check it under the listing lock before calling.
        """
        if not booking.status:
            raise ValueError("Booking status is required")
        if not booking.date:
            raise ValueError("Booking date is required")
        if booking.id is None:
            booking.id = uuid4()

        booking.save(force_insert=True)
        logger.info(f"Created booking {booking.id} for listing {booking.listing_id} on {booking.date}")
        return booking

    def get(self, booking_id: UUID) -> Booking:
        return Booking.objects.select_related("listing", "listing__host", "user").get(pk=booking_id)

    def update_status(self, booking_id: UUID, status: str, **changes) -> Booking:
        """Move a booking to `status`, enforcing the lifecycle transitions."""
        with transaction.atomic():
            booking = Booking.objects.select_for_update().get(pk=booking_id)
            booking.ensure_can_transition_to(status)
            old_status = booking.status
            booking.status = status
            for name, value in changes.items():
                setattr(booking, name, value)
            booking.save(update_fields=["status", "updated_at", *changes.keys()])

        logger.info(f"Booking {booking_id} status {old_status} -> {status}")
        return booking

    def update_payment_status(
        self,
        booking_id: UUID,
        payment_status: str,
        released_transaction_id: UUID | str | None = None,
        *,
        expected: str | None = None,
        **changes,
    ) -> bool:
        """
        Compare-and-swap the payment status.

        The row is updated only if its payment status still equals
        `expected` (when given). The transaction id, if any, is appended to
        transaction_ids in the same transaction. Returns whether the row was
        updated.
        """
        with transaction.atomic():
            queryset = Booking.objects.filter(pk=booking_id)
            if expected is not None:
                queryset = queryset.filter(payment_status=expected)

            updated = queryset.update(payment_status=payment_status, updated_at=Now(), **changes)
            if updated and released_transaction_id is not None:
                self.append_transactions(booking_id, [released_transaction_id])

        if updated:
            logger.info(f"Booking {booking_id} payment status -> {payment_status}")
        else:
            logger.warning(
                f"Payment status of booking {booking_id} not changed to {payment_status}: "
                f"expected {expected!r} did not match"
            )
        return bool(updated)

    def append_transactions(self, booking_id: UUID, transaction_ids: Iterable) -> None:
        with transaction.atomic():
            booking = Booking.objects.select_for_update().get(pk=booking_id)
            booking.transaction_ids = [*booking.transaction_ids, *(str(t) for t in transaction_ids)]
            booking.save(update_fields=["transaction_ids", "updated_at"])

    def list_by_listing(self, listing_id: UUID, exclude_cancelled: bool = True) -> QuerySet:
        queryset = Booking.objects.filter(listing_id=listing_id)
        if exclude_cancelled:
            queryset = queryset.exclude(status=Booking.Status.CANCELLED)
        return queryset.order_by("date", "created_at")

    def list_by_user(self, user_id) -> QuerySet:
        return Booking.objects.filter(user_id=user_id).select_related("listing").order_by("-created_at")

    def list_by_host(self, host_id, listings: Iterable | None = None) -> QuerySet:
        """Bookings on the host's listings, or on `listings` when given."""
        if listings is not None:
            listing_ids = [getattr(listing, "pk", listing) for listing in listings]
            queryset = Booking.objects.filter(listing_id__in=listing_ids, listing__host_id=host_id)
        else:
            queryset = Booking.objects.filter(listing__host_id=host_id)
        return queryset.select_related("listing", "user").order_by("-created_at")

    def list_group(self, group_id: UUID) -> List[Booking]:
        return list(Booking.objects.filter(group_id=group_id).order_by("date"))

    def list_escrowed(self) -> QuerySet:
        """Bookings whose funds are still held, with their listing and host loaded."""
        return (
            Booking.objects.filter(payment_status=Booking.PaymentStatus.PAID_ESCROW)
            .select_related("listing", "listing__host")
            .order_by(F("escrow_release_date").asc(nulls_last=True))
        )
