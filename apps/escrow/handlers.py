"""Audit-log subscribers for booking and escrow events."""

from __future__ import annotations

import logging

from apps.bookings.domain.events import BookingCancelled, BookingCompleted, BookingConfirmed, BookingCreated
from shared.application.message_bus import message_bus

from .events import DisputeResolved, EscrowRefunded, EscrowReleased, GuestPaymentRecorded

logger = logging.getLogger("apps.escrow.audit")


@message_bus.subscribe(BookingCreated)
def log_booking_created(event: BookingCreated) -> None:
    logger.info(
        f"booking.created ids={[str(i) for i in event.booking_ids]} listing={event.listing_id} "
        f"guest={event.guest_id} status={event.status} total={event.total_price}"
    )


@message_bus.subscribe(BookingConfirmed, BookingCompleted)
def log_booking_transition(event) -> None:
    logger.info(f"booking.{type(event).__name__.removeprefix('Booking').lower()} id={event.booking_id}")


@message_bus.subscribe(BookingCancelled)
def log_booking_cancelled(event: BookingCancelled) -> None:
    logger.info(
        f"booking.cancelled id={event.booking_id} by={event.cancelled_by} "
        f"from={event.old_status} refund={event.refund_amount}"
    )


@message_bus.subscribe(GuestPaymentRecorded)
def log_guest_payment(event: GuestPaymentRecorded) -> None:
    logger.info(f"escrow.payment booking={event.booking_id} guest={event.guest_id} amount={event.amount}")


@message_bus.subscribe(EscrowReleased)
def log_release(event: EscrowReleased) -> None:
    logger.info(
        f"escrow.released booking={event.booking_id} host={event.host_id} "
        f"amount={event.amount} tx={event.transaction_id}"
    )


@message_bus.subscribe(EscrowRefunded)
def log_refund(event: EscrowRefunded) -> None:
    logger.info(
        f"escrow.refunded booking={event.booking_id} guest={event.guest_id} "
        f"amount={event.amount} tx={event.transaction_id}"
    )


@message_bus.subscribe(DisputeResolved)
def log_dispute(event: DisputeResolved) -> None:
    logger.info(f"escrow.dispute booking={event.booking_id} decision={event.decision}")
