"""Celery tasks for the booking domain."""

from __future__ import annotations

import logging

from celery import shared_task  # type: ignore

from .services import BookingService

logger = logging.getLogger(__name__)


# ============================================================================
# PERIODIC TASKS (run by Celery Beat)
# ============================================================================

@shared_task(name="bookings.auto_cancel_unanswered_bookings")
def auto_cancel_unanswered_bookings() -> dict[str, int]:
    """
    Cancel Pending bookings the host did not answer in time.

    24 hours for regular requests, 4 hours when the booking starts within a
    day. Escrowed funds are refunded in full.

    Runs every 5 minutes via Celery Beat.

    Returns:
        dict: {"cancelled": number of cancelled bookings}
    """
    cancelled = BookingService().auto_cancel_unanswered()
    if cancelled:
        logger.info(f"Auto-cancelled {cancelled} unanswered bookings")
    return {"cancelled": cancelled}


@shared_task(name="bookings.complete_finished_bookings")
def complete_finished_bookings() -> dict[str, int]:
    """
    Mark Confirmed bookings as Completed once they are over.

    Runs every hour via Celery Beat.

    Returns:
        dict: {"completed": number of completed bookings}
    """
    completed = BookingService().complete_finished()
    if completed:
        logger.info(f"Completed {completed} bookings")
    return {"completed": completed}
