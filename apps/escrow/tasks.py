"""Celery tasks for escrow settlement."""

from __future__ import annotations

import logging

from celery import shared_task  # type: ignore

from .scheduler import ReleaseScheduler

logger = logging.getLogger(__name__)


@shared_task(name="escrow.release_due_bookings")
def release_due_bookings() -> dict[str, int]:
    """
    Pay hosts for every escrowed booking whose release date has passed.

    Runs every minute via Celery Beat. Safe to overlap with the in-process
    scheduler or a manual release: each payout is gated by a
    compare-and-swap on the booking's payment status.

    Returns:
        dict: {"released": number of released bookings}
    """
    released = ReleaseScheduler().check_and_release()
    return {"released": released}
