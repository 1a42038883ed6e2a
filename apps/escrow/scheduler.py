"""
Release Scheduler

Pays hosts once a booking's escrow release date has passed. One recurring
APScheduler job per scheduler object; ticks never overlap and a manual
trigger_check() waits for a running tick instead of racing it.

    scheduler = ReleaseScheduler()
    scheduler.start(on_release=lambda booking_id, amount: ...)
    ...
    scheduler.stop()

Deployments running Celery workers use the escrow.release_due_bookings task
instead; both go through check_and_release().
"""

from __future__ import annotations

import threading
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Callable, List
from uuid import UUID
import logging

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from django.conf import settings  # type: ignore
from django.db import close_old_connections  # type: ignore
from django.utils import timezone  # type: ignore

from apps.bookings.repositories import BookingRepository
from apps.listings.models import Listing

from .ledger import EscrowLedger

logger = logging.getLogger(__name__)

ReleaseCallback = Callable[[UUID, Decimal], None]


class SchedulerState(str, Enum):
    STOPPED = "STOPPED"
    RUNNING = "RUNNING"


class ReleaseScheduler:
    """Recurring release check: Stopped -> Running -> Stopped."""

    JOB_ID = "escrow_release_check"

    def __init__(
        self,
        ledger: EscrowLedger | None = None,
        bookings: BookingRepository | None = None,
        interval_seconds: int | None = None,
    ):
        self.bookings = bookings or BookingRepository()
        self.ledger = ledger or EscrowLedger(self.bookings)
        self.interval_seconds = interval_seconds or getattr(settings, "ESCROW_RELEASE_CHECK_INTERVAL", 60)
        self._scheduler: BackgroundScheduler | None = None
        self._on_release: ReleaseCallback | None = None
        self._state_lock = threading.Lock()
        self._run_lock = threading.Lock()

    @property
    def state(self) -> SchedulerState:
        return SchedulerState.RUNNING if self._scheduler is not None else SchedulerState.STOPPED

    @property
    def is_running(self) -> bool:
        return self.state == SchedulerState.RUNNING

    def jobs(self) -> List:
        scheduler = self._scheduler
        return scheduler.get_jobs() if scheduler is not None else []

    def start(self, on_release: ReleaseCallback | None = None) -> int:
        """
        Run one check now and arm the recurring job.

        Starting a running scheduler replaces its job and callback. Returns
        the number of bookings released by the immediate check.
        """
        with self._state_lock:
            self._on_release = on_release
            if self._scheduler is None:
                self._scheduler = BackgroundScheduler(
                    job_defaults={
                        "coalesce": True,
                        "max_instances": 1,
                        "misfire_grace_time": self.interval_seconds,
                    },
                    timezone=settings.TIME_ZONE,
                )
                self._scheduler.start()
                logger.info(f"Escrow release scheduler started, checking every {self.interval_seconds}s")
            else:
                logger.info("Escrow release scheduler already running, replacing its job")

            self._scheduler.add_job(
                self._tick,
                trigger=IntervalTrigger(seconds=self.interval_seconds),
                id=self.JOB_ID,
                name="Release due escrow",
                replace_existing=True,
                max_instances=1,
                coalesce=True,
            )

        return self.check_and_release(on_release)

    def stop(self) -> None:
        """Cancel the recurring job, waiting for an in-flight tick to finish."""
        with self._state_lock:
            scheduler, self._scheduler = self._scheduler, None
            self._on_release = None
        if scheduler is None:
            return
        scheduler.shutdown(wait=True)
        logger.info("Escrow release scheduler stopped")

    def trigger_check(self, on_release: ReleaseCallback | None = None) -> int:
        """On-demand scan, e.g. from the admin release-check endpoint."""
        return self.check_and_release(on_release)

    def _tick(self) -> None:
        close_old_connections()
        try:
            self.check_and_release(self._on_release)
        except Exception as e:
            logger.error(f"Escrow release tick failed: {e}", exc_info=True)
        finally:
            close_old_connections()

    def check_and_release(self, on_release: ReleaseCallback | None = None, now: datetime | None = None) -> int:
        """Release every escrowed booking whose release date is not after `now`. Returns the count."""
        with self._run_lock:
            now = now or timezone.now()
            due = list(self.bookings.list_escrowed().filter(escrow_release_date__lte=now))
            if not due:
                return 0

            listing_ids = {booking.listing_id for booking in due}
            listings = {listing.pk: listing for listing in Listing.objects.filter(pk__in=listing_ids)}

            released = 0
            for booking in due:
                try:
                    listing = listings.get(booking.listing_id)
                    if listing is None or listing.host_id is None:
                        logger.warning(f"Skipping release of booking {booking.pk}: listing {booking.listing_id} not found")
                        continue

                    result = self.ledger.release_to_host(booking, listing.host_id)
                    if not result.success:
                        logger.warning(f"Release of booking {booking.pk} not applied: {result.error}")
                        continue

                    released += 1
                    if on_release is not None:
                        self._notify(on_release, booking.pk, booking.net_payout)
                except Exception as e:
                    logger.error(f"Failed to release booking {booking.pk}: {e}", exc_info=True)

            if released:
                logger.info(f"Released escrow for {released} booking(s)")
            return released

    @staticmethod
    def _notify(on_release: ReleaseCallback, booking_id: UUID, amount: Decimal) -> None:
        try:
            on_release(booking_id, amount)
        except Exception as e:
            logger.error(f"on_release callback failed for booking {booking_id}: {e}", exc_info=True)
