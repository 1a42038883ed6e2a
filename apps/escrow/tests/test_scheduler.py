"""Tests for the escrow release scheduler."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal
from unittest import mock

from django.test import TestCase
from django.utils import timezone

from apps.bookings.models import Booking
from apps.bookings.tests.factories import make_escrowed_booking, make_host, make_listing, make_user
from apps.escrow.ledger import EscrowLedger, LedgerResult
from apps.escrow.models import EscrowTransaction
from apps.escrow.scheduler import ReleaseScheduler, SchedulerState
from apps.escrow.tasks import release_due_bookings


class CheckAndReleaseTests(TestCase):
    def setUp(self) -> None:
        self.host = make_host()
        self.guest = make_user()
        self.listing = make_listing(self.host)
        past = timezone.now() - timedelta(minutes=5)
        self.due = make_escrowed_booking(self.listing, self.guest, escrow_release_date=past)
        self.not_due = make_escrowed_booking(
            self.listing,
            self.guest,
            timezone.localdate() + timedelta(days=20),
        )
        self.scheduler = ReleaseScheduler(interval_seconds=3600)

    def test_releases_only_due_bookings(self) -> None:
        released = []

        count = self.scheduler.check_and_release(lambda booking_id, amount: released.append((booking_id, amount)))

        self.assertEqual(count, 1)
        self.assertEqual(released, [(self.due.pk, Decimal("100.00"))])
        self.due.refresh_from_db()
        self.not_due.refresh_from_db()
        self.assertEqual(self.due.payment_status, Booking.PaymentStatus.RELEASED)
        self.assertEqual(self.not_due.payment_status, Booking.PaymentStatus.PAID_ESCROW)

    def test_second_run_releases_nothing(self) -> None:
        self.scheduler.check_and_release()

        self.assertEqual(self.scheduler.check_and_release(), 0)
        self.assertEqual(EscrowTransaction.objects.filter(type=EscrowTransaction.Type.HOST_PAYOUT).count(), 1)

    def test_failing_callback_does_not_stop_the_run(self) -> None:
        make_escrowed_booking(
            self.listing,
            self.guest,
            timezone.localdate() + timedelta(days=30),
            escrow_release_date=timezone.now() - timedelta(minutes=1),
        )

        def broken_callback(booking_id, amount):
            raise RuntimeError("notification service down")

        self.assertEqual(self.scheduler.check_and_release(broken_callback), 2)

    def test_one_failing_booking_does_not_stop_the_others(self) -> None:
        second = make_escrowed_booking(
            self.listing,
            self.guest,
            timezone.localdate() + timedelta(days=30),
            escrow_release_date=timezone.now() - timedelta(minutes=1),
        )
        real_release = self.scheduler.ledger.release_to_host

        def flaky_release(booking, host_id):
            if booking.pk == self.due.pk:
                raise RuntimeError("database hiccup")
            return real_release(booking, host_id)

        with mock.patch.object(self.scheduler.ledger, "release_to_host", side_effect=flaky_release):
            count = self.scheduler.check_and_release()

        self.assertEqual(count, 1)
        second.refresh_from_db()
        self.assertEqual(second.payment_status, Booking.PaymentStatus.RELEASED)

    def test_lost_race_is_not_counted(self) -> None:
        ledger = mock.create_autospec(EscrowLedger, instance=True)
        ledger.release_to_host.return_value = LedgerResult.failed("not held in escrow")
        scheduler = ReleaseScheduler(ledger=ledger, interval_seconds=3600)

        self.assertEqual(scheduler.check_and_release(), 0)

    def test_celery_task(self) -> None:
        self.assertEqual(release_due_bookings(), {"released": 1})


class SchedulerLifecycleTests(TestCase):
    def setUp(self) -> None:
        self.scheduler = ReleaseScheduler(interval_seconds=3600)
        self.addCleanup(self.scheduler.stop)

    def test_start_and_stop(self) -> None:
        self.assertEqual(self.scheduler.state, SchedulerState.STOPPED)

        self.scheduler.start()

        self.assertTrue(self.scheduler.is_running)
        self.assertEqual([job.id for job in self.scheduler.jobs()], [ReleaseScheduler.JOB_ID])

        self.scheduler.stop()

        self.assertEqual(self.scheduler.state, SchedulerState.STOPPED)
        self.assertEqual(self.scheduler.jobs(), [])

    def test_restart_replaces_the_job(self) -> None:
        self.scheduler.start()
        self.scheduler.start(on_release=lambda booking_id, amount: None)

        self.assertEqual(len(self.scheduler.jobs()), 1)

    def test_start_runs_an_immediate_check(self) -> None:
        with mock.patch.object(self.scheduler, "check_and_release", return_value=3) as check:
            released = self.scheduler.start()

        self.assertEqual(released, 3)
        check.assert_called_once()

    def test_stop_when_not_running_is_a_no_op(self) -> None:
        self.scheduler.stop()

        self.assertFalse(self.scheduler.is_running)
