"""Tests for the escrow ledger."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone as dt_timezone
from decimal import Decimal
from zoneinfo import ZoneInfo

from django.core.exceptions import ValidationError
from django.test import SimpleTestCase, TestCase, override_settings
from django.utils import timezone

from apps.bookings.models import Booking
from apps.bookings.tests.factories import make_escrowed_booking, make_host, make_listing, make_user
from apps.escrow.ledger import DisputeDecision, EscrowLedger, compute_release_date
from apps.escrow.models import EscrowTransaction

LAGOS = ZoneInfo("Africa/Lagos")


class ReleaseDateTests(SimpleTestCase):
    def test_daily_booking_anchors_at_three_pm(self) -> None:
        release = compute_release_date(date(2025, 6, 10), tz=LAGOS)

        self.assertEqual(release, datetime(2025, 6, 11, 15, 0, tzinfo=LAGOS))

    def test_hourly_booking_anchors_at_first_hour(self) -> None:
        release = compute_release_date(date(2025, 6, 10), [15, 14], tz=LAGOS)

        self.assertEqual(release, datetime(2025, 6, 11, 14, 0, tzinfo=LAGOS))

    def test_delay_is_elapsed_time_across_dst_change(self) -> None:
        london = ZoneInfo("Europe/London")
        anchor = datetime(2025, 3, 29, 15, 0, tzinfo=london)

        release = compute_release_date(date(2025, 3, 29), tz=london)

        elapsed = release.astimezone(dt_timezone.utc) - anchor.astimezone(dt_timezone.utc)
        self.assertEqual(elapsed, timedelta(hours=24))
        # clocks went forward overnight
        self.assertEqual((release.date(), release.hour), (date(2025, 3, 30), 16))

    @override_settings(ESCROW_RELEASE_HOURS=48, ESCROW_DAILY_ANCHOR_HOUR=12)
    def test_configurable_delay(self) -> None:
        release = compute_release_date(date(2025, 6, 10), tz=LAGOS)

        self.assertEqual(release, datetime(2025, 6, 12, 12, 0, tzinfo=LAGOS))


class EscrowLedgerTestCase(TestCase):
    def setUp(self) -> None:
        self.host = make_host()
        self.guest = make_user()
        self.listing = make_listing(self.host)
        self.ledger = EscrowLedger()
        self.booking = make_escrowed_booking(self.listing, self.guest)
        self.ledger.record_guest_payment(self.booking, self.guest.pk, "PSK_TEST")


class ReleaseTests(EscrowLedgerTestCase):
    def test_release_pays_net_amount_once(self) -> None:
        first = self.ledger.release_to_host(self.booking, self.host.pk)
        stale_copy = Booking.objects.get(pk=self.booking.pk)
        stale_copy.payment_status = Booking.PaymentStatus.PAID_ESCROW
        second = self.ledger.release_to_host(stale_copy, self.host.pk)

        self.assertTrue(first.success)
        self.assertFalse(second.success)
        payouts = EscrowTransaction.objects.filter(type=EscrowTransaction.Type.HOST_PAYOUT)
        self.assertEqual(payouts.count(), 1)
        payout = payouts.get()
        # 130 total - 10 service fee - 20 caution deposit
        self.assertEqual(payout.amount, Decimal("100.00"))
        self.assertEqual(payout.to_user_id, self.host.pk)
        self.assertEqual(payout.id, first.transaction_id)

        self.booking.refresh_from_db()
        self.assertEqual(self.booking.payment_status, Booking.PaymentStatus.RELEASED)
        self.assertEqual(self.booking.transaction_ids[-1], str(first.transaction_id))

    def test_refunded_booking_is_not_released(self) -> None:
        self.ledger.refund(self.booking, self.guest.pk, Decimal("130.00"))

        result = self.ledger.release_to_host(self.booking, self.host.pk)

        self.assertFalse(result.success)
        self.assertFalse(EscrowTransaction.objects.filter(type=EscrowTransaction.Type.HOST_PAYOUT).exists())

    def test_caution_deposit_returns_after_release(self) -> None:
        self.ledger.release_to_host(self.booking, self.host.pk)

        result = self.ledger.return_caution_fee(self.booking, self.guest.pk)
        again = self.ledger.return_caution_fee(Booking.objects.get(pk=self.booking.pk), self.guest.pk)

        self.assertTrue(result.success)
        self.assertFalse(again.success)
        refund = EscrowTransaction.objects.get(type=EscrowTransaction.Type.REFUND)
        self.assertEqual(refund.amount, Decimal("20.00"))
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.caution_status, Booking.CautionStatus.RETURNED)
        self.assertEqual(self.ledger.escrowed_balance(self.booking), Decimal("10.00"))

    def test_caution_deposit_is_held_until_release(self) -> None:
        result = self.ledger.return_caution_fee(self.booking, self.guest.pk)

        self.assertFalse(result.success)
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.caution_status, Booking.CautionStatus.HELD)


class RefundTests(EscrowLedgerTestCase):
    def test_partial_refund_settles_booking(self) -> None:
        result = self.ledger.refund(self.booking, self.guest.pk, Decimal("65.00"), reason="Moderate policy")

        self.assertTrue(result.success)
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.payment_status, Booking.PaymentStatus.REFUNDED)
        self.assertEqual(self.ledger.escrowed_balance(self.booking), Decimal("65.00"))
        refund = EscrowTransaction.objects.get(pk=result.transaction_id)
        self.assertEqual(refund.metadata, {"reason": "Moderate policy"})

    def test_refund_cannot_exceed_escrow(self) -> None:
        result = self.ledger.refund(self.booking, self.guest.pk, Decimal("130.01"))

        self.assertFalse(result.success)
        self.assertFalse(EscrowTransaction.objects.filter(type=EscrowTransaction.Type.REFUND).exists())

    def test_negative_refund(self) -> None:
        self.assertFalse(self.ledger.refund(self.booking, self.guest.pk, Decimal("-1")).success)


class DisputeTests(EscrowLedgerTestCase):
    def test_refund_guest_cancels_booking(self) -> None:
        result = self.ledger.resolve_dispute(self.booking, DisputeDecision.REFUND_GUEST, "Space was unusable")

        self.assertTrue(result.success)
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.status, Booking.Status.CANCELLED)
        self.assertEqual(self.booking.payment_status, Booking.PaymentStatus.REFUNDED)
        self.assertEqual(self.booking.cancelled_by, Booking.CancelledBy.ADMIN)
        self.assertEqual(self.ledger.escrowed_balance(self.booking), Decimal("0.00"))

    def test_release_to_host_completes_booking(self) -> None:
        result = self.ledger.resolve_dispute(self.booking, "RELEASE_TO_HOST")

        self.assertTrue(result.success)
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.status, Booking.Status.COMPLETED)
        self.assertEqual(self.booking.payment_status, Booking.PaymentStatus.RELEASED)


class FinancialsTests(EscrowLedgerTestCase):
    def test_totals_reconcile_with_ledger(self) -> None:
        other = make_escrowed_booking(self.listing, self.guest, timezone.localdate() + timedelta(days=20))
        self.ledger.record_guest_payment(other, self.guest.pk)
        third = make_escrowed_booking(self.listing, self.guest, timezone.localdate() + timedelta(days=30))
        self.ledger.record_guest_payment(third, self.guest.pk)

        self.ledger.release_to_host(self.booking, self.host.pk)
        self.ledger.refund(other, self.guest.pk, Decimal("50.00"))

        financials = self.ledger.get_platform_financials()

        self.assertEqual(financials.total_payments, Decimal("390.00"))
        self.assertEqual(financials.total_released, Decimal("100.00"))
        self.assertEqual(financials.total_refunded, Decimal("50.00"))
        self.assertEqual(financials.total_revenue, Decimal("30.00"))
        self.assertEqual(financials.total_escrow, Decimal("240.00"))
        self.assertEqual(
            financials.total_escrow,
            financials.total_payments - financials.total_released - financials.total_refunded,
        )
        self.assertEqual(financials.pending_payouts, 1)

    def test_upcoming_releases_soonest_first(self) -> None:
        later = make_escrowed_booking(self.listing, self.guest, timezone.localdate() + timedelta(days=20))
        overdue = make_escrowed_booking(
            self.listing,
            self.guest,
            timezone.localdate() + timedelta(days=30),
            escrow_release_date=timezone.now() - timedelta(hours=1),
        )

        releases = self.ledger.get_upcoming_releases()

        self.assertEqual([r.booking.pk for r in releases], [overdue.pk, self.booking.pk, later.pk])
        self.assertTrue(releases[0].is_overdue)
        self.assertEqual(releases[1].net_payout, Decimal("100.00"))
        self.assertEqual(releases[1].host_id, self.host.pk)


class ImmutabilityTests(EscrowLedgerTestCase):
    def test_ledger_rows_cannot_change(self) -> None:
        row = EscrowTransaction.objects.first()
        row.amount = Decimal("1.00")

        with self.assertRaises(ValidationError):
            row.save()
        with self.assertRaises(ValidationError):
            row.delete()

    def test_booking_identity_cannot_change(self) -> None:
        self.booking.date = self.booking.date + timedelta(days=1)

        with self.assertRaises(ValidationError):
            self.booking.save()
        with self.assertRaises(ValidationError):
            Booking.objects.get(pk=self.booking.pk).delete()
