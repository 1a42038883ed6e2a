"""Integration tests for booking API endpoints."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from apps.bookings.models import Booking

from .factories import make_host, make_listing, make_user


class BookingAPITests(APITestCase):
    """Covers creation, quotes, conflicts, host actions and cancellation."""

    def setUp(self) -> None:
        self.host = make_host()
        self.guest = make_user(wallet_balance=Decimal("1000.00"))
        self.listing = make_listing(self.host)
        self.day = timezone.localdate() + timedelta(days=10)
        self.client.force_authenticate(self.guest)
        self.list_url = reverse("booking-list")

    def _payload(self, **overrides) -> dict:
        payload = {
            "listing": str(self.listing.pk),
            "dates": [self.day.isoformat()],
            "duration_units": 3,
            "guest_count": 3,
            "payment_method": "wallet",
        }
        payload.update(overrides)
        return payload

    def _create(self, **overrides) -> Booking:
        response = self.client.post(self.list_url, self._payload(**overrides), format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        return Booking.objects.get(pk=response.data["bookings"][0]["id"])

    def test_guest_can_create_booking(self) -> None:
        response = self.client.post(self.list_url, self._payload(), format="json")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(response.data["fees"]["total"], "399.50")
        self.assertTrue(response.data["payment_reference"].startswith("WAL_"))
        booking = Booking.objects.get()
        self.assertEqual(booking.user, self.guest)
        self.assertEqual(booking.status, Booking.Status.PENDING)

    def test_overlapping_request_returns_conflicts(self) -> None:
        self._create()

        response = self.client.post(
            self.list_url,
            self._payload(dates=[(self.day + timedelta(days=2)).isoformat()], payment_method="card"),
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT, response.data)
        self.assertEqual(response.data["conflicts"][0]["reason"], "ALREADY_BOOKED")
        self.assertEqual(Booking.objects.count(), 1)

    def test_insufficient_wallet_balance(self) -> None:
        response = self.client.post(self.list_url, self._payload(duration_units=10), format="json")

        self.assertEqual(response.status_code, status.HTTP_402_PAYMENT_REQUIRED, response.data)
        self.assertFalse(Booking.objects.exists())

    def test_unverified_guest_is_forbidden(self) -> None:
        self.client.force_authenticate(make_user(is_email_verified=False))

        response = self.client.post(self.list_url, self._payload(payment_method="card"), format="json")

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN, response.data)

    def test_recurring_request_needs_count(self) -> None:
        response = self.client.post(self.list_url, self._payload(is_recurring=True), format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("recurrence_count", response.data)

    def test_quote_writes_nothing(self) -> None:
        response = self.client.post(
            reverse("booking-quote"),
            self._payload(is_recurring=True, recurrence_count=4),
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertTrue(response.data["is_available"])
        self.assertEqual(response.data["fees"]["total"], "1538.00")
        self.assertEqual(len(response.data["dates"]), 4)
        self.assertFalse(Booking.objects.exists())

    def test_list_shows_guest_and_host_bookings_only(self) -> None:
        booking = self._create()

        self.assertEqual(len(self.client.get(self.list_url).data), 1)
        self.client.force_authenticate(self.host)
        self.assertEqual(self.client.get(self.list_url).data[0]["id"], str(booking.pk))
        self.client.force_authenticate(make_user())
        self.assertEqual(self.client.get(self.list_url).data, [])

    def test_host_confirms_booking(self) -> None:
        booking = self._create()

        response = self.client.post(reverse("booking-confirm", args=[booking.pk]))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(self.host)
        response = self.client.post(reverse("booking-confirm", args=[booking.pk]))
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["status"], Booking.Status.CONFIRMED)

    def test_refund_quote_and_cancel(self) -> None:
        booking = self._create()

        quote = self.client.get(reverse("booking-refund-quote", args=[booking.pk]))
        self.assertEqual(quote.status_code, status.HTTP_200_OK, quote.data)
        self.assertEqual(quote.data["refund_amount"], "399.50")

        response = self.client.post(
            reverse("booking-cancel", args=[booking.pk]), {"reason": "Plans changed"}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["status"], Booking.Status.CANCELLED)
        self.assertEqual(response.data["payment_status"], Booking.PaymentStatus.REFUNDED)

        again = self.client.post(reverse("booking-cancel", args=[booking.pk]), {}, format="json")
        self.assertEqual(again.status_code, status.HTTP_409_CONFLICT)

    def test_draft_reservation_and_payment(self) -> None:
        booking = self._create(draft=True)
        self.assertEqual(booking.status, Booking.Status.RESERVED)

        response = self.client.post(reverse("booking-pay", args=[booking.pk]), {"payment_method": "card"},
                                    format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["bookings"][0]["status"], Booking.Status.PENDING)
        self.assertTrue(response.data["payment_reference"].startswith("PSK_"))

    def test_host_sees_pending_requests(self) -> None:
        booking = self._create()
        self.client.force_authenticate(self.host)

        response = self.client.get(reverse("booking-pending"))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([item["booking"]["id"] for item in response.data], [str(booking.pk)])
        self.assertFalse(response.data[0]["is_same_day"])

    def test_anonymous_requests_are_rejected(self) -> None:
        self.client.force_authenticate(None)

        response = self.client.get(self.list_url)

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
