"""Tests for listing read endpoints and the availability calendar."""

from __future__ import annotations

from datetime import timedelta

from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from apps.bookings.models import Booking
from apps.bookings.tests.factories import make_host, make_hourly_listing, make_listing, make_user
from apps.listings.models import Listing


class ListingAvailabilityAPITests(APITestCase):
    def setUp(self) -> None:
        self.host = make_host()
        self.listing = make_hourly_listing(self.host)
        self.day = timezone.localdate() + timedelta(days=5)
        self.url = reverse("listing-availability", args=[self.listing.pk])

    def test_open_date(self) -> None:
        Booking.objects.create(
            listing=self.listing,
            user=make_user(),
            date=self.day,
            duration=2,
            hours=[9, 10],
            status=Booking.Status.CONFIRMED,
        )

        response = self.client.get(self.url, {"date": self.day.isoformat()})

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["status"], "AVAILABLE")
        self.assertTrue(response.data["is_available"])
        self.assertEqual(response.data["open_hours"], list(range(9, 18)))
        self.assertEqual(response.data["booked_hours"], [9, 10])

    def test_date_outside_calendar_is_blocked(self) -> None:
        response = self.client.get(self.url, {"date": (timezone.localdate() + timedelta(days=90)).isoformat()})

        self.assertEqual(response.data["status"], "BLOCKED_BY_HOST")
        self.assertFalse(response.data["is_available"])

    def test_past_date(self) -> None:
        response = self.client.get(self.url, {"date": (timezone.localdate() - timedelta(days=1)).isoformat()})

        self.assertEqual(response.data["status"], "PAST")

    def test_range(self) -> None:
        response = self.client.get(
            self.url,
            {"start": self.day.isoformat(), "end": (self.day + timedelta(days=6)).isoformat()},
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data["dates"]), 7)

    def test_missing_or_invalid_dates(self) -> None:
        self.assertEqual(self.client.get(self.url).status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(self.client.get(self.url, {"date": "tomorrow"}).status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.get(
            self.url,
            {"start": self.day.isoformat(), "end": (self.day - timedelta(days=1)).isoformat()},
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class ListingListAPITests(APITestCase):
    def test_only_live_listings_are_listed(self) -> None:
        host = make_host()
        live = make_listing(host)
        make_listing(host, status=Listing.Status.DRAFT)

        response = self.client.get(reverse("listing-list"))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([item["id"] for item in response.data], [str(live.pk)])
