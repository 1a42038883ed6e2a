"""Tests for listing model defaults."""

from __future__ import annotations

from decimal import Decimal

from django.test import TestCase, override_settings

from apps.bookings.tests.factories import make_host
from apps.listings.models import Listing


class ListingCurrencyTests(TestCase):
    def create_listing(self) -> Listing:
        return Listing.objects.create(host=make_host(), title="Loft", price=Decimal("80.00"))

    @override_settings(BOOKING_CURRENCY="NGN")
    def test_defaults_to_platform_currency(self) -> None:
        self.assertEqual(self.create_listing().currency, "NGN")

    @override_settings(BOOKING_CURRENCY="USD")
    def test_follows_configured_currency(self) -> None:
        self.assertEqual(self.create_listing().currency, "USD")
