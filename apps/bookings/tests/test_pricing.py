"""Tests for the booking fee calculation."""

from __future__ import annotations

from decimal import Decimal

from django.test import SimpleTestCase

from apps.bookings.domain.pricing import BookingQuote, PricingTerms, calculate_fees
from shared.domain.value_objects import Money


class CalculateFeesTests(SimpleTestCase):
    def setUp(self) -> None:
        self.terms = PricingTerms(
            price=Money(Decimal("100")),
            included_guests=2,
            price_per_extra_guest=Money(Decimal("15")),
            caution_fee=Money(Decimal("20")),
            add_ons={"projector": Money(Decimal("30")), "catering": Money(Decimal("12.50"))},
        )

    def test_extra_guest_surcharge_per_night(self) -> None:
        fees = calculate_fees(self.terms, BookingQuote(duration_units=3, guest_count=3))

        self.assertEqual(fees.subtotal.amount, Decimal("345"))
        self.assertEqual(fees.service_fee.amount, Decimal("34.5"))
        self.assertEqual(fees.caution_fee.amount, Decimal("20"))
        self.assertEqual(fees.total.amount, Decimal("399.5"))

    def test_recurring_series_charges_caution_once(self) -> None:
        quote = BookingQuote(duration_units=3, guest_count=3, is_recurring=True, occurrence_count=4)

        fees = calculate_fees(self.terms, quote)

        self.assertEqual(fees.subtotal.amount, Decimal("1380"))
        self.assertEqual(fees.service_fee.amount, Decimal("138"))
        self.assertEqual(fees.caution_fee.amount, Decimal("20"))
        self.assertEqual(fees.total.amount, Decimal("1538"))

    def test_add_ons_are_flat_per_occurrence(self) -> None:
        quote = BookingQuote(
            duration_units=2,
            selected_add_on_ids=("projector", "unknown"),
            is_recurring=True,
            occurrence_count=2,
        )

        fees = calculate_fees(self.terms, quote)

        # (100 * 2 + 30) * 2
        self.assertEqual(fees.subtotal.amount, Decimal("460"))

    def test_guests_within_included_count_pay_base_price(self) -> None:
        fees = calculate_fees(self.terms, BookingQuote(duration_units=1, guest_count=2))

        self.assertEqual(fees.subtotal.amount, Decimal("100"))

    def test_custom_service_fee_rate(self) -> None:
        fees = calculate_fees(self.terms, BookingQuote(duration_units=1), service_fee_rate=Decimal("0.15"))

        self.assertEqual(fees.service_fee.amount, Decimal("15.00"))

    def test_quantized_total_still_adds_up(self) -> None:
        terms = PricingTerms(price=Money(Decimal("33.33")), caution_fee=Money.zero())
        fees = calculate_fees(terms, BookingQuote(duration_units=1)).quantized()

        self.assertEqual(fees.service_fee.amount, Decimal("3.33"))
        self.assertEqual(fees.total.amount, fees.subtotal.amount + fees.service_fee.amount)

    def test_invalid_quote(self) -> None:
        with self.assertRaises(ValueError):
            BookingQuote(duration_units=0)
        with self.assertRaises(ValueError):
            BookingQuote(duration_units=1, guest_count=0)


class MoneySplitTests(SimpleTestCase):
    def test_remainder_goes_to_first_share(self) -> None:
        shares = Money(Decimal("100.00")).split(3)

        self.assertEqual([s.amount for s in shares], [Decimal("33.34"), Decimal("33.33"), Decimal("33.33")])
        self.assertEqual(sum(s.amount for s in shares), Decimal("100.00"))
