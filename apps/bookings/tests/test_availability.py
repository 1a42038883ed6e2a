"""Tests for date and hour-slot availability."""

from __future__ import annotations

from datetime import date
from types import SimpleNamespace

from django.test import SimpleTestCase

from apps.bookings.domain.availability import (
    ConflictReason,
    DateStatus,
    check_date_availability,
    check_series,
    expand_series,
    parse_availability,
)

TODAY = date(2025, 6, 1)


def hourly_listing(availability):
    return SimpleNamespace(price_unit="Hourly", availability=availability)


def daily_listing(availability):
    return SimpleNamespace(price_unit="Daily", availability=availability)


def booking(day, hours=None, duration=1, status="Confirmed"):
    return SimpleNamespace(date=day, hours=hours, duration=duration, status=status)


class HourlyAvailabilityTests(SimpleTestCase):
    def setUp(self) -> None:
        self.day = date(2025, 7, 1)
        self.listing = hourly_listing({"2025-07-01": [9, 10, 11, 12]})
        self.existing = [booking(self.day, hours=[9, 10], duration=2)]

    def test_free_hours_are_bookable(self) -> None:
        result = check_series(self.listing, [self.day], self.existing, hours=[11, 12], today=TODAY)

        self.assertTrue(result.is_bookable)
        self.assertEqual(
            check_date_availability(self.listing, self.day, self.existing, today=TODAY),
            DateStatus.AVAILABLE,
        )

    def test_booked_and_closed_hours_are_reported(self) -> None:
        result = check_series(self.listing, [self.day], self.existing, hours=[10, 13], today=TODAY)

        self.assertFalse(result.is_bookable)
        reasons = {(c.hour, c.reason) for c in result.conflicts}
        self.assertEqual(
            reasons,
            {(10, ConflictReason.HOUR_BOOKED), (13, ConflictReason.HOUR_NOT_OPEN)},
        )

    def test_cancelled_bookings_do_not_block(self) -> None:
        existing = [booking(self.day, hours=[9, 10], status="Cancelled")]

        result = check_series(self.listing, [self.day], existing, hours=[9, 10], today=TODAY)

        self.assertTrue(result.is_bookable)

    def test_fully_booked_when_every_open_hour_is_taken(self) -> None:
        existing = self.existing + [booking(self.day, hours=[11, 12])]

        status = check_date_availability(self.listing, self.day, existing, today=TODAY)

        self.assertEqual(status, DateStatus.FULLY_BOOKED)

    def test_duplicate_hour_in_request(self) -> None:
        result = check_series(self.listing, [self.day], [], hours=[11, 11], today=TODAY)

        self.assertEqual([c.reason for c in result.conflicts], [ConflictReason.DUPLICATE_HOUR])

    def test_hours_are_required(self) -> None:
        with self.assertRaises(ValueError):
            check_series(self.listing, [self.day], [], hours=[], today=TODAY)


class DateStatusTests(SimpleTestCase):
    def test_past_date(self) -> None:
        listing = hourly_listing({"2025-05-01": [9]})

        status = check_date_availability(listing, date(2025, 5, 1), [], today=TODAY)

        self.assertEqual(status, DateStatus.PAST)

    def test_date_missing_from_calendar_is_blocked(self) -> None:
        listing = hourly_listing({"2025-07-01": [9]})

        status = check_date_availability(listing, date(2025, 7, 2), [], today=TODAY)

        self.assertEqual(status, DateStatus.BLOCKED_BY_HOST)

    def test_listing_without_calendar_has_no_open_dates(self) -> None:
        for availability in (None, {}, "not-a-calendar"):
            listing = daily_listing(availability)
            status = check_date_availability(listing, date(2025, 7, 1), [], today=TODAY)
            self.assertEqual(status, DateStatus.BLOCKED_BY_HOST, availability)

    def test_malformed_entries_are_dropped(self) -> None:
        calendar = parse_availability({"not-a-date": [9], "2025-07-01": [25], "2025-07-02": [8, 9]})

        self.assertEqual(calendar, {date(2025, 7, 2): frozenset({8, 9})})


class DailyAvailabilityTests(SimpleTestCase):
    def setUp(self) -> None:
        self.listing = daily_listing({f"2025-07-0{d}": [] for d in range(1, 6)})
        # occupies the nights of the 1st and 2nd
        self.existing = [booking(date(2025, 7, 1), duration=2)]

    def test_nights_inside_existing_booking_are_taken(self) -> None:
        status = check_date_availability(self.listing, date(2025, 7, 2), self.existing, today=TODAY)

        self.assertEqual(status, DateStatus.ALREADY_BOOKED)

    def test_check_out_day_is_free(self) -> None:
        result = check_series(self.listing, [date(2025, 7, 3)], self.existing, nights=2, today=TODAY)

        self.assertTrue(result.is_bookable)

    def test_every_night_of_the_stay_is_checked(self) -> None:
        result = check_series(self.listing, [date(2025, 7, 4)], self.existing, nights=3, today=TODAY)

        self.assertFalse(result.is_bookable)
        self.assertEqual(
            [(c.date, c.reason) for c in result.conflicts],
            [(date(2025, 7, 6), ConflictReason.BLOCKED_BY_HOST)],
        )


class SeriesTests(SimpleTestCase):
    def test_weekly_expansion(self) -> None:
        dates = expand_series(date(2025, 7, 1), 3, "WEEKLY")

        self.assertEqual(dates, [date(2025, 7, 1), date(2025, 7, 8), date(2025, 7, 15)])

    def test_daily_listings_always_repeat_weekly(self) -> None:
        dates = expand_series(date(2025, 7, 1), 2, "DAILY", hourly=False)

        self.assertEqual(dates, [date(2025, 7, 1), date(2025, 7, 8)])

    def test_series_needs_two_occurrences(self) -> None:
        with self.assertRaises(ValueError):
            expand_series(date(2025, 7, 1), 1)

    def test_one_blocked_occurrence_blocks_the_series(self) -> None:
        listing = hourly_listing({"2025-07-01": [10], "2025-07-08": [10]})
        dates = expand_series(date(2025, 7, 1), 3)

        result = check_series(listing, dates, [], hours=[10], today=TODAY)

        self.assertFalse(result.is_bookable)
        self.assertEqual(
            [(c.date, c.reason) for c in result.conflicts],
            [(date(2025, 7, 15), ConflictReason.BLOCKED_BY_HOST)],
        )

    def test_repeated_date_in_hourly_series(self) -> None:
        listing = hourly_listing({"2025-07-01": [10, 11]})
        day = date(2025, 7, 1)

        result = check_series(listing, [day, day], [], hours=[10], today=TODAY)

        self.assertIn(ConflictReason.SERIES_OVERLAP, [c.reason for c in result.conflicts])

    def test_overlapping_daily_occurrences(self) -> None:
        listing = daily_listing({f"2025-07-0{d}": [] for d in range(1, 6)})

        result = check_series(listing, [date(2025, 7, 1), date(2025, 7, 2)], [], nights=2, today=TODAY)

        self.assertEqual(
            [(c.date, c.reason) for c in result.conflicts],
            [(date(2025, 7, 2), ConflictReason.SERIES_OVERLAP)],
        )
