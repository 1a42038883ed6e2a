"""Tests for the booking eligibility check."""

from __future__ import annotations

from types import SimpleNamespace

from django.test import SimpleTestCase

from apps.bookings.domain.eligibility import booking_ineligibility_reason, is_eligible_to_book


def user(**overrides):
    fields = dict(pk=1, is_active=True, is_email_verified=True, is_phone_verified=False, is_identity_verified=False)
    fields.update(overrides)
    return SimpleNamespace(**fields)


def listing(**overrides):
    fields = dict(host_id=2, status="Live", requires_identity_verification=False)
    fields.update(overrides)
    return SimpleNamespace(**fields)


class EligibilityTests(SimpleTestCase):
    def test_verified_guest_can_book(self) -> None:
        self.assertTrue(is_eligible_to_book(user(), listing()))

    def test_phone_verification_is_enough(self) -> None:
        self.assertTrue(is_eligible_to_book(user(is_email_verified=False, is_phone_verified=True), listing()))

    def test_unverified_contact(self) -> None:
        reason = booking_ineligibility_reason(user(is_email_verified=False), listing())

        self.assertIn("Verify your email or phone", reason)

    def test_host_cannot_book_own_listing(self) -> None:
        self.assertIsNotNone(booking_ineligibility_reason(user(pk=2), listing()))

    def test_kyc_required_by_listing(self) -> None:
        self.assertFalse(is_eligible_to_book(user(), listing(requires_identity_verification=True)))
        self.assertTrue(
            is_eligible_to_book(user(is_identity_verified=True), listing(requires_identity_verification=True))
        )

    def test_inactive_user_and_draft_listing(self) -> None:
        self.assertFalse(is_eligible_to_book(user(is_active=False), listing()))
        self.assertFalse(is_eligible_to_book(user(), listing(status="Draft")))
