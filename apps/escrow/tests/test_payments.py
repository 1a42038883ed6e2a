"""Tests for payment authorization."""

from __future__ import annotations

from decimal import Decimal

from django.test import TestCase

from apps.bookings.tests.factories import make_user
from apps.escrow.exceptions import InsufficientFundsError, PaymentError
from apps.escrow.payments import authorize_card_payment, authorize_wallet_payment


class WalletPaymentTests(TestCase):
    def setUp(self) -> None:
        self.user = make_user(wallet_balance=Decimal("100.00"))

    def test_wallet_is_debited(self) -> None:
        authorization = authorize_wallet_payment(self.user, Decimal("60.25"))

        self.assertEqual(authorization.method, "wallet")
        self.assertEqual(authorization.amount, Decimal("60.25"))
        self.assertTrue(authorization.reference.startswith("WAL_"))
        self.user.refresh_from_db()
        self.assertEqual(self.user.wallet_balance, Decimal("39.75"))

    def test_exact_balance_can_be_spent(self) -> None:
        authorize_wallet_payment(self.user, Decimal("100.00"))

        self.user.refresh_from_db()
        self.assertEqual(self.user.wallet_balance, Decimal("0.00"))

    def test_insufficient_balance(self) -> None:
        with self.assertRaises(InsufficientFundsError) as ctx:
            authorize_wallet_payment(self.user, Decimal("100.01"))

        self.assertEqual(ctx.exception.available, Decimal("100.00"))
        self.assertEqual(ctx.exception.required, Decimal("100.01"))
        self.user.refresh_from_db()
        self.assertEqual(self.user.wallet_balance, Decimal("100.00"))

    def test_negative_amount(self) -> None:
        with self.assertRaises(PaymentError):
            authorize_wallet_payment(self.user, Decimal("-5"))


class CardPaymentTests(TestCase):
    def test_card_payment_returns_unique_references(self) -> None:
        first = authorize_card_payment(Decimal("10"), email="guest@example.com")
        second = authorize_card_payment(Decimal("10"))

        self.assertEqual(first.method, "card")
        self.assertEqual(first.amount, Decimal("10.00"))
        self.assertTrue(first.reference.startswith("PSK_"))
        self.assertNotEqual(first.reference, second.reference)
