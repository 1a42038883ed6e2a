"""
Payment authorization

Runs before any booking or ledger row is written. Wallet charges debit the
user's balance with a guarded UPDATE so two concurrent charges can never
overdraw it; card charges stand in for the Paystack rail and only mint a
reference.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable
import logging

from django.contrib.auth import get_user_model  # type: ignore
from django.db.models import F  # type: ignore

from shared.domain.value_objects import CENT

from .exceptions import InsufficientFundsError, PaymentError

logger = logging.getLogger(__name__)

Authorizer = Callable[[Decimal], "PaymentAuthorization"]


@dataclass(frozen=True)
class PaymentAuthorization:
    method: str
    amount: Decimal
    reference: str


def new_reference(prefix: str = "PSK") -> str:
    return f"{prefix}_{secrets.token_hex(8).upper()}"


def _normalize(amount) -> Decimal:
    amount = Decimal(str(amount)).quantize(CENT)
    if amount < 0:
        raise PaymentError(f"Cannot charge a negative amount: {amount}")
    return amount


def authorize_wallet_payment(user, amount) -> PaymentAuthorization:
    """Debit `amount` from the user's wallet or raise InsufficientFundsError."""
    amount = _normalize(amount)
    User = get_user_model()

    updated = User.objects.filter(pk=user.pk, wallet_balance__gte=amount).update(
        wallet_balance=F("wallet_balance") - amount
    )
    user.refresh_from_db(fields=["wallet_balance"])

    if not updated:
        logger.info(f"Wallet payment of {amount} declined for user {user.pk}: balance {user.wallet_balance}")
        raise InsufficientFundsError(user.wallet_balance, amount)

    reference = new_reference("WAL")
    logger.info(f"Wallet payment {reference} of {amount} authorized for user {user.pk}")
    return PaymentAuthorization(method="wallet", amount=amount, reference=reference)


def authorize_card_payment(amount, email: str | None = None) -> PaymentAuthorization:
    """Mock card charge; always succeeds and returns a Paystack-style reference."""
    amount = _normalize(amount)
    reference = new_reference("PSK")
    logger.info(f"Card payment {reference} of {amount} authorized for {email or 'anonymous payer'}")
    return PaymentAuthorization(method="card", amount=amount, reference=reference)


def wallet_authorizer(user) -> Authorizer:
    return lambda amount: authorize_wallet_payment(user, amount)


def card_authorizer(email: str | None = None) -> Authorizer:
    return lambda amount: authorize_card_payment(amount, email=email)
