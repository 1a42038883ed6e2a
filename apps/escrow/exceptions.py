"""Errors raised by the escrow services."""

from __future__ import annotations


class EscrowError(Exception):
    """Base class for escrow errors."""


class PaymentError(EscrowError):
    """Raised when a payment could not be authorized."""


class InsufficientFundsError(PaymentError):
    """Raised when a wallet cannot cover the amount being charged."""

    def __init__(self, available, required):
        self.available = available
        self.required = required
        super().__init__(f"Insufficient wallet balance: {available} available, {required} required")
