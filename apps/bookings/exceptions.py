"""Errors raised by the booking services."""

from __future__ import annotations


class BookingError(Exception):
    """Base class for booking domain errors."""


class BookingConflictError(BookingError):
    """Raised when requested dates or hours are not available."""

    def __init__(self, conflicts):
        self.conflicts = list(conflicts)
        detail = "; ".join(conflict.message for conflict in self.conflicts[:5])
        super().__init__(f"Requested slots are not available: {detail}")


class BookingNotEligibleError(BookingError):
    """Raised when the user may not book the listing."""


class InvalidTransitionError(BookingError, ValueError):
    """Raised when a booking status change is not allowed."""


class CancellationNotAllowedError(BookingError):
    """Raised when a booking can no longer be cancelled."""
