"""
Cancellation policies

Refund tiers by hours remaining before the booking starts:

    Flexible        >= 24h: 100%   >= 12h: 50%   else 0%
    Moderate        >= 168h: 100%  >= 48h: 50%   else 0%
    Strict          >= 336h: 50%                 else 0%
    Non-refundable  0%

Percentages apply to the booking's total price. Host cancellations refund
everything regardless of policy.
"""

from dataclasses import dataclass
from datetime import datetime, time, tzinfo
from decimal import Decimal

from shared.domain.value_objects import Money

FLEXIBLE = 'Flexible'
MODERATE = 'Moderate'
STRICT = 'Strict'
NON_REFUNDABLE = 'Non-refundable'

FULL = Decimal('100')
HALF = Decimal('50')
NONE = Decimal('0')

# (minimum hours before start, refund percentage), checked in order
POLICY_TIERS = {
    FLEXIBLE: ((24, FULL), (12, HALF)),
    MODERATE: ((168, FULL), (48, HALF)),
    STRICT: ((336, HALF),),
    NON_REFUNDABLE: (),
}

CLOSED_STATUSES = ('Cancelled', 'Completed')


@dataclass(frozen=True)
class RefundQuote:
    can_cancel: bool
    refund_percentage: Decimal
    refund_amount: Money
    cancellation_fee: Money
    hours_until_start: float
    reason: str = ''

    def to_dict(self) -> dict:
        return {
            'can_cancel': self.can_cancel,
            'refund_percentage': str(self.refund_percentage),
            'refund_amount': str(self.refund_amount.amount),
            'cancellation_fee': str(self.cancellation_fee.amount),
            'currency': self.refund_amount.currency,
            'hours_until_start': round(self.hours_until_start, 2),
            'reason': self.reason,
        }


def booking_start(booking, tz: tzinfo) -> datetime:
    """Local start of a booking: its first hour for hourly bookings, midnight otherwise."""
    hours = sorted(booking.hours or [])
    start = time(hour=hours[0]) if hours else time.min
    return datetime.combine(booking.date, start, tzinfo=tz)


def refund_percentage(policy: str, hours_until_start: float) -> Decimal:
    for minimum_hours, percentage in POLICY_TIERS.get(policy, ()):
        if hours_until_start >= minimum_hours:
            return percentage
    return NONE


def _describe(policy: str, percentage: Decimal) -> str:
    if policy == NON_REFUNDABLE:
        return "Non-refundable booking"
    if percentage == FULL:
        return "Full refund"
    if percentage == NONE:
        return "No refund available for this cancellation"
    return f"{percentage}% refund applied ({policy} policy)"


def calculate_refund(booking, policy: str, now: datetime, tz: tzinfo, *, full_refund: bool = False) -> RefundQuote:
    """
    Refund a cancellation of `booking` would produce at `now`.

    full_refund skips the policy tiers (host or system cancellations).
    """
    total = Money(booking.total_price, booking.currency)
    hours_until = (booking_start(booking, tz) - now).total_seconds() / 3600

    if booking.status in CLOSED_STATUSES:
        return RefundQuote(False, NONE, Money.zero(total.currency), total, hours_until,
                           f"Booking is already {booking.status.lower()}")

    if booking.payment_status == 'Released':
        return RefundQuote(False, NONE, Money.zero(total.currency), total, hours_until,
                           "Funds were already released to the host")

    if hours_until < 0 and not full_refund:
        return RefundQuote(False, NONE, Money.zero(total.currency), total, hours_until,
                           "Cannot cancel past bookings")

    if booking.payment_status != 'Paid - Escrow':
        return RefundQuote(True, NONE, Money.zero(total.currency), Money.zero(total.currency), hours_until,
                           "Nothing was charged for this booking")

    percentage = FULL if full_refund else refund_percentage(policy, hours_until)
    refund = (total * (percentage / FULL)).quantize()
    return RefundQuote(
        can_cancel=True,
        refund_percentage=percentage,
        refund_amount=refund,
        cancellation_fee=total - refund,
        hours_until_start=hours_until,
        reason="Full refund" if full_refund else _describe(policy, percentage),
    )
