"""
Common Value Objects

Value objects used across multiple domains:
- Money: Represents monetary amounts with currency
- DateRange: Represents a range of dates (first night to check-out day)
"""

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal
from typing import Iterator

from shared.domain.base import ValueObject

SUPPORTED_CURRENCIES = ('NGN', 'USD', 'EUR', 'GBP')
CENT = Decimal('0.01')


@dataclass(frozen=True)
class Money(ValueObject):
    """
    Money value object

    Represents a monetary amount with currency.
    Immutable and supports arithmetic operations. Amounts keep full
    Decimal precision; call quantize() at presentation boundaries.
    """
    amount: Decimal
    currency: str = 'NGN'

    def __post_init__(self):
        if not isinstance(self.amount, Decimal):
            object.__setattr__(self, 'amount', Decimal(str(self.amount)))
        if self.amount < 0:
            raise ValueError("Amount cannot be negative")
        if not self.currency:
            raise ValueError("Currency is required")
        if self.currency not in SUPPORTED_CURRENCIES:
            raise ValueError(f"Unsupported currency: {self.currency}")

    @classmethod
    def zero(cls, currency: str = 'NGN') -> 'Money':
        return cls(Decimal('0'), currency)

    def __add__(self, other: 'Money') -> 'Money':
        """Add two money objects"""
        if not isinstance(other, Money):
            raise TypeError("Can only add Money to Money")
        if self.currency != other.currency:
            raise ValueError(f"Cannot add different currencies: {self.currency} and {other.currency}")
        return Money(self.amount + other.amount, self.currency)

    def __sub__(self, other: 'Money') -> 'Money':
        """Subtract two money objects"""
        if not isinstance(other, Money):
            raise TypeError("Can only subtract Money from Money")
        if self.currency != other.currency:
            raise ValueError(f"Cannot subtract different currencies: {self.currency} and {other.currency}")
        return Money(self.amount - other.amount, self.currency)

    def __mul__(self, factor) -> 'Money':
        """Multiply money by a factor"""
        if not isinstance(factor, (int, float, Decimal)):
            raise TypeError("Can only multiply Money by number")
        return Money(self.amount * Decimal(str(factor)), self.currency)

    def quantize(self) -> 'Money':
        """Round to cents (presentation and persistence boundary)."""
        return Money(self.amount.quantize(CENT, rounding=ROUND_HALF_UP), self.currency)

    def split(self, parts: int) -> list['Money']:
        """
        Split into `parts` cent-rounded shares that add up to the rounded total.

        Every share gets the floor of the even split; the leftover cents go
        to the first share.
        """
        if parts < 1:
            raise ValueError("Cannot split into fewer than one part")
        total = self.quantize().amount
        share = (total / parts).quantize(CENT, rounding=ROUND_DOWN)
        remainder = total - share * parts
        shares = [Money(share, self.currency) for _ in range(parts)]
        shares[0] = Money(share + remainder, self.currency)
        return shares

    def __str__(self):
        return f"{self.amount:,.2f} {self.currency}"

    def __repr__(self):
        return f"Money({self.amount}, '{self.currency}')"


@dataclass(frozen=True)
class DateRange(ValueObject):
    """
    Date range value object

    Represents a range from start_date (inclusive) to end_date (exclusive).
    A daily booking of N nights starting on D occupies DateRange(D, D + N).
    """
    start_date: date
    end_date: date

    def __post_init__(self):
        if self.start_date >= self.end_date:
            raise ValueError(f"Start date ({self.start_date}) must be before end date ({self.end_date})")

    @classmethod
    def of_nights(cls, start_date: date, nights: int) -> 'DateRange':
        return cls(start_date, start_date + timedelta(days=max(nights, 1)))

    def overlaps_with(self, other: 'DateRange') -> bool:
        """
        Check if this range overlaps with another

        Note: end_date is exclusive, so adjacent ranges don't overlap.

        Examples:
            - DateRange(25, 28) overlaps with DateRange(27, 30) -> True
            - DateRange(25, 28) overlaps with DateRange(28, 31) -> False (adjacent)
        """
        if not isinstance(other, DateRange):
            raise TypeError("Can only check overlap with another DateRange")

        # Overlap formula: start1 < end2 AND end1 > start2
        return (self.start_date < other.end_date and
                self.end_date > other.start_date)

    def contains(self, check_date: date) -> bool:
        """start_date is inclusive, end_date is exclusive"""
        return self.start_date <= check_date < self.end_date

    def days(self) -> Iterator[date]:
        current = self.start_date
        while current < self.end_date:
            yield current
            current += timedelta(days=1)

    def __len__(self) -> int:
        """Number of nights in this range"""
        return (self.end_date - self.start_date).days

    def __str__(self):
        return f"{self.start_date.isoformat()} - {self.end_date.isoformat()}"

    def __repr__(self):
        return f"DateRange({self.start_date}, {self.end_date})"
