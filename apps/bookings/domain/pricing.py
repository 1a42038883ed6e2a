"""
Pricing Calculator

Turns a booking request (duration, guest count, add-ons, recurrence) into a
fee breakdown. Single source of the fee math: the quote endpoint, booking
creation and the admin all call calculate_fees().

Amounts are exact Decimals internally; FeeBreakdown.quantized() rounds to
cents for presentation.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, Mapping, Tuple

from shared.domain.value_objects import Money

DEFAULT_SERVICE_FEE_RATE = Decimal('0.10')


@dataclass(frozen=True)
class PricingTerms:
    """The listing attributes that drive the price of a booking."""
    price: Money
    included_guests: int = 1
    price_per_extra_guest: Money | None = None
    caution_fee: Money | None = None
    add_ons: Mapping[str, Money] = field(default_factory=dict)

    @property
    def currency(self) -> str:
        return self.price.currency

    @classmethod
    def from_listing(cls, listing) -> 'PricingTerms':
        currency = getattr(listing, 'currency', None) or 'NGN'
        add_ons = {}
        add_on_manager = getattr(listing, 'add_ons', None)
        if add_on_manager is not None:
            items = add_on_manager.all() if hasattr(add_on_manager, 'all') else add_on_manager
            for add_on in items:
                add_ons[str(add_on.id)] = Money(add_on.price, currency)

        return cls(
            price=Money(listing.price, currency),
            included_guests=listing.included_guests or 0,
            price_per_extra_guest=Money(listing.price_per_extra_guest or 0, currency),
            caution_fee=Money(listing.caution_fee or 0, currency),
            add_ons=add_ons,
        )


@dataclass(frozen=True)
class BookingQuote:
    """What the guest asked for, in pricing terms."""
    duration_units: int
    guest_count: int = 1
    selected_add_on_ids: Tuple[str, ...] = ()
    is_recurring: bool = False
    occurrence_count: int = 1

    def __post_init__(self):
        if self.duration_units < 1:
            raise ValueError("Duration must be at least one unit")
        if self.guest_count < 1:
            raise ValueError("Guest count must be at least one")
        if self.is_recurring and self.occurrence_count < 1:
            raise ValueError("Occurrence count must be at least one")
        object.__setattr__(self, 'selected_add_on_ids', tuple(str(i) for i in self.selected_add_on_ids))

    @property
    def occurrences(self) -> int:
        return self.occurrence_count if self.is_recurring else 1


@dataclass(frozen=True)
class FeeBreakdown:
    subtotal: Money
    service_fee: Money
    caution_fee: Money
    total: Money

    def quantized(self) -> 'FeeBreakdown':
        """Cent-rounded copy for display. total is re-derived so it still adds up."""
        subtotal = self.subtotal.quantize()
        service_fee = self.service_fee.quantize()
        caution_fee = self.caution_fee.quantize()
        return FeeBreakdown(
            subtotal=subtotal,
            service_fee=service_fee,
            caution_fee=caution_fee,
            total=subtotal + service_fee + caution_fee,
        )

    def to_dict(self) -> dict:
        return {
            'subtotal': str(self.subtotal.amount),
            'service_fee': str(self.service_fee.amount),
            'caution_fee': str(self.caution_fee.amount),
            'total': str(self.total.amount),
            'currency': self.total.currency,
        }


def unit_price(terms: PricingTerms, guest_count: int) -> Money:
    """Listing price plus the per-unit surcharge for guests above the included count."""
    price = terms.price
    extra_guests = guest_count - terms.included_guests
    surcharge = terms.price_per_extra_guest
    if extra_guests > 0 and surcharge is not None and surcharge.amount > 0:
        price = price + surcharge * extra_guests
    return price


def add_ons_cost(terms: PricingTerms, selected_ids: Iterable[str]) -> Money:
    """Flat add-on charge for one occurrence. Unknown ids are ignored."""
    total = Money.zero(terms.currency)
    for add_on_id in selected_ids:
        price = terms.add_ons.get(str(add_on_id))
        if price is not None:
            total = total + price
    return total


def calculate_fees(terms: PricingTerms, quote: BookingQuote, service_fee_rate=None) -> FeeBreakdown:
    """
    Fee breakdown for a booking request.

    subtotal     = (unit price * duration + add-ons) * occurrences
    service fee  = subtotal * rate
    caution fee  = listing deposit, once per series
    total        = subtotal + service fee + caution fee
    """
    rate = DEFAULT_SERVICE_FEE_RATE if service_fee_rate is None else Decimal(str(service_fee_rate))

    rental = unit_price(terms, quote.guest_count) * quote.duration_units
    per_occurrence = rental + add_ons_cost(terms, quote.selected_add_on_ids)
    subtotal = per_occurrence * quote.occurrences
    service_fee = subtotal * rate
    caution_fee = terms.caution_fee or Money.zero(terms.currency)

    return FeeBreakdown(
        subtotal=subtotal,
        service_fee=service_fee,
        caution_fee=caution_fee,
        total=subtotal + service_fee + caution_fee,
    )
