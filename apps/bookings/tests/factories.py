"""Object builders shared by the booking and escrow tests."""

from __future__ import annotations

import itertools
from datetime import date, timedelta
from decimal import Decimal

from django.utils import timezone

from apps.bookings.models import Booking
from apps.escrow.ledger import compute_release_date
from apps.listings.models import Listing
from apps.users.models import User

_sequence = itertools.count(1)


def make_user(role=User.RoleChoices.GUEST, **fields) -> User:
    n = next(_sequence)
    fields.setdefault("is_email_verified", True)
    return User.objects.create_user(
        email=f"{role}{n}@example.com",
        password="StrongPass123",
        role=role,
        **fields,
    )


def make_host(**fields) -> User:
    return make_user(User.RoleChoices.HOST, **fields)


def open_calendar(start: date, days: int = 60, hours=None) -> dict[str, list[int]]:
    return {(start + timedelta(days=i)).isoformat(): list(hours or []) for i in range(days)}


def make_listing(host: User, **fields) -> Listing:
    defaults = dict(
        title="Studio on Admiralty Way",
        status=Listing.Status.LIVE,
        price=Decimal("100.00"),
        price_unit=Listing.PriceUnit.DAILY,
        capacity=4,
        included_guests=2,
        price_per_extra_guest=Decimal("15.00"),
        caution_fee=Decimal("20.00"),
        allow_recurring=True,
        availability=open_calendar(timezone.localdate()),
    )
    defaults.update(fields)
    return Listing.objects.create(host=host, **defaults)


def make_hourly_listing(host: User, **fields) -> Listing:
    fields.setdefault("price_unit", Listing.PriceUnit.HOURLY)
    fields.setdefault("price", Decimal("50.00"))
    fields.setdefault("caution_fee", Decimal("0.00"))
    fields.setdefault("availability", open_calendar(timezone.localdate(), hours=range(9, 18)))
    return make_listing(host, **fields)


def make_escrowed_booking(listing: Listing, guest: User, day: date | None = None, **fields) -> Booking:
    """A paid booking held in escrow, without ledger rows."""
    day = day or timezone.localdate() + timedelta(days=10)
    defaults = dict(
        duration=1,
        total_price=Decimal("130.00"),
        service_fee=Decimal("10.00"),
        caution_fee=Decimal("20.00"),
        status=Booking.Status.CONFIRMED,
        payment_status=Booking.PaymentStatus.PAID_ESCROW,
        caution_status=Booking.CautionStatus.HELD,
        escrow_release_date=compute_release_date(day, fields.get("hours")),
    )
    defaults.update(fields)
    return Booking.objects.create(listing=listing, user=guest, date=day, **defaults)
