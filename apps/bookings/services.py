"""Domain services for booking workflows."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Callable, List, Sequence
from uuid import UUID, uuid4
import logging

from django.conf import settings  # type: ignore
from django.contrib.auth import get_user_model  # type: ignore
from django.db import transaction  # type: ignore
from django.db.utils import NotSupportedError  # type: ignore
from django.utils import timezone  # type: ignore

from apps.escrow.ledger import EscrowLedger, compute_release_date
from apps.escrow.payments import PaymentAuthorization
from apps.listings.models import Listing
from shared.application.uow import DjangoUnitOfWork
from shared.domain.value_objects import Money

from .domain.availability import (
    DateStatus,
    SeriesCheck,
    booked_hours_on,
    check_date_availability,
    check_series,
    expand_series,
    open_hours_on,
)
from .domain.cancellation import RefundQuote, booking_start, calculate_refund
from .domain.eligibility import booking_ineligibility_reason
from .domain.events import BookingCancelled, BookingCompleted, BookingConfirmed, BookingCreated
from .domain.pricing import BookingQuote, FeeBreakdown, PricingTerms, calculate_fees
from .exceptions import (
    BookingConflictError,
    BookingError,
    BookingNotEligibleError,
    CancellationNotAllowedError,
)
from .models import Booking
from .repositories import BookingRepository

logger = logging.getLogger(__name__)

Authorize = Callable[[Decimal], PaymentAuthorization]


def _lock_queryset_if_possible(queryset):
    """Apply select_for_update when inside transaction.atomic()."""

    if not transaction.get_connection().in_atomic_block:
        return queryset

    try:
        return queryset.select_for_update()
    except NotSupportedError:
        return queryset


@dataclass(frozen=True)
class BookingRequest:
    """Normalized booking request as collected by the client."""
    listing_id: UUID
    user_id: int
    dates: Sequence[date]
    duration_units: int = 1
    hours: Sequence[int] | None = None
    guest_count: int = 1
    selected_add_on_ids: Sequence[str] = ()
    is_recurring: bool = False
    recurrence_freq: str | None = None
    recurrence_count: int | None = None
    draft: bool = False


@dataclass
class BookingOutcome:
    bookings: List[Booking]
    fees: FeeBreakdown
    group_id: UUID | None = None
    authorization: PaymentAuthorization | None = None
    transaction_ids: List[UUID] = field(default_factory=list)


@dataclass(frozen=True)
class PendingDeadline:
    booking: Booking
    is_same_day: bool
    deadline_hours: int
    hours_since_created: float
    hours_remaining: float
    deadline_at: datetime

    @property
    def is_urgent(self) -> bool:
        return self.hours_remaining <= 2


def _setting(name: str, default):
    return getattr(settings, name, default)


class BookingService:
    """Booking lifecycle: create, pay, confirm, cancel, auto-cancel, complete."""

    def __init__(self, bookings: BookingRepository | None = None, ledger: EscrowLedger | None = None, bus=None):
        self.bookings = bookings or BookingRepository()
        self.ledger = ledger or EscrowLedger(self.bookings, bus=bus)
        self.bus = bus

    # ===== Availability & pricing =====

    def date_availability(self, listing: Listing, day: date) -> dict:
        existing = list(self.bookings.list_by_listing(listing.pk))
        status = check_date_availability(listing, day, existing, today=timezone.localdate())
        open_hours = open_hours_on(listing, day)
        return {
            "date": day,
            "status": status.value,
            "is_available": status == DateStatus.AVAILABLE,
            "open_hours": sorted(open_hours) if open_hours is not None else [],
            "booked_hours": sorted(booked_hours_on(day, existing)) if listing.is_hourly else [],
        }

    def resolve_dates(self, listing: Listing, request: BookingRequest) -> List[date]:
        """Dates of every occurrence the request asks for."""
        if not request.dates:
            raise BookingError("At least one date is required")

        if not request.is_recurring:
            return sorted(request.dates)

        if not listing.allow_recurring:
            raise BookingError("This listing does not accept recurring bookings")
        try:
            return expand_series(
                request.dates[0],
                request.recurrence_count or 0,
                request.recurrence_freq or "WEEKLY",
                hourly=listing.is_hourly,
            )
        except ValueError as e:
            raise BookingError(str(e)) from e

    def _duration_units(self, listing: Listing, request: BookingRequest) -> int:
        if listing.is_hourly:
            if not request.hours:
                raise BookingError("Select at least one hour")
            return len(request.hours)
        return request.duration_units

    def quote(self, listing: Listing, request: BookingRequest) -> tuple[List[date], FeeBreakdown]:
        """Occurrence dates and fee breakdown for a request. Writes nothing."""
        if request.guest_count > listing.capacity:
            raise BookingError(f"This space fits at most {listing.capacity} guests")

        dates = self.resolve_dates(listing, request)
        try:
            booking_quote = BookingQuote(
                duration_units=self._duration_units(listing, request),
                guest_count=request.guest_count,
                selected_add_on_ids=tuple(request.selected_add_on_ids or ()),
                is_recurring=len(dates) > 1,
                occurrence_count=len(dates),
            )
        except ValueError as e:
            raise BookingError(str(e)) from e

        fees = calculate_fees(
            PricingTerms.from_listing(listing),
            booking_quote,
            _setting("BOOKING_SERVICE_FEE_RATE", None),
        )
        return dates, fees

    def check_request(self, listing: Listing, request: BookingRequest, dates: Sequence[date]) -> SeriesCheck:
        existing = list(self.bookings.list_by_listing(listing.pk))
        try:
            return check_series(
                listing,
                dates,
                existing,
                hours=request.hours,
                nights=request.duration_units,
                today=timezone.localdate(),
            )
        except ValueError as e:
            raise BookingError(str(e)) from e

    # ===== Creation =====

    def create_booking(self, request: BookingRequest, authorize: Authorize | None = None) -> BookingOutcome:
        """
        Create the booking rows of a request, all or nothing.

        Inside one transaction: lock the listing, re-check availability,
        price, authorize payment, write one row per occurrence and record
        the guest payment in the ledger. Drafts (request.draft) skip payment
        and are stored as Reserved.
        """
        User = get_user_model()
        user = User.objects.get(pk=request.user_id)
        paid = not request.draft
        if paid and authorize is None:
            raise BookingError("A payment method is required")

        logger.info(
            f"Creating booking for listing {request.listing_id}, user {request.user_id}, "
            f"dates {[d.isoformat() for d in request.dates]}"
        )

        authorization = None
        with DjangoUnitOfWork(self.bus) as uow:
            try:
                listing = _lock_queryset_if_possible(Listing.objects.filter(pk=request.listing_id)).get()
            except Listing.DoesNotExist:
                raise BookingError(f"Listing {request.listing_id} not found") from None

            reason = booking_ineligibility_reason(user, listing)
            if reason:
                raise BookingNotEligibleError(reason)

            dates, fees = self.quote(listing, request)
            check = self.check_request(listing, request, dates)
            if not check.is_bookable:
                logger.info(f"Booking request for listing {listing.pk} rejected: {len(check.conflicts)} conflicts")
                raise BookingConflictError(check.conflicts)

            charged = fees.quantized()
            if paid:
                authorization = authorize(charged.total.amount)

            try:
                rows = self._persist_rows(listing, user, request, dates, charged, paid)
                transaction_ids = []
                if paid:
                    for row in rows:
                        result = self.ledger.record_guest_payment(row, user.pk, authorization.reference)
                        if not result.success:
                            raise BookingError(f"Could not record payment for booking {row.pk}: {result.error}")
                        transaction_ids.extend(result.transaction_ids)
            except Exception as e:
                if authorization is not None:
                    logger.critical(
                        f"Payment {authorization.reference} of {authorization.amount} was authorized but "
                        f"booking creation for listing {listing.pk} failed: {e}. Reconcile manually.",
                        exc_info=True,
                    )
                raise

            uow.collect(BookingCreated(
                aggregate_id=rows[0].pk,
                booking_ids=[row.pk for row in rows],
                listing_id=listing.pk,
                guest_id=user.pk,
                group_id=rows[0].group_id,
                dates=dates,
                total_price=charged.total,
                status=rows[0].status,
            ))

        return BookingOutcome(
            bookings=rows,
            fees=charged,
            group_id=rows[0].group_id,
            authorization=authorization,
            transaction_ids=transaction_ids,
        )

    def _persist_rows(self, listing, user, request, dates, fees: FeeBreakdown, paid: bool) -> List[Booking]:
        """
        One row per occurrence.

        Subtotal and service fee are split evenly with leftover cents on the
        first row; the caution deposit sits on the first row only.
        """
        count = len(dates)
        subtotals = fees.subtotal.split(count)
        service_fees = fees.service_fee.split(count)
        group_id = uuid4() if count > 1 else None
        hours = sorted(request.hours) if listing.is_hourly else None
        duration = len(hours) if hours else request.duration_units

        rows = []
        for index, day in enumerate(dates):
            caution = fees.caution_fee if index == 0 else Money.zero(fees.caution_fee.currency)
            total = subtotals[index] + service_fees[index] + caution
            booking = Booking(
                listing=listing,
                user=user,
                date=day,
                duration=duration,
                hours=hours,
                total_price=total.amount,
                service_fee=service_fees[index].amount,
                caution_fee=caution.amount,
                currency=listing.currency,
                status=Booking.Status.PENDING if paid else Booking.Status.RESERVED,
                payment_status=Booking.PaymentStatus.PAID_ESCROW if paid else None,
                caution_status=Booking.CautionStatus.HELD if paid and caution.amount > 0 else None,
                escrow_release_date=compute_release_date(day, hours),
                group_id=group_id,
                guest_count=request.guest_count,
                selected_add_ons=[str(i) for i in request.selected_add_on_ids or ()],
            )
            rows.append(self.bookings.create(booking))
        return rows

    def pay_reserved(self, booking_id: UUID, authorize: Authorize) -> BookingOutcome:
        """Pay for a Reserved draft (and its series siblings) and move it to Pending."""
        with DjangoUnitOfWork(self.bus):
            booking = self.bookings.get(booking_id)
            rows = self.bookings.list_group(booking.group_id) if booking.group_id else [booking]
            rows = [row for row in rows if row.status == Booking.Status.RESERVED]
            if not rows:
                raise BookingError(f"Booking {booking_id} has no unpaid reservation")

            total = sum((row.total_price for row in rows), Decimal("0.00"))
            authorization = authorize(total)
            transaction_ids = []
            try:
                for row in rows:
                    row = self.bookings.update_status(
                        row.pk,
                        Booking.Status.PENDING,
                        payment_status=Booking.PaymentStatus.PAID_ESCROW,
                        caution_status=Booking.CautionStatus.HELD if row.caution_fee > 0 else None,
                    )
                    result = self.ledger.record_guest_payment(row, row.user_id, authorization.reference)
                    if not result.success:
                        raise BookingError(f"Could not record payment for booking {row.pk}: {result.error}")
                    transaction_ids.extend(result.transaction_ids)
            except Exception as e:
                logger.critical(
                    f"Payment {authorization.reference} of {authorization.amount} was authorized but "
                    f"paying reservation {booking_id} failed: {e}. Reconcile manually.",
                    exc_info=True,
                )
                raise

        paid_rows = [self.bookings.get(row.pk) for row in rows]
        currency = booking.currency
        fees = FeeBreakdown(
            subtotal=Money(
                sum((r.total_price - r.service_fee - r.caution_fee for r in paid_rows), Decimal("0")), currency
            ),
            service_fee=Money(sum((r.service_fee for r in paid_rows), Decimal("0")), currency),
            caution_fee=Money(sum((r.caution_fee for r in paid_rows), Decimal("0")), currency),
            total=Money(total, currency),
        )
        return BookingOutcome(paid_rows, fees, booking.group_id, authorization, transaction_ids)

    # ===== Host actions =====

    def confirm_booking(self, booking_id: UUID, host) -> Booking:
        booking = self.bookings.get(booking_id)
        if booking.listing.host_id != host.pk:
            raise BookingNotEligibleError("Only the listing's host can confirm this booking")

        with DjangoUnitOfWork(self.bus) as uow:
            booking = self.bookings.update_status(booking.pk, Booking.Status.CONFIRMED)
            uow.collect(BookingConfirmed(
                aggregate_id=booking.pk,
                booking_id=booking.pk,
                listing_id=booking.listing_id,
                guest_id=booking.user_id,
            ))
        return booking

    # ===== Cancellation =====

    def cancelled_by(self, booking: Booking, user) -> str:
        if user.pk == booking.user_id:
            return Booking.CancelledBy.GUEST
        if user.pk == booking.listing.host_id:
            return Booking.CancelledBy.HOST
        if getattr(user, "is_platform_admin", lambda: False)():
            return Booking.CancelledBy.ADMIN
        raise BookingNotEligibleError("You cannot cancel this booking")

    def refund_quote(self, booking: Booking, cancelled_by: str = Booking.CancelledBy.GUEST,
                     now: datetime | None = None) -> RefundQuote:
        return calculate_refund(
            booking,
            booking.listing.cancellation_policy,
            now or timezone.now(),
            timezone.get_default_timezone(),
            full_refund=cancelled_by != Booking.CancelledBy.GUEST,
        )

    def cancel_booking(self, booking_id: UUID, user, reason: str = "") -> Booking:
        """Guest cancellations follow the listing policy; host and admin cancellations refund in full."""
        booking = self.bookings.get(booking_id)
        return self._cancel(booking, self.cancelled_by(booking, user), reason)

    def _cancel(self, booking: Booking, cancelled_by: str, reason: str, now: datetime | None = None) -> Booking:
        now = now or timezone.now()
        refund = self.refund_quote(booking, cancelled_by, now)
        if not refund.can_cancel:
            raise CancellationNotAllowedError(refund.reason)
        booking.ensure_can_transition_to(Booking.Status.CANCELLED)

        old_status = booking.status
        with DjangoUnitOfWork(self.bus) as uow:
            refund_amount = refund.refund_amount.amount
            if refund_amount > 0:
                result = self.ledger.refund(booking, booking.user_id, refund_amount, reason=reason or "Booking cancelled")
                if not result.success:
                    raise CancellationNotAllowedError(result.error)

            booking = self.bookings.update_status(
                booking.pk,
                Booking.Status.CANCELLED,
                cancelled_at=now,
                cancelled_by=cancelled_by,
                cancellation_reason=reason[:255],
                refund_amount=refund_amount,
            )
            uow.collect(BookingCancelled(
                aggregate_id=booking.pk,
                booking_id=booking.pk,
                listing_id=booking.listing_id,
                cancelled_by=cancelled_by,
                reason=reason,
                refund_amount=refund.refund_amount if refund_amount > 0 else None,
                old_status=old_status,
            ))

        logger.info(f"Booking {booking.pk} cancelled by {cancelled_by}, refund {refund_amount}")
        return booking

    # ===== Periodic jobs =====

    def _deadline(self, booking: Booking, now: datetime) -> tuple[bool, int]:
        hours = _setting("BOOKING_AUTO_CANCEL_HOURS", {"STANDARD": 24, "SAME_DAY": 4})
        start = booking_start(booking, timezone.get_default_timezone())
        is_same_day = start - now < timedelta(hours=24)
        return is_same_day, hours["SAME_DAY"] if is_same_day else hours["STANDARD"]

    def auto_cancel_unanswered(self, now: datetime | None = None) -> int:
        """Cancel Pending bookings the host did not answer in time, refunding the guest in full."""
        now = now or timezone.now()
        cancelled = 0
        for booking in Booking.objects.filter(status=Booking.Status.PENDING).select_related("listing"):
            try:
                is_same_day, limit = self._deadline(booking, now)
                if now - booking.created_at < timedelta(hours=limit):
                    continue
                reason = f"Auto-cancelled: host did not respond within {limit} hours"
                if is_same_day:
                    reason += " (same-day booking policy)"
                self._cancel(booking, Booking.CancelledBy.SYSTEM, reason, now)
                cancelled += 1
            except Exception as e:
                logger.error(f"Failed to auto-cancel booking {booking.pk}: {e}", exc_info=True)

        if cancelled:
            logger.info(f"Auto-cancelled {cancelled} pending booking(s) without host response")
        return cancelled

    def complete_finished(self, now: datetime | None = None) -> int:
        """Move Confirmed bookings whose time has passed to Completed."""
        now = now or timezone.now()
        tz = timezone.get_default_timezone()
        checkout_hour = _setting("BOOKING_DAILY_CHECKOUT_HOUR", 11)
        completed = 0
        for booking in Booking.objects.filter(status=Booking.Status.CONFIRMED, date__lte=timezone.localdate(now)):
            try:
                if booking.end_datetime(tz, checkout_hour) > now:
                    continue
                with DjangoUnitOfWork(self.bus) as uow:
                    self.bookings.update_status(booking.pk, Booking.Status.COMPLETED)
                    uow.collect(BookingCompleted(
                        aggregate_id=booking.pk,
                        booking_id=booking.pk,
                        listing_id=booking.listing_id,
                        guest_id=booking.user_id,
                    ))
                completed += 1
            except Exception as e:
                logger.error(f"Failed to complete booking {booking.pk}: {e}", exc_info=True)

        if completed:
            logger.info(f"Completed {completed} finished booking(s)")
        return completed

    def pending_near_deadline(self, host_id=None, now: datetime | None = None) -> List[PendingDeadline]:
        """Pending requests still awaiting the host, most urgent first."""
        now = now or timezone.now()
        queryset = Booking.objects.filter(status=Booking.Status.PENDING).select_related("listing")
        if host_id is not None:
            queryset = queryset.filter(listing__host_id=host_id)

        items = []
        for booking in queryset:
            is_same_day, limit = self._deadline(booking, now)
            since = (now - booking.created_at).total_seconds() / 3600
            remaining = max(0.0, limit - since)
            if remaining <= 0:
                continue
            items.append(PendingDeadline(
                booking=booking,
                is_same_day=is_same_day,
                deadline_hours=limit,
                hours_since_created=round(since, 2),
                hours_remaining=round(remaining, 2),
                deadline_at=booking.created_at + timedelta(hours=limit),
            ))
        items.sort(key=lambda item: item.hours_remaining)
        return items
