"""
Escrow Ledger

Append-only log of money movements for bookings:

    GUEST_PAYMENT  guest -> escrow   (booking total)
    SERVICE_FEE    guest -> platform (platform cut, recorded with the payment)
    HOST_PAYOUT    escrow -> host    (total - service fee - caution fee)
    REFUND         escrow -> guest

Rows are only ever created here. Releases and settling refunds are gated by
a compare-and-swap on the booking's payment status inside the same database
transaction as the ledger row, so a booking is paid out at most once even
when the scheduler races a manual release.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone as dt_timezone, tzinfo
from decimal import Decimal
from enum import Enum
from typing import Iterable, List, Sequence
from uuid import UUID, uuid4
import logging

from django.conf import settings  # type: ignore
from django.db.models import Q, Sum  # type: ignore
from django.utils import timezone  # type: ignore

from apps.bookings.models import Booking
from apps.bookings.repositories import BookingRepository
from shared.application.uow import DjangoUnitOfWork
from shared.domain.value_objects import Money

from .events import DisputeResolved, EscrowRefunded, EscrowReleased, GuestPaymentRecorded
from .models import EscrowTransaction
from .payments import new_reference

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


@dataclass
class LedgerResult:
    success: bool
    transaction_ids: List[UUID] = field(default_factory=list)
    error: str = ""

    @property
    def transaction_id(self) -> UUID | None:
        return self.transaction_ids[0] if self.transaction_ids else None

    @classmethod
    def failed(cls, error: str) -> "LedgerResult":
        return cls(success=False, error=error)


@dataclass(frozen=True)
class PlatformFinancials:
    total_escrow: Decimal
    total_released: Decimal
    total_revenue: Decimal
    total_refunded: Decimal
    total_payments: Decimal
    pending_payouts: int

    def to_dict(self) -> dict:
        return {
            "total_escrow": str(self.total_escrow),
            "total_released": str(self.total_released),
            "total_revenue": str(self.total_revenue),
            "total_refunded": str(self.total_refunded),
            "total_payments": str(self.total_payments),
            "pending_payouts": self.pending_payouts,
        }


@dataclass(frozen=True)
class UpcomingRelease:
    booking: Booking
    release_date: datetime
    hours_until_release: float
    is_overdue: bool
    net_payout: Decimal
    host_id: int | None


class DisputeDecision(str, Enum):
    REFUND_GUEST = "REFUND_GUEST"
    RELEASE_TO_HOST = "RELEASE_TO_HOST"


def compute_release_date(start_date: date, hours: Sequence[int] | None = None, tz: tzinfo | None = None) -> datetime:
    """
    When escrow for a booking becomes payable.

    Hourly bookings anchor at their first booked hour, daily bookings at the
    daily anchor hour (15:00 local by default); release is the anchor plus
    ESCROW_RELEASE_HOURS of elapsed time, so DST shifts move the local hour.
    """
    tz = tz or timezone.get_default_timezone()
    if hours:
        anchor_hour = min(hours)
    else:
        anchor_hour = getattr(settings, "ESCROW_DAILY_ANCHOR_HOUR", 15)
    anchor = datetime.combine(start_date, time(hour=anchor_hour), tzinfo=tz)
    delay = timedelta(hours=getattr(settings, "ESCROW_RELEASE_HOURS", 24))
    return (anchor.astimezone(dt_timezone.utc) + delay).astimezone(tz)


class EscrowLedger:
    """Creates ledger rows and derives platform financials from them."""

    def __init__(self, bookings: BookingRepository | None = None, bus=None):
        self.bookings = bookings or BookingRepository()
        self.bus = bus

    # ===== Recording =====

    def _create(self, booking: Booking, type_: str, amount, **fields) -> EscrowTransaction:
        return EscrowTransaction.objects.create(
            booking=booking,
            type=type_,
            amount=Decimal(amount),
            currency=booking.currency,
            status=EscrowTransaction.Status.COMPLETED,
            **fields,
        )

    def record_guest_payment(self, booking: Booking, guest_id, paystack_reference: str = "") -> LedgerResult:
        """GUEST_PAYMENT for the booking total plus SERVICE_FEE for the platform cut."""
        with DjangoUnitOfWork(self.bus) as uow:
            payment = self._create(
                booking,
                EscrowTransaction.Type.GUEST_PAYMENT,
                booking.total_price,
                from_user_id=guest_id,
                paystack_reference=paystack_reference,
                metadata={"group_id": str(booking.group_id) if booking.group_id else None},
            )
            fee = self._create(
                booking,
                EscrowTransaction.Type.SERVICE_FEE,
                booking.service_fee,
                from_user_id=guest_id,
                paystack_reference=paystack_reference,
            )
            ids = [payment.id, fee.id]
            self.bookings.append_transactions(booking.pk, ids)
            uow.collect(GuestPaymentRecorded(
                aggregate_id=booking.pk,
                booking_id=booking.pk,
                guest_id=guest_id,
                amount=Money(booking.total_price, booking.currency),
                transaction_ids=ids,
            ))

        booking.transaction_ids = [*booking.transaction_ids, *(str(i) for i in ids)]
        logger.info(f"Recorded guest payment {booking.total_price} for booking {booking.pk}")
        return LedgerResult(success=True, transaction_ids=ids)

    def release_to_host(self, booking: Booking, host_id) -> LedgerResult:
        """
        Pay the host their share of an escrowed booking.

        Only the caller that flips Paid - Escrow to Released writes the
        payout; everyone else gets success=False and nothing is written.
        """
        transaction_id = uuid4()
        amount = booking.net_payout

        with DjangoUnitOfWork(self.bus) as uow:
            swapped = self.bookings.update_payment_status(
                booking.pk,
                Booking.PaymentStatus.RELEASED,
                transaction_id,
                expected=Booking.PaymentStatus.PAID_ESCROW,
            )
            if not swapped:
                logger.warning(f"Release of booking {booking.pk} skipped: funds are not in escrow")
                return LedgerResult.failed(f"Booking {booking.pk} is not held in escrow")

            self._create(
                booking,
                EscrowTransaction.Type.HOST_PAYOUT,
                amount,
                id=transaction_id,
                to_user_id=host_id,
                paystack_reference=new_reference("PYT"),
                metadata={"total_price": str(booking.total_price), "service_fee": str(booking.service_fee),
                          "caution_fee": str(booking.caution_fee)},
            )
            uow.collect(EscrowReleased(
                aggregate_id=booking.pk,
                booking_id=booking.pk,
                host_id=host_id,
                amount=Money(amount, booking.currency),
                transaction_id=transaction_id,
            ))

        booking.payment_status = Booking.PaymentStatus.RELEASED
        booking.transaction_ids = [*booking.transaction_ids, str(transaction_id)]
        logger.info(f"Released {amount} to host {host_id} for booking {booking.pk}")
        return LedgerResult(success=True, transaction_ids=[transaction_id])

    def escrowed_balance(self, booking: Booking) -> Decimal:
        """What the ledger still holds for a booking."""
        totals = self._totals(EscrowTransaction.objects.filter(booking=booking))
        return (
            totals[EscrowTransaction.Type.GUEST_PAYMENT]
            - totals[EscrowTransaction.Type.HOST_PAYOUT]
            - totals[EscrowTransaction.Type.REFUND]
        )

    def refund(self, booking: Booking, guest_id, amount, reason: str = "", *, settle: bool = True) -> LedgerResult:
        """
        Refund `amount` to the guest.

        With settle=True the booking's payment status is moved from
        Paid - Escrow to Refunded in the same transaction, and the refund is
        rejected if the funds are no longer in escrow. settle=False only
        writes the row (caution deposit returns after release).
        """
        try:
            amount = Decimal(str(amount))
        except ArithmeticError:
            return LedgerResult.failed(f"Invalid refund amount: {amount!r}")
        if amount < 0:
            return LedgerResult.failed("Refund amount cannot be negative")

        transaction_id = uuid4()
        with DjangoUnitOfWork(self.bus) as uow:
            available = self.escrowed_balance(booking)
            if amount > available:
                logger.warning(f"Refund of {amount} for booking {booking.pk} exceeds escrowed {available}")
                return LedgerResult.failed(f"Refund of {amount} exceeds the {available} held in escrow")

            if settle:
                swapped = self.bookings.update_payment_status(
                    booking.pk,
                    Booking.PaymentStatus.REFUNDED,
                    expected=Booking.PaymentStatus.PAID_ESCROW,
                )
                if not swapped:
                    return LedgerResult.failed(f"Booking {booking.pk} is not held in escrow")
                booking.payment_status = Booking.PaymentStatus.REFUNDED

            self._create(
                booking,
                EscrowTransaction.Type.REFUND,
                amount,
                id=transaction_id,
                to_user_id=guest_id,
                paystack_reference=new_reference("RFD"),
                metadata={"reason": reason} if reason else {},
            )
            self.bookings.append_transactions(booking.pk, [transaction_id])
            uow.collect(EscrowRefunded(
                aggregate_id=booking.pk,
                booking_id=booking.pk,
                guest_id=guest_id,
                amount=Money(amount, booking.currency),
                transaction_id=transaction_id,
                reason=reason,
            ))

        booking.transaction_ids = [*booking.transaction_ids, str(transaction_id)]
        logger.info(f"Refunded {amount} to guest {guest_id} for booking {booking.pk}")
        return LedgerResult(success=True, transaction_ids=[transaction_id])

    def return_caution_fee(self, booking: Booking, guest_id) -> LedgerResult:
        """Return the held caution deposit once the host has been paid."""
        if booking.caution_fee <= 0:
            return LedgerResult.failed(f"Booking {booking.pk} has no caution deposit")
        if booking.payment_status != Booking.PaymentStatus.RELEASED:
            return LedgerResult.failed(f"Caution deposit of booking {booking.pk} is returned only after release")

        try:
            with DjangoUnitOfWork(self.bus):
                returned = Booking.objects.filter(
                    pk=booking.pk,
                    caution_status=Booking.CautionStatus.HELD,
                ).update(caution_status=Booking.CautionStatus.RETURNED)
                if not returned:
                    return LedgerResult.failed(f"Caution deposit of booking {booking.pk} is not held")

                result = self.refund(booking, guest_id, booking.caution_fee,
                                     reason="Caution deposit returned", settle=False)
                if not result.success:
                    # undoes the caution flip
                    raise _RollbackCaution(result.error)
        except _RollbackCaution as exc:
            return LedgerResult.failed(str(exc))

        booking.caution_status = Booking.CautionStatus.RETURNED
        return result

    def resolve_dispute(self, booking: Booking, decision: DisputeDecision | str, notes: str = "") -> LedgerResult:
        """
        Admin decision on a disputed booking.

        REFUND_GUEST refunds everything still in escrow and cancels the
        booking; RELEASE_TO_HOST pays the host through the normal release
        gate and completes it.
        """
        decision = DisputeDecision(decision)
        listing = booking.listing

        with DjangoUnitOfWork(self.bus) as uow:
            if decision == DisputeDecision.REFUND_GUEST:
                result = self.refund(booking, booking.user_id, self.escrowed_balance(booking),
                                     reason=f"Dispute resolved for guest. {notes}".strip())
                target_status = Booking.Status.CANCELLED
                changes = {
                    "cancelled_at": timezone.now(),
                    "cancelled_by": Booking.CancelledBy.ADMIN,
                    "cancellation_reason": (notes or "Dispute resolved in favour of the guest")[:255],
                }
            else:
                result = self.release_to_host(booking, listing.host_id)
                target_status = Booking.Status.COMPLETED
                changes = {}

            if not result.success:
                return result

            if booking.can_transition_to(target_status):
                updated = self.bookings.update_status(booking.pk, target_status, **changes)
                booking.status = updated.status
            uow.collect(DisputeResolved(
                aggregate_id=booking.pk,
                booking_id=booking.pk,
                decision=decision.value,
                notes=notes,
            ))

        logger.info(f"Dispute on booking {booking.pk} resolved: {decision.value}")
        return result

    # ===== Reporting =====

    @staticmethod
    def _totals(queryset) -> dict:
        rows = (
            queryset.filter(status=EscrowTransaction.Status.COMPLETED)
            .values("type")
            .annotate(total=Sum("amount"))
        )
        totals = {type_: ZERO for type_ in EscrowTransaction.Type.values}
        for row in rows:
            totals[row["type"]] = row["total"] or ZERO
        return totals

    def get_platform_financials(self, bookings: Iterable[Booking] | None = None) -> PlatformFinancials:
        """Aggregate the full ledger; pending payouts are counted over `bookings` (all when omitted)."""
        totals = self._totals(EscrowTransaction.objects.all())
        payments = totals[EscrowTransaction.Type.GUEST_PAYMENT]
        released = totals[EscrowTransaction.Type.HOST_PAYOUT]
        refunded = totals[EscrowTransaction.Type.REFUND]

        if bookings is None:
            pending = Booking.objects.filter(payment_status=Booking.PaymentStatus.PAID_ESCROW).count()
        else:
            pending = sum(1 for b in bookings if b.payment_status == Booking.PaymentStatus.PAID_ESCROW)

        return PlatformFinancials(
            total_escrow=payments - released - refunded,
            total_released=released,
            total_revenue=totals[EscrowTransaction.Type.SERVICE_FEE],
            total_refunded=refunded,
            total_payments=payments,
            pending_payouts=pending,
        )

    def get_upcoming_releases(self, now: datetime | None = None) -> List[UpcomingRelease]:
        """Escrowed bookings with a release date, soonest first."""
        now = now or timezone.now()
        releases = []
        for booking in self.bookings.list_escrowed().filter(~Q(escrow_release_date=None)):
            seconds = (booking.escrow_release_date - now).total_seconds()
            releases.append(UpcomingRelease(
                booking=booking,
                release_date=booking.escrow_release_date,
                hours_until_release=round(seconds / 3600, 2),
                is_overdue=seconds <= 0,
                net_payout=booking.net_payout,
                host_id=booking.listing.host_id if booking.listing_id else None,
            ))
        releases.sort(key=lambda r: r.release_date)
        return releases


class _RollbackCaution(Exception):
    pass
