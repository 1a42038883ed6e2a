"""
Booking Domain Events

Events that represent things that have happened in the booking domain.
These are published after successful transaction commits.
"""

from dataclasses import dataclass
from datetime import date
from typing import List
from uuid import UUID

from shared.domain.base import DomainEvent
from shared.domain.value_objects import Money


@dataclass(kw_only=True)
class BookingCreated(DomainEvent):
    """
    Event: A booking (or every row of a recurring series) was created

    Triggers:
    - Notify the host of a new request
    - Audit log
    """
    booking_ids: List[UUID]
    listing_id: UUID
    guest_id: int
    group_id: UUID | None
    dates: List[date]
    total_price: Money
    status: str


@dataclass(kw_only=True)
class BookingConfirmed(DomainEvent):
    """
    Event: Host accepted a pending booking (Pending -> Confirmed)
    """
    booking_id: UUID
    listing_id: UUID
    guest_id: int


@dataclass(kw_only=True)
class BookingCancelled(DomainEvent):
    """
    Event: Booking was cancelled by the guest, the host or the system

    Triggers:
    - Notify guest and host
    - Free up the dates (cancelled bookings never block availability)
    """
    booking_id: UUID
    listing_id: UUID
    cancelled_by: str
    reason: str
    refund_amount: Money | None
    old_status: str


@dataclass(kw_only=True)
class BookingCompleted(DomainEvent):
    """
    Event: A confirmed booking's time has passed (Confirmed -> Completed)
    """
    booking_id: UUID
    listing_id: UUID
    guest_id: int
