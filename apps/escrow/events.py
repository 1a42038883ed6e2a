"""
Escrow Domain Events

Published after the ledger rows they describe are committed.
"""

from dataclasses import dataclass
from typing import List
from uuid import UUID

from shared.domain.base import DomainEvent
from shared.domain.value_objects import Money


@dataclass(kw_only=True)
class GuestPaymentRecorded(DomainEvent):
    booking_id: UUID
    guest_id: int
    amount: Money
    transaction_ids: List[UUID]


@dataclass(kw_only=True)
class EscrowReleased(DomainEvent):
    """
    Event: Escrowed funds were paid out to the host

    Triggers:
    - on_release callbacks (UI refresh)
    - Host payout notification
    """
    booking_id: UUID
    host_id: int
    amount: Money
    transaction_id: UUID


@dataclass(kw_only=True)
class EscrowRefunded(DomainEvent):
    booking_id: UUID
    guest_id: int
    amount: Money
    transaction_id: UUID
    reason: str = ''


@dataclass(kw_only=True)
class DisputeResolved(DomainEvent):
    booking_id: UUID
    decision: str
    notes: str = ''
