"""
Unit of Work Pattern

Wraps a database transaction and publishes the domain events collected
inside it only after the transaction commits.
"""

from typing import List
import logging

from django.db import transaction  # type: ignore

from shared.domain.base import DomainEvent

logger = logging.getLogger(__name__)


class DjangoUnitOfWork:
    """
    Django implementation of Unit of Work

    Usage:
        with DjangoUnitOfWork() as uow:
            booking = repository.create(...)
            result = ledger.record_guest_payment(booking, guest_id)
            uow.collect(BookingCreated(...))
        # Events are published after commit; on exception everything
        # (rows and events) is discarded.
    """

    def __init__(self, bus=None):
        self._events: List[DomainEvent] = []
        self._transaction = None
        self._bus = bus

    def __enter__(self):
        """Start database transaction"""
        self._transaction = transaction.atomic()
        self._transaction.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Complete or rollback transaction"""
        try:
            if exc_type is None:
                self.commit()
            else:
                self.rollback()
        finally:
            if self._transaction:
                self._transaction.__exit__(exc_type, exc_val, exc_tb)

    def collect(self, *events: DomainEvent):
        self._events.extend(events)

    def commit(self):
        """Schedule collected events for publication after the commit succeeds."""
        logger.debug(f"Committing transaction with {len(self._events)} events")

        events = self._events.copy()
        self._events.clear()

        if events:
            transaction.on_commit(lambda: self._publish_events(events))

    def rollback(self):
        """Discard collected events"""
        if self._events:
            logger.warning(f"Rolling back transaction, discarding {len(self._events)} events")
        self._events.clear()

    def _publish_events(self, events: List[DomainEvent]):
        bus = self._bus
        if bus is None:
            from shared.application.message_bus import message_bus as bus

        logger.info(f"Publishing {len(events)} domain events after commit")

        try:
            bus.publish_events(events)
        except Exception as e:
            # Rows are already committed; monitoring picks this up from the log.
            logger.error(f"Error publishing events: {e}", exc_info=True)
