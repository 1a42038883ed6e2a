"""Escrow app package.

Holds the append-only ledger of guest payments, service fees, host payouts
and refunds, the payment authorization helpers and the release scheduler
that pays hosts once their escrow release date has passed.
"""
