"""Listings app package.

Holds the host-owned listing model and its add-ons. Listings are edited
elsewhere; the booking and escrow apps only read pricing terms, the
availability calendar and the cancellation policy from here.
"""
