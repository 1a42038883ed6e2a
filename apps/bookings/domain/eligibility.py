"""
Booking eligibility

Synchronous predicate over already-committed user and listing state. The
booking flow asks it before pricing or charging anything.
"""

from typing import Optional


def booking_ineligibility_reason(user, listing) -> Optional[str]:
    """Why `user` may not book `listing`, or None when they may."""
    if user is None or not getattr(user, 'is_active', False):
        return "Account is not active"

    if getattr(listing, 'host_id', None) is not None and listing.host_id == user.pk:
        return "Hosts cannot book their own listing"

    if getattr(listing, 'status', 'Live') != 'Live':
        return "Listing is not open for booking"

    if not (getattr(user, 'is_email_verified', False) or getattr(user, 'is_phone_verified', False)):
        return "Verify your email or phone number before booking"

    if getattr(listing, 'requires_identity_verification', False) and not getattr(user, 'is_identity_verified', False):
        return "This host requires identity verification before booking"

    return None


def is_eligible_to_book(user, listing) -> bool:
    return booking_ineligibility_reason(user, listing) is None
