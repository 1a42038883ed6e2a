"""Bookings app package.

This app encapsulates the booking lifecycle: availability checks, pricing,
the booking store and the services that create, confirm, cancel and
complete bookings. Creation locks the listing row and re-checks the
calendar inside one database transaction so overlapping requests cannot
both succeed.
"""
