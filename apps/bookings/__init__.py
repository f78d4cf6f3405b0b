"""Bookings app package.

This app encapsulates the booking domain: booking requests, the owner
accept/reject flow and the availability resolver that keeps confirmed
stays from overlapping. When a booking is confirmed, competing pending
requests for the same dates are rejected automatically.
"""
