"""
Booking lifecycle signals.

booking_confirmed is sent once, right after a confirmed Booking row is
created (paid or free). Receivers get the booking as ``booking``.

Usage:
    from django.dispatch import receiver
    from bookings.signals import booking_confirmed

    @receiver(booking_confirmed)
    def award_commission(sender, booking, **kwargs):
        ...
"""

from django.dispatch import Signal

booking_confirmed = Signal()
