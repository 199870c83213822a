"""
Bookings app - confirmed bookings and their settlement split.

A Booking exists only once its payment is confirmed (or immediately for
free bookings). It records the service fee and host payout computed at
creation and tracks the host payout through to completion.

Related apps:
    - payments: PendingPayment confirmation triggers materialization
    - referrals: Commission awarded on booking_confirmed
    - listings: Host resolution by item type
"""
