"""
Referrals app - referral links, platform rates and referrer commissions.

- ReferralSettings: per-category service fee and commission rates
- ReferralTracking: a click on a referral link, converted on booking
- ReferralCommission: the referrer's earning for a converted booking

Commissions are awarded by a receiver of bookings.signals.booking_confirmed
(see handlers.py), connected in ReferralsConfig.ready().
"""
