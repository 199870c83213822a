"""
Receivers for booking lifecycle signals.

award_referral_commission runs for every confirmed booking; bookings
without a referral tracking id are ignored.
"""

from __future__ import annotations

import logging

from django.dispatch import receiver

from bookings.signals import booking_confirmed

from referrals.services import ReferralCommissionService

logger = logging.getLogger(__name__)


@receiver(booking_confirmed, dispatch_uid="referrals.award_referral_commission")
def award_referral_commission(sender, booking, **kwargs):
    result = ReferralCommissionService.award_for_booking(booking)
    if not result.success:
        logger.info(
            "No referral commission for booking",
            extra={"booking_id": str(booking.id), "reason": result.error_code},
        )
    return result
