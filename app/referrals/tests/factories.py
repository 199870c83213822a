"""
Factory Boy factories for referral models.
"""

import uuid
from decimal import Decimal

import factory
from django.utils import timezone

from authentication.tests.factories import UserFactory
from listings.models import ItemType
from referrals.models import CommissionStatus, ReferralCommission, ReferralTracking


class ReferralTrackingFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = ReferralTracking

    referrer = factory.SubFactory(UserFactory)
    item_id = factory.LazyFunction(uuid.uuid4)
    item_type = ItemType.TRIP
    referral_type = "booking"


class ReferralCommissionFactory(factory.django.DjangoModelFactory):
    """A paid 10 KES commission on a 1000 KES booking (20% fee, 5% commission)."""

    class Meta:
        model = ReferralCommission

    referrer = factory.SubFactory(UserFactory)
    booking = factory.SubFactory("bookings.tests.factories.BookingFactory")
    booking_amount = Decimal("1000.00")
    service_fee_rate = Decimal("20.00")
    commission_rate = Decimal("5.00")
    commission_amount = Decimal("10.00")
    status = CommissionStatus.PAID
    paid_at = factory.LazyFunction(timezone.now)
