"""
Factory Boy factories for notification models.
"""

import factory

from authentication.tests.factories import UserFactory
from notifications.models import Notification, NotificationKind


class NotificationFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Notification

    recipient = factory.SubFactory(UserFactory)
    notification_type = NotificationKind.PAYOUT_COMPLETED
    title = "Payout Successful"
    message = factory.Faker("sentence")
    data = factory.LazyFunction(dict)
