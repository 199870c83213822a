"""
Fixtures for referral tests.
"""

import pytest
from rest_framework.test import APIClient

from authentication.tests.factories import UserFactory
from referrals.tests.factories import ReferralTrackingFactory


@pytest.fixture
def referrer(db):
    return UserFactory(email="jane.doe@example.com")


@pytest.fixture
def tracking(referrer):
    return ReferralTrackingFactory(referrer=referrer)


@pytest.fixture
def admin_user(db):
    return UserFactory(is_staff=True)


@pytest.fixture
def api_client():
    return APIClient()
