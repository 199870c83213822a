"""
Fixtures for booking tests.
"""

import pytest
from rest_framework.test import APIClient

from authentication.tests.factories import UserFactory
from bookings.tests.factories import booking_payload
from listings.tests.factories import TripFactory
from payments.tests.factories import BankDetailsFactory


@pytest.fixture
def host(db):
    return UserFactory(full_name="Wanjiru Kamau")


@pytest.fixture
def trip(host):
    return TripFactory(created_by=host)


@pytest.fixture
def verified_bank_details(host):
    return BankDetailsFactory(user=host)


@pytest.fixture
def payload(trip):
    return booking_payload(trip)


@pytest.fixture
def api_client():
    return APIClient()
