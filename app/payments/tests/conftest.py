"""
Pytest fixtures for payment tests.

Gateways are replaced with MagicMock adapters installed through
set_gateway_adapter(), so service code runs unchanged and tests set the
adapter's return values with the real result dataclasses.

Usage:
    def test_stk_push(mpesa_gateway, booking_data):
        mpesa_gateway.stk_push.return_value = StkPushResult(...)
        payment = PaymentInitiationService.initiate_mpesa_payment(...)
"""

from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest
from rest_framework.test import APIClient

from authentication.tests.factories import UserFactory
from bookings.tests.factories import booking_payload
from listings.tests.factories import TripFactory
from payments.services import (
    PaymentConfirmationService,
    PaymentInitiationService,
    PayoutProcessor,
    PayoutReconciliationService,
)
from payments.state_machines import PaymentProvider
from payments.tests.factories import BankDetailsFactory, PendingPaymentFactory

GATEWAY_SERVICES = (
    PaymentInitiationService,
    PaymentConfirmationService,
    PayoutProcessor,
    PayoutReconciliationService,
)


def _install_adapter(provider):
    adapter = MagicMock(name=f"{provider}_adapter")
    for service in GATEWAY_SERVICES:
        service.set_gateway_adapter(provider, adapter)
    return adapter


def _restore_adapter(provider):
    for service in GATEWAY_SERVICES:
        service.set_gateway_adapter(provider, None)


# =============================================================================
# Gateway Fixtures
# =============================================================================


@pytest.fixture
def mpesa_gateway():
    """Fake Daraja adapter for every payment service."""
    adapter = _install_adapter(PaymentProvider.MPESA)
    yield adapter
    _restore_adapter(PaymentProvider.MPESA)


@pytest.fixture
def paystack_gateway():
    """Fake Paystack adapter for every payment service."""
    adapter = _install_adapter(PaymentProvider.PAYSTACK)
    yield adapter
    _restore_adapter(PaymentProvider.PAYSTACK)


@pytest.fixture
def no_poll():
    """Stop initiation from queueing the status poller."""
    with patch("payments.tasks.poll_pending_payment.delay") as mock_delay:
        yield mock_delay


# =============================================================================
# User and Listing Fixtures
# =============================================================================


@pytest.fixture
def user(db):
    return UserFactory()


@pytest.fixture
def staff_user(db):
    return UserFactory(is_staff=True)


@pytest.fixture
def host(db):
    return UserFactory(full_name="Wanjiru Kamau")


@pytest.fixture
def trip(host):
    return TripFactory(created_by=host)


@pytest.fixture
def verified_bank_details(host):
    return BankDetailsFactory(user=host, account_number="0712345678")


@pytest.fixture
def booking_data(trip):
    return booking_payload(trip)


# =============================================================================
# Payment Fixtures
# =============================================================================


@pytest.fixture
def mpesa_payment(booking_data):
    """Pending 1500 KES M-Pesa payment for the trip."""
    return PendingPaymentFactory(
        checkout_reference="ws_CO_191220191020363925",
        booking_payload=booking_data,
    )


@pytest.fixture
def card_payment(booking_data):
    """Pending 1000 KES Paystack payment for the trip."""
    return PendingPaymentFactory(
        checkout_reference="ref_abc",
        merchant_request_id="",
        provider=PaymentProvider.PAYSTACK,
        amount=Decimal("1000.00"),
        booking_payload=booking_data,
    )


@pytest.fixture
def api_client():
    return APIClient()
