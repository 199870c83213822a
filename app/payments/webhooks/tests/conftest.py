"""
Pytest fixtures for webhook tests.

Provides fixtures for testing the Paystack webhook view, handlers and
tasks: signed request builders, payouts in flight and WebhookEvent rows
in each processing status.
"""

import hashlib
import hmac
import json
import uuid

import pytest
from django.test import RequestFactory
from django.utils import timezone

from bookings.models import PayoutStatus
from bookings.tests.factories import BookingFactory
from payments.state_machines import PayoutState, WebhookEventStatus
from payments.tests.factories import PayoutFactory, WebhookEventFactory, transfer_event

WEBHOOK_SECRET = "sk_test_webhook_secret"


# =============================================================================
# Request Fixtures
# =============================================================================


@pytest.fixture
def webhook_secret(settings):
    settings.PAYSTACK_SECRET_KEY = WEBHOOK_SECRET
    return WEBHOOK_SECRET


def sign(body: bytes, secret: str = WEBHOOK_SECRET) -> str:
    return hmac.new(secret.encode(), body, hashlib.sha512).hexdigest()


@pytest.fixture
def rf():
    """Request factory for creating test requests."""
    return RequestFactory()


@pytest.fixture
def signed_request(rf, webhook_secret):
    """Build a POST to the webhook endpoint signed with the test secret."""

    def _build(payload, signature=None, raw_body=None):
        body = raw_body if raw_body is not None else json.dumps(payload).encode()
        headers = {}
        if signature is not False:
            headers["HTTP_X_PAYSTACK_SIGNATURE"] = signature or sign(body)
        return rf.post(
            "/api/v1/payments/webhooks/paystack/",
            data=body,
            content_type="application/json",
            **headers,
        )

    return _build


# =============================================================================
# Payout Fixtures
# =============================================================================


@pytest.fixture
def processing_payout(db):
    """Booking payout whose transfer has been initiated."""
    booking = BookingFactory(payout_status=PayoutStatus.PROCESSING)
    return PayoutFactory(
        recipient=booking.host,
        booking=booking,
        state=PayoutState.PROCESSING,
        reference=f"payout_{uuid.uuid4().hex}",
        transfer_code=f"TRF_{uuid.uuid4().hex[:12]}",
    )


# =============================================================================
# Webhook Event Fixtures
# =============================================================================


@pytest.fixture
def pending_webhook_event(processing_payout):
    """transfer.success for the processing payout, not yet handled."""
    return WebhookEventFactory(
        payload=transfer_event(
            "transfer.success",
            reference=processing_payout.reference,
            transfer_code=processing_payout.transfer_code,
        ),
    )


@pytest.fixture
def processed_webhook_event(db):
    return WebhookEventFactory(
        status=WebhookEventStatus.PROCESSED,
        processed_at=timezone.now(),
        retry_count=1,
    )


@pytest.fixture
def failed_webhook_event(db):
    return WebhookEventFactory(
        status=WebhookEventStatus.FAILED,
        error_message="Previous processing failed",
        retry_count=1,
    )
