"""
Pytest fixtures for gateway adapter tests.

The adapters talk to the gateways through a shared requests.Session;
these fixtures replace Session.request so tests can script responses and
inspect the outgoing calls.

Sections:
    - Settings Fixtures
    - HTTP Fixtures
"""

from unittest.mock import MagicMock, patch

import pytest
import requests


# =============================================================================
# Settings Fixtures
# =============================================================================


@pytest.fixture
def gateway_settings(settings):
    """Known credentials so headers and passwords are predictable."""
    settings.MPESA_ENVIRONMENT = "sandbox"
    settings.MPESA_CONSUMER_KEY = "consumer-key"
    settings.MPESA_CONSUMER_SECRET = "consumer-secret"
    settings.MPESA_SHORTCODE = "174379"
    settings.MPESA_PASSKEY = "passkey"
    settings.MPESA_CALLBACK_URL = "https://api.example.com/api/v1/payments/mpesa/callback/"
    settings.MPESA_CALLBACK_TOKEN = ""
    settings.PAYSTACK_SECRET_KEY = "sk_test_secret"
    settings.PAYSTACK_BASE_URL = "https://api.paystack.co"
    settings.PAYSTACK_CALLBACK_URL = ""
    settings.PAYOUT_CURRENCY = "KES"
    return settings


# =============================================================================
# HTTP Fixtures
# =============================================================================


def make_response(status_code=200, body=None, headers=None):
    """Fake requests.Response. A None body is not JSON."""
    response = MagicMock(name=f"response_{status_code}")
    response.status_code = status_code
    response.headers = headers or {}
    if body is None:
        response.json.side_effect = ValueError("No JSON object could be decoded")
    else:
        response.json.return_value = body
    return response


@pytest.fixture
def http(gateway_settings):
    """
    Patched Session.request.

    Set ``http.return_value = make_response(...)`` or a side_effect list;
    calls are recorded as (method, url) plus keyword arguments.
    """
    with patch.object(requests.Session, "request") as mock_request:
        yield mock_request


@pytest.fixture
def transport_errors():
    return {
        "timeout": requests.exceptions.Timeout("Read timed out"),
        "connection": requests.exceptions.ConnectionError("Connection refused"),
    }
