"""
M-Pesa Daraja adapter for STK push collections.

Flow:
    1. OAuth client-credentials token (cached until shortly before expiry)
    2. STK push: Safaricom prompts the payer's phone for their PIN
    3. The outcome arrives on our callback URL; when it does not, the
       status can be queried with the CheckoutRequestID

Configuration (via settings):
- MPESA_ENVIRONMENT: "sandbox" or "production"
- MPESA_CONSUMER_KEY / MPESA_CONSUMER_SECRET: App credentials
- MPESA_SHORTCODE: Paybill / till number
- MPESA_PASSKEY: Lipa na M-Pesa Online passkey
- MPESA_CALLBACK_URL: Public URL of the callback endpoint
- MPESA_CALLBACK_TOKEN: Optional shared secret appended as ?token=

Usage:
    from payments.adapters import MpesaAdapter

    push = MpesaAdapter.stk_push(
        phone_number="254712345678",
        amount=Decimal("1500"),
        account_reference="Safari booking",
        description="Trip booking",
    )
    push.checkout_request_id  # "ws_CO_191220191020363925"

    status = MpesaAdapter.stk_query(push.checkout_request_id)
    if status.is_pending:
        ...
"""

from __future__ import annotations

import base64
from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any
from urllib.parse import urlencode

from django.conf import settings
from django.core.cache import cache

from payments.adapters.base import GatewayAdapter, mask_phone
from payments.exceptions import GatewayRequestError, GatewayUnavailableError

MPESA_BASE_URLS = {
    "sandbox": "https://sandbox.safaricom.co.ke",
    "production": "https://api.safaricom.co.ke",
}

TOKEN_CACHE_KEY = "mpesa:access_token"

# Daraja answers the STK query with HTTP 500 and this code while the
# payer has not yet responded to the prompt.
STILL_PROCESSING_CODE = "500.001.1001"


# =============================================================================
# Data Types
# =============================================================================


@dataclass
class StkPushResult:
    """
    Result of an accepted STK push request.

    Attributes:
        merchant_request_id: Safaricom's request id
        checkout_request_id: Correlates the push with its callback
        response_code: "0" when the request was accepted
        customer_message: Text Safaricom suggests showing the payer
    """

    merchant_request_id: str
    checkout_request_id: str
    response_code: str
    customer_message: str = ""
    raw_response: dict[str, Any] = field(default_factory=dict)


@dataclass
class StkQueryResult:
    """
    Result of an STK push status query.

    ``result_code`` is None while the payer has not answered the prompt.
    "0" means paid; anything else is a final failure (1032 cancelled by
    user, 1037 timeout, 2001 wrong PIN, ...).
    """

    checkout_request_id: str
    result_code: str | None
    result_desc: str = ""
    raw_response: dict[str, Any] = field(default_factory=dict)

    @property
    def is_pending(self) -> bool:
        return self.result_code is None

    @property
    def is_successful(self) -> bool:
        return self.result_code == "0"


# =============================================================================
# M-Pesa Adapter
# =============================================================================


class MpesaAdapter(GatewayAdapter):
    """Adapter for Safaricom Daraja API operations."""

    gateway = "mpesa"

    @classmethod
    def _base_url(cls) -> str:
        environment = getattr(settings, "MPESA_ENVIRONMENT", "sandbox")
        return MPESA_BASE_URLS.get(environment, MPESA_BASE_URLS["sandbox"])

    @classmethod
    def _auth_headers(cls) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {cls.get_access_token()}",
            "Content-Type": "application/json",
        }

    # =========================================================================
    # Authentication
    # =========================================================================

    @classmethod
    def get_access_token(cls) -> str:
        """
        Return a cached OAuth token, fetching a new one when needed.

        Daraja tokens live for an hour; the cache entry expires a minute
        early so a request never goes out with a token about to lapse.
        """
        token = cache.get(TOKEN_CACHE_KEY)
        if token:
            return token

        body = cls._request(
            "GET",
            "/oauth/v1/generate",
            {"operation": "oauth_token"},
            params={"grant_type": "client_credentials"},
            headers={},
            auth=(settings.MPESA_CONSUMER_KEY, settings.MPESA_CONSUMER_SECRET),
        )
        token = body.get("access_token")
        if not token:
            raise GatewayRequestError(
                "M-Pesa did not return an access token",
                gateway=cls.gateway,
            )
        expires_in = int(body.get("expires_in") or 3599)
        cache.set(TOKEN_CACHE_KEY, token, timeout=max(expires_in - 60, 60))
        return token

    @staticmethod
    def timestamp(now: datetime | None = None) -> str:
        return (now or datetime.now()).strftime("%Y%m%d%H%M%S")

    @staticmethod
    def password(timestamp: str) -> str:
        """base64(shortcode + passkey + timestamp), as Daraja requires."""
        raw = f"{settings.MPESA_SHORTCODE}{settings.MPESA_PASSKEY}{timestamp}"
        return base64.b64encode(raw.encode()).decode()

    @staticmethod
    def callback_url() -> str:
        url = settings.MPESA_CALLBACK_URL
        token = getattr(settings, "MPESA_CALLBACK_TOKEN", "")
        if token:
            separator = "&" if "?" in url else "?"
            url = f"{url}{separator}{urlencode({'token': token})}"
        return url

    # =========================================================================
    # STK Push
    # =========================================================================

    @classmethod
    def stk_push(
        cls,
        phone_number: str,
        amount: Decimal,
        account_reference: str,
        description: str,
    ) -> StkPushResult:
        """
        Send an STK push prompt to the payer's phone.

        Args:
            phone_number: Normalized 2547XXXXXXXX number
            amount: Whole shillings (rounded half-up)
            account_reference: Shown on the payer's statement (max 12 chars)
            description: Transaction description (max 13 chars)

        Raises:
            GatewayUnavailableError: Daraja unreachable or 5xx
            GatewayRequestError: Request rejected (ResponseCode != "0")
        """
        timestamp = cls.timestamp()
        log_context = {
            "operation": "stk_push",
            "phone_number": mask_phone(phone_number),
            "amount": str(amount),
        }
        body = cls._request(
            "POST",
            "/mpesa/stkpush/v1/processrequest",
            log_context,
            json={
                "BusinessShortCode": settings.MPESA_SHORTCODE,
                "Password": cls.password(timestamp),
                "Timestamp": timestamp,
                "TransactionType": "CustomerPayBillOnline",
                "Amount": int(Decimal(amount).quantize(Decimal("1"), rounding=ROUND_HALF_UP)),
                "PartyA": phone_number,
                "PartyB": settings.MPESA_SHORTCODE,
                "PhoneNumber": phone_number,
                "CallBackURL": cls.callback_url(),
                "AccountReference": account_reference[:12],
                "TransactionDesc": description[:13],
            },
        )

        response_code = str(body.get("ResponseCode", ""))
        if response_code != "0" or not body.get("CheckoutRequestID"):
            raise GatewayRequestError(
                body.get("ResponseDescription") or "STK push was not accepted",
                gateway=cls.gateway,
                gateway_code=response_code or None,
            )

        return StkPushResult(
            merchant_request_id=body.get("MerchantRequestID", ""),
            checkout_request_id=body["CheckoutRequestID"],
            response_code=response_code,
            customer_message=body.get("CustomerMessage", ""),
            raw_response=body,
        )

    @classmethod
    def stk_query(cls, checkout_request_id: str) -> StkQueryResult:
        """
        Query the outcome of an STK push.

        Returns a pending result while the payer has not answered.

        Raises:
            GatewayUnavailableError: Daraja unreachable or 5xx
            GatewayRateLimitedError: Daraja answered 429
            GatewayRequestError: Unknown CheckoutRequestID or rejected request
        """
        timestamp = cls.timestamp()
        log_context = {
            "operation": "stk_query",
            "checkout_request_id": checkout_request_id,
        }
        try:
            body = cls._request(
                "POST",
                "/mpesa/stkpushquery/v1/query",
                log_context,
                json={
                    "BusinessShortCode": settings.MPESA_SHORTCODE,
                    "Password": cls.password(timestamp),
                    "Timestamp": timestamp,
                    "CheckoutRequestID": checkout_request_id,
                },
            )
        except GatewayUnavailableError as e:
            if e.gateway_code == STILL_PROCESSING_CODE:
                return StkQueryResult(
                    checkout_request_id=checkout_request_id,
                    result_code=None,
                    result_desc=e.message,
                )
            raise

        result_code = body.get("ResultCode")
        return StkQueryResult(
            checkout_request_id=checkout_request_id,
            result_code=None if result_code is None else str(result_code),
            result_desc=body.get("ResultDesc", ""),
            raw_response=body,
        )
