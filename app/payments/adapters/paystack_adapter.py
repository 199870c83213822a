"""
Paystack API adapter for card collection and payouts.

Card payments use the popup flow: the server initializes a transaction
(access code + authorization URL), the client opens the popup, and the
server later re-queries ``/transaction/verify/{reference}`` rather than
trusting what the browser reports. Payouts go through transfer recipients
and transfers; their outcome arrives on the webhook.

Configuration (via settings):
- PAYSTACK_SECRET_KEY: Secret key (bearer auth and webhook HMAC key)
- PAYSTACK_BASE_URL: API root (default: https://api.paystack.co)
- PAYSTACK_CALLBACK_URL: Where Paystack redirects after the popup
- PAYOUT_CURRENCY: Transfer currency (default: KES)

Usage:
    from payments.adapters import PaystackAdapter

    init = PaystackAdapter.initialize_transaction(
        email="guest@example.com",
        amount=Decimal("2500.00"),
        reference="ps_3f2a...",
    )

    verification = PaystackAdapter.verify_transaction("ps_3f2a...")
    if verification.is_successful:
        ...

    recipient = PaystackAdapter.create_transfer_recipient(
        name="Akinyi Otieno", account_number="0712345678", bank_code="063",
    )
    transfer = PaystackAdapter.initiate_transfer(
        amount=Decimal("800.00"),
        recipient_code=recipient.recipient_code,
        reference="payout_9b1d...",
        reason="Payout for booking 1c0e...",
    )
"""

from __future__ import annotations

import hashlib
import hmac
import json
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from django.conf import settings

from payments.adapters.base import GatewayAdapter, from_minor_units, to_minor_units
from payments.exceptions import (
    GatewayRequestError,
    InvalidSignatureError,
    PaymentValidationError,
)


# =============================================================================
# Data Types
# =============================================================================


@dataclass
class TransactionInitResult:
    """
    Result of POST /transaction/initialize.

    Attributes:
        reference: Our reference, echoed back by Paystack
        access_code: Code the popup is opened with
        authorization_url: Hosted checkout URL (redirect fallback)
    """

    reference: str
    access_code: str
    authorization_url: str
    raw_response: dict[str, Any] = field(default_factory=dict)


@dataclass
class TransactionVerification:
    """
    Result of GET /transaction/verify/{reference}.

    Attributes:
        reference: Transaction reference
        status: Paystack status (success, failed, abandoned, ongoing, ...)
        amount: Charged amount in major units
        currency: ISO currency code
        paid_at: ISO timestamp string when paid
        channel: card, mobile_money, bank, ...
        gateway_response: Paystack's human-readable outcome
    """

    reference: str
    status: str
    amount: Decimal
    currency: str
    paid_at: str | None = None
    channel: str | None = None
    gateway_response: str | None = None
    raw_response: dict[str, Any] = field(default_factory=dict)

    @property
    def is_successful(self) -> bool:
        return self.status == "success"

    @property
    def is_failed(self) -> bool:
        return self.status in PaystackAdapter.FAILED_TRANSACTION_STATUSES


@dataclass
class TransferRecipientResult:
    recipient_code: str
    raw_response: dict[str, Any] = field(default_factory=dict)


@dataclass
class TransferResult:
    """
    Result of POST /transfer and GET /transfer/verify/{reference}.

    Attributes:
        transfer_code: Paystack transfer code (TRF_xxx)
        reference: Our transfer reference
        status: pending, otp, success, failed, reversed, ...
        reason: Failure reason when Paystack gives one
    """

    transfer_code: str
    reference: str
    status: str
    reason: str | None = None
    raw_response: dict[str, Any] = field(default_factory=dict)

    @property
    def is_successful(self) -> bool:
        return self.status == "success"

    @property
    def is_failed(self) -> bool:
        return self.status in ("failed", "reversed")


# =============================================================================
# Paystack Adapter
# =============================================================================


class PaystackAdapter(GatewayAdapter):
    """
    Adapter for Paystack API operations.

    All methods are classmethods - no instance state is maintained.

    Every Paystack response is an envelope ``{"status": bool, "message",
    "data"}``. A false ``status`` is a rejection and raises
    GatewayRequestError even when the HTTP status is 200.
    """

    gateway = "paystack"

    FAILED_TRANSACTION_STATUSES = frozenset({"failed", "reversed"})

    @classmethod
    def _base_url(cls) -> str:
        return getattr(settings, "PAYSTACK_BASE_URL", "https://api.paystack.co")

    @classmethod
    def _auth_headers(cls) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {settings.PAYSTACK_SECRET_KEY}",
            "Content-Type": "application/json",
        }

    @classmethod
    def _call(
        cls,
        method: str,
        path: str,
        log_context: dict[str, Any],
        payload: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Send a request and unwrap the Paystack envelope."""
        body = cls._request(method, path, log_context, json=payload)
        if not body.get("status"):
            cls.get_logger().error(
                "Paystack returned a failed envelope",
                extra={**log_context, "paystack_message": body.get("message")},
            )
            raise GatewayRequestError(
                body.get("message") or "Paystack request failed",
                gateway=cls.gateway,
                gateway_code="status_false",
            )
        return body.get("data") or {}

    # =========================================================================
    # Collections
    # =========================================================================

    @classmethod
    def initialize_transaction(
        cls,
        email: str,
        amount: Decimal,
        reference: str,
        metadata: dict[str, Any] | None = None,
        callback_url: str | None = None,
    ) -> TransactionInitResult:
        """
        Initialize a popup transaction.

        Raises:
            GatewayUnavailableError: Paystack unreachable
            GatewayRequestError: Paystack rejected the request
        """
        log_context = {
            "operation": "initialize_transaction",
            "reference": reference,
            "amount": str(amount),
        }
        payload: dict[str, Any] = {
            "email": email,
            "amount": to_minor_units(amount),
            "reference": reference,
            "currency": getattr(settings, "PAYOUT_CURRENCY", "KES"),
            "metadata": metadata or {},
        }
        callback_url = callback_url or getattr(settings, "PAYSTACK_CALLBACK_URL", "")
        if callback_url:
            payload["callback_url"] = callback_url

        data = cls._call("POST", "/transaction/initialize", log_context, payload)
        return TransactionInitResult(
            reference=data.get("reference", reference),
            access_code=data.get("access_code", ""),
            authorization_url=data.get("authorization_url", ""),
            raw_response=data,
        )

    @classmethod
    def verify_transaction(cls, reference: str) -> TransactionVerification:
        """
        Query the authoritative outcome of a transaction.

        Raises:
            GatewayUnavailableError: Paystack unreachable
            GatewayRateLimitedError: Paystack answered 429
            GatewayRequestError: Unknown reference or rejected request
        """
        log_context = {"operation": "verify_transaction", "reference": reference}
        data = cls._call("GET", f"/transaction/verify/{reference}", log_context)
        return TransactionVerification(
            reference=data.get("reference", reference),
            status=data.get("status", ""),
            amount=from_minor_units(data.get("amount")),
            currency=data.get("currency", ""),
            paid_at=data.get("paid_at"),
            channel=data.get("channel"),
            gateway_response=data.get("gateway_response"),
            raw_response=data,
        )

    # =========================================================================
    # Transfers
    # =========================================================================

    @classmethod
    def create_transfer_recipient(
        cls,
        name: str,
        account_number: str,
        bank_code: str,
        recipient_type: str = "mobile_money",
    ) -> TransferRecipientResult:
        """Register a payout destination and return its recipient code."""
        log_context = {
            "operation": "create_transfer_recipient",
            "bank_code": bank_code,
            "recipient_type": recipient_type,
        }
        data = cls._call(
            "POST",
            "/transferrecipient",
            log_context,
            {
                "type": recipient_type,
                "name": name,
                "account_number": account_number,
                "bank_code": bank_code,
                "currency": getattr(settings, "PAYOUT_CURRENCY", "KES"),
            },
        )
        recipient_code = data.get("recipient_code")
        if not recipient_code:
            raise GatewayRequestError(
                "Paystack did not return a recipient code",
                gateway=cls.gateway,
            )
        return TransferRecipientResult(recipient_code=recipient_code, raw_response=data)

    @classmethod
    def initiate_transfer(
        cls,
        amount: Decimal,
        recipient_code: str,
        reference: str,
        reason: str,
    ) -> TransferResult:
        """
        Start a transfer from the Paystack balance.

        The reference is ours and is persisted before this call, so a
        timeout can be reconciled with verify_transfer().
        """
        log_context = {
            "operation": "initiate_transfer",
            "reference": reference,
            "amount": str(amount),
        }
        data = cls._call(
            "POST",
            "/transfer",
            log_context,
            {
                "source": "balance",
                "amount": to_minor_units(amount),
                "recipient": recipient_code,
                "reason": reason,
                "reference": reference,
            },
        )
        return cls._transfer_result(data, reference)

    @classmethod
    def verify_transfer(cls, reference: str) -> TransferResult:
        """Query the current status of a transfer by our reference."""
        log_context = {"operation": "verify_transfer", "reference": reference}
        data = cls._call("GET", f"/transfer/verify/{reference}", log_context)
        return cls._transfer_result(data, reference)

    @staticmethod
    def _transfer_result(data: dict[str, Any], reference: str) -> TransferResult:
        return TransferResult(
            transfer_code=data.get("transfer_code", ""),
            reference=data.get("reference", reference),
            status=data.get("status", ""),
            reason=data.get("reason"),
            raw_response=data,
        )

    # =========================================================================
    # Webhook Verification
    # =========================================================================

    @classmethod
    def compute_signature(cls, payload: bytes) -> str:
        return hmac.new(
            settings.PAYSTACK_SECRET_KEY.encode(),
            payload,
            hashlib.sha512,
        ).hexdigest()

    @classmethod
    def verify_webhook_signature(
        cls,
        payload: bytes,
        signature: str | None,
    ) -> dict[str, Any]:
        """
        Verify the ``x-paystack-signature`` header and parse the event.

        Args:
            payload: Raw request body bytes
            signature: Header value (hex HMAC-SHA512 of the body)

        Returns:
            Parsed event dict

        Raises:
            InvalidSignatureError: Header missing or not matching
            PaymentValidationError: Signed body is not a JSON object
        """
        if not signature:
            raise InvalidSignatureError(
                "Missing webhook signature",
                details={"header": "x-paystack-signature"},
            )

        expected = cls.compute_signature(payload)
        received = signature.encode("utf-8", "surrogateescape")
        if not hmac.compare_digest(expected.encode(), received):
            raise InvalidSignatureError("Invalid webhook signature")

        try:
            event = json.loads(payload)
        except ValueError as e:
            raise PaymentValidationError(
                "Webhook body is not valid JSON",
                details={"error": str(e)},
            ) from e
        if not isinstance(event, dict):
            raise PaymentValidationError("Webhook body must be a JSON object")
        return event
