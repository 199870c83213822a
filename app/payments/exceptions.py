"""
Payment-specific exceptions for settlement and payout operations.

Exception Hierarchy:
    PaymentError (base for payment domain)
    ├── PaymentNotFoundError - PendingPayment / Payout lookup failures
    ├── PaymentValidationError - Payment validation failures
    │   └── InvalidAmountError - Non-positive amount on a paid flow
    ├── InsufficientBalanceError - Withdrawal exceeds available balance
    ├── NoVerifiedBankDetailsError - Payout destination not verified
    └── PaymentProcessingError - Payment processing failures
        └── GatewayError - Base for M-Pesa / Paystack errors
            ├── GatewayRequestError - Non-success envelope (permanent)
            ├── GatewayRateLimitedError - Throttled (transient, retry later)
            └── GatewayUnavailableError - Network / 5xx / timeout (transient)

    InvalidSignatureError - Webhook authentication failure
    LockAcquisitionError - Distributed lock timeout (inherits ConflictError)

HTTP status:
    Views render these with core.views.error_response. Classes that set
    http_status override the generic mapping (404 not found, 401 bad
    signature, 429 rate limited, 502 gateway); the rest answer 400.

Usage:
    from payments.exceptions import GatewayError, InsufficientBalanceError

    try:
        PaystackAdapter.initiate_transfer(...)
    except GatewayError as e:
        if e.is_retryable:
            # leave the payout processing for reconciliation
            ...

    raise InsufficientBalanceError.for_available(Decimal("120.00"))
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

from core.exceptions import BaseApplicationError, ConflictError

if TYPE_CHECKING:
    from typing import Any


# =============================================================================
# Payment Domain Exceptions
# =============================================================================


class PaymentError(BaseApplicationError):
    """
    Base exception for all payment operations.

    Example:
        try:
            WithdrawalService.request_withdrawal(user, amount, "host")
        except PaymentError as e:
            return Response(e.to_dict(), status=400)
    """

    default_error_code: str = "PAYMENT_ERROR"


class PaymentNotFoundError(PaymentError):
    """Raised when a PendingPayment or Payout cannot be found."""

    default_error_code: str = "PAYMENT_NOT_FOUND"
    http_status: int = 404


class PaymentValidationError(PaymentError):
    """
    Raised when payment input validation fails.

    Use for:
    - Malformed phone numbers or emails
    - Missing booking payload fields
    - Unknown payout types
    """

    default_error_code: str = "PAYMENT_VALIDATION_ERROR"


class InvalidAmountError(PaymentValidationError):
    """Raised when a paid flow is started with an amount of zero or less."""

    default_error_code: str = "INVALID_AMOUNT"


class InsufficientBalanceError(PaymentError):
    """
    Raised when a withdrawal asks for more than the available balance.

    The message is shown verbatim to the caller, so it carries the
    available amount formatted to two decimal places.
    """

    default_error_code: str = "INSUFFICIENT_BALANCE"

    @classmethod
    def for_available(
        cls, available: Decimal, currency: str = "KES"
    ) -> InsufficientBalanceError:
        available = Decimal(available).quantize(Decimal("0.01"))
        return cls(
            f"Insufficient balance. Available: {currency} {available}",
            details={"available": str(available), "currency": currency},
        )


class NoVerifiedBankDetailsError(PaymentError):
    """Raised when a payout is requested for a user without verified bank details."""

    default_error_code: str = "NO_VERIFIED_BANK_DETAILS"

    def __init__(
        self,
        message: str = (
            "No verified bank details found. "
            "Please add and verify your bank details first."
        ),
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, error_code=error_code, details=details)


class PaymentProcessingError(PaymentError):
    """Raised when payment processing fails."""

    default_error_code: str = "PAYMENT_PROCESSING_ERROR"


# =============================================================================
# Gateway Exceptions
# =============================================================================


class GatewayError(PaymentProcessingError):
    """
    Base exception for payment gateway errors (M-Pesa Daraja, Paystack).

    Attributes:
        gateway: "mpesa" or "paystack"
        gateway_code: Gateway-specific code (HTTP status, ResultCode, ...)
        is_retryable: Whether the same call may succeed later

    Example:
        except GatewayError as e:
            if e.is_retryable:
                process_scheduled_payouts.apply_async(countdown=backoff_delay(n))
            else:
                payout.fail(reason=e.message)
    """

    default_error_code: str = "GATEWAY_ERROR"
    http_status: int = 502
    is_retryable: bool = False

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        gateway: str | None = None,
        gateway_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if gateway:
            details["gateway"] = gateway
        if gateway_code:
            details["gateway_code"] = gateway_code
        super().__init__(message, error_code=error_code, details=details)
        self.gateway = gateway
        self.gateway_code = gateway_code


class GatewayRequestError(GatewayError):
    """
    The gateway answered but rejected the request.

    Paystack returns ``{"status": false, "message": ...}`` and Daraja
    returns an ``errorCode`` for bad credentials, unknown recipients or
    invalid amounts. Retrying the same request will not help.
    """

    default_error_code: str = "GATEWAY_REQUEST_REJECTED"
    is_retryable: bool = False


class GatewayRateLimitedError(GatewayError):
    """
    The gateway (or our own query throttle) refused the call for now.

    Surfaced separately from a failed payment so the payer is told to
    check their history later rather than that the payment failed.

    Attributes:
        retry_after: Seconds until the next call is allowed, when known
    """

    default_error_code: str = "GATEWAY_RATE_LIMITED"
    http_status: int = 429
    is_retryable: bool = True

    def __init__(self, message: str, retry_after: float | None = None, **kwargs):
        super().__init__(message, **kwargs)
        self.retry_after = retry_after
        if retry_after is not None:
            self.details["retry_after"] = round(retry_after, 2)


class GatewayUnavailableError(GatewayError):
    """
    The gateway could not be reached or answered with a server error.

    Covers connection failures, timeouts and 5xx responses. A timed-out
    transfer may still have been accepted, which is why payouts are left
    ``processing`` for reconciliation instead of being failed.
    """

    default_error_code: str = "GATEWAY_UNAVAILABLE"
    is_retryable: bool = True


# =============================================================================
# Webhook Exceptions
# =============================================================================


class InvalidSignatureError(PaymentError):
    """Raised when a webhook signature is missing or does not match."""

    default_error_code: str = "INVALID_SIGNATURE"
    http_status: int = 401


# =============================================================================
# Locking Exceptions
# =============================================================================


class LockAcquisitionError(ConflictError):
    """Raised when a distributed lock cannot be acquired within its timeout."""

    default_error_code: str = "LOCK_ACQUISITION_FAILED"


# =============================================================================
# Exports
# =============================================================================

__all__ = [
    # Payment domain
    "PaymentError",
    "PaymentNotFoundError",
    "PaymentValidationError",
    "InvalidAmountError",
    "InsufficientBalanceError",
    "NoVerifiedBankDetailsError",
    "PaymentProcessingError",
    # Gateways
    "GatewayError",
    "GatewayRequestError",
    "GatewayRateLimitedError",
    "GatewayUnavailableError",
    # Webhooks
    "InvalidSignatureError",
    # Locking
    "LockAcquisitionError",
]
