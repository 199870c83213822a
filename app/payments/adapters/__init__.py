"""
Payment adapters for external gateways.

All gateway API calls go through these adapters to ensure consistent
error handling, timeouts and observability:

- PaystackAdapter: card collections, transfer recipients, transfers
- MpesaAdapter: Daraja OAuth, STK push and STK status query

Usage:
    from payments.adapters import MpesaAdapter, PaystackAdapter

    push = MpesaAdapter.stk_push(
        phone_number="254712345678",
        amount=Decimal("1500"),
        account_reference="Safari",
        description="Booking",
    )
"""

from payments.adapters.base import (
    GatewayAdapter,
    backoff_delay,
    from_minor_units,
    is_retryable_gateway_error,
    mask_phone,
    to_minor_units,
)
from payments.adapters.mpesa_adapter import MpesaAdapter, StkPushResult, StkQueryResult
from payments.adapters.paystack_adapter import (
    PaystackAdapter,
    TransactionInitResult,
    TransactionVerification,
    TransferRecipientResult,
    TransferResult,
)

__all__ = [
    "GatewayAdapter",
    "MpesaAdapter",
    "PaystackAdapter",
    "StkPushResult",
    "StkQueryResult",
    "TransactionInitResult",
    "TransactionVerification",
    "TransferRecipientResult",
    "TransferResult",
    "backoff_delay",
    "from_minor_units",
    "is_retryable_gateway_error",
    "mask_phone",
    "to_minor_units",
]
