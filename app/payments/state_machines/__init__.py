"""
State machine enums for payment models.
"""

from payments.state_machines.states import (
    TERMINAL_PAYOUT_STATES,
    BankVerificationStatus,
    PaymentProvider,
    PayoutState,
    PendingPaymentStatus,
    RecipientType,
    WebhookEventStatus,
)

__all__ = [
    "BankVerificationStatus",
    "PaymentProvider",
    "PayoutState",
    "PendingPaymentStatus",
    "RecipientType",
    "TERMINAL_PAYOUT_STATES",
    "WebhookEventStatus",
]
