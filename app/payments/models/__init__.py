"""
Payment domain models.

- PendingPayment: An initiated charge awaiting gateway confirmation
- Payout: Money transfers to hosts and referrers
- BankDetails: A user's payout destination, with verification status
- TransferRecipient: Cached Paystack recipient per user
- WebhookEvent: Gateway webhook tracking for idempotent processing
"""

from payments.models.bank_details import BankDetails, TransferRecipient
from payments.models.payout import Payout
from payments.models.pending_payment import PendingPayment
from payments.models.webhook_event import WebhookEvent

__all__ = [
    "BankDetails",
    "PendingPayment",
    "Payout",
    "TransferRecipient",
    "WebhookEvent",
]
