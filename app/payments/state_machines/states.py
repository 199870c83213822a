"""
State enums for payment models.

These are Django TextChoices used as FSMField choices and for admin
filtering.

State Machines Overview:

PendingPayment:
    pending → completed
    pending → failed
    (completed and failed are terminal)

Payout:
    pending → scheduled → processing → completed
    pending/scheduled → processing (claimed by a run or a withdrawal)
    pending/scheduled/processing → failed
    (completed and failed are terminal)
"""

from django.db import models


class PaymentProvider(models.TextChoices):
    MPESA = "mpesa", "M-Pesa"
    PAYSTACK = "paystack", "Paystack"


class PendingPaymentStatus(models.TextChoices):
    """
    States for a PendingPayment.

    Only a gateway-sourced signal (callback, verify, status query) moves a
    payment out of PENDING. A cancelled popup or an expired poll does not.
    """

    PENDING = "pending", "Pending"
    COMPLETED = "completed", "Completed"
    FAILED = "failed", "Failed"


class PayoutState(models.TextChoices):
    """
    States for the Payout model lifecycle.

    Terminal states: COMPLETED, FAILED

    State Flow:
        PENDING → PROCESSING → COMPLETED (manual withdrawal)
        SCHEDULED → PROCESSING → COMPLETED (booking payout)
        any non-terminal → FAILED
    """

    PENDING = "pending", "Pending"
    SCHEDULED = "scheduled", "Scheduled"
    PROCESSING = "processing", "Processing"
    COMPLETED = "completed", "Completed"
    FAILED = "failed", "Failed"


TERMINAL_PAYOUT_STATES = frozenset({PayoutState.COMPLETED, PayoutState.FAILED})


class RecipientType(models.TextChoices):
    """Who a payout goes to. Withdrawal requests may say "commission" for referrer."""

    HOST = "host", "Host"
    REFERRER = "referrer", "Referrer"

    @classmethod
    def normalize(cls, value: str) -> str:
        """
        Raises:
            ValueError: If the value is not a known recipient type
        """
        value = (value or "").strip().lower()
        if value == "commission":
            return cls.REFERRER
        if value not in cls.values:
            raise ValueError(f"Unknown payout type: {value!r}")
        return value


class BankVerificationStatus(models.TextChoices):
    """Review status of a user's payout destination. Only VERIFIED receives money."""

    PENDING = "pending", "Pending"
    VERIFIED = "verified", "Verified"
    REJECTED = "rejected", "Rejected"


class WebhookEventStatus(models.TextChoices):
    """
    Processing status for WebhookEvent.

    State Flow:
        PENDING → PROCESSING → PROCESSED
        PENDING → PROCESSING → FAILED (can retry)
    """

    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    PROCESSED = "processed", "Processed"
    FAILED = "failed", "Failed"


__all__ = [
    "BankVerificationStatus",
    "PaymentProvider",
    "PayoutState",
    "PendingPaymentStatus",
    "RecipientType",
    "TERMINAL_PAYOUT_STATES",
    "WebhookEventStatus",
]
