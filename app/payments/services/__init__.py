"""
Payment services for coordinating payment operations.

This module provides:
- PaymentInitiationService: Starts M-Pesa STK pushes and Paystack charges
- PaymentConfirmationService: Applies callbacks, verifications and queries
- StatusPoller: Watches a pending payment until it resolves or times out
- PayoutProcessor: Claims due payouts and initiates their transfers
- PayoutStateService: Applies transfer outcomes to payouts and bookings
- WithdrawalService: Balance checks and manual withdrawals
- PayoutReconciliationService / HostPayoutReconciliationService: Repair sweeps

Usage:
    from payments.services import PaymentInitiationService

    payment = PaymentInitiationService.initiate_mpesa_payment(
        phone_number="0712345678",
        amount=Decimal("1500"),
        booking_payload=payload,
    )

    # Confirm from the Daraja callback
    from payments.services import PaymentConfirmationService

    result = PaymentConfirmationService.handle_mpesa_callback(request.data)

    # Run the scheduled payout batch
    from payments.services import PayoutProcessor

    summary = PayoutProcessor.process_scheduled()
"""

from payments.services.confirmation import (
    CardVerificationResult,
    ConfirmationResult,
    PaymentConfirmationService,
)
from payments.services.initiation import (
    PaymentInitiationService,
    generate_card_reference,
    normalize_phone,
)
from payments.services.payout_processor import PayoutAttempt, PayoutProcessor
from payments.services.payout_state import PayoutStateService
from payments.services.reconciliation import (
    HostPayoutReconciliationService,
    PayoutReconciliationService,
)
from payments.services.status_poller import PollOutcome, PollResult, StatusPoller
from payments.services.withdrawal import WithdrawalService

__all__ = [
    "CardVerificationResult",
    "ConfirmationResult",
    "HostPayoutReconciliationService",
    "PaymentConfirmationService",
    "PaymentInitiationService",
    "PayoutAttempt",
    "PayoutProcessor",
    "PayoutReconciliationService",
    "PayoutStateService",
    "PollOutcome",
    "PollResult",
    "StatusPoller",
    "WithdrawalService",
    "generate_card_reference",
    "normalize_phone",
]
