"""
Manual withdrawals.

A host or referrer asks for part of their settled balance. The request
is checked and reserved in one transaction under a lock on the user's
row, so two concurrent requests cannot both spend the same balance:

1. Lock the user row
2. Require verified bank details
3. Compute the available balance (reservations included)
4. Insert the Payout already PROCESSING with its transfer reference;
   from here on it counts against the balance
5. After commit, create the recipient and initiate the transfer

Balances:
    referrer: PAID referral commissions - non-failed referrer payouts
    host: bookings of listings the user owns with payout_status "ready"
        - non-failed manual host withdrawals

Usage:
    from payments.services import WithdrawalService

    WithdrawalService.request_withdrawal(user, Decimal("500"), "commission")
    # {"success": True, "message": "Withdrawal initiated successfully",
    #  "reference": "withdraw_..."}
"""

from __future__ import annotations

import uuid
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db.models import Q, Sum
from django.utils import timezone

from bookings.fees import to_money
from bookings.models import Booking, PayoutStatus
from core.services import BaseService
from listings.services import owned_item_ids
from referrals.models import CommissionStatus, ReferralCommission

from payments.banks import get_bank_code
from payments.exceptions import (
    InsufficientBalanceError,
    InvalidAmountError,
    NoVerifiedBankDetailsError,
    PaymentValidationError,
)
from payments.models import BankDetails, Payout
from payments.services.payout_processor import PayoutProcessor
from payments.state_machines import BankVerificationStatus, PayoutState, RecipientType

if TYPE_CHECKING:
    from authentication.models import User

ZERO = Decimal("0.00")


def _sum(queryset, field: str) -> Decimal:
    return queryset.aggregate(total=Sum(field))["total"] or ZERO


class WithdrawalService(BaseService):
    """Balance checks and manual withdrawal requests."""

    @classmethod
    def normalize_payout_type(cls, payout_type: str) -> str:
        try:
            return RecipientType.normalize(payout_type)
        except ValueError as e:
            raise PaymentValidationError(
                "Invalid payout type",
                error_code="INVALID_PAYOUT_TYPE",
                details={"payout_type": [str(e)]},
            ) from e

    @classmethod
    def available_balance(cls, user: User, payout_type: str) -> Decimal:
        """Settled balance not yet reserved by a withdrawal."""
        payout_type = cls.normalize_payout_type(payout_type)
        if payout_type == RecipientType.REFERRER:
            earned = _sum(
                ReferralCommission.objects.filter(referrer=user, status=CommissionStatus.PAID),
                "commission_amount",
            )
            reserved = _sum(
                Payout.objects.reserving_balance().filter(
                    recipient=user,
                    recipient_type=RecipientType.REFERRER,
                ),
                "amount",
            )
        else:
            earned = _sum(
                Booking.objects.filter(payout_status=PayoutStatus.READY).filter(
                    Q(item_id__in=owned_item_ids(user)) | Q(host=user)
                ),
                "host_payout_amount",
            )
            reserved = _sum(
                Payout.objects.reserving_balance().filter(
                    recipient=user,
                    recipient_type=RecipientType.HOST,
                    booking__isnull=True,
                ),
                "amount",
            )
        return to_money(earned - reserved)

    @classmethod
    def request_withdrawal(
        cls,
        user: User,
        amount: Decimal | str,
        payout_type: str,
    ) -> dict[str, Any]:
        """
        Reserve and send a withdrawal.

        Raises:
            InvalidAmountError: amount <= 0
            PaymentValidationError: Unknown payout type
            NoVerifiedBankDetailsError: No verified destination
            InsufficientBalanceError: amount exceeds the available balance
        """
        try:
            amount = to_money(amount)
        except (InvalidOperation, TypeError, ValueError) as e:
            raise InvalidAmountError("Amount must be a number") from e
        if amount <= 0:
            raise InvalidAmountError("Amount must be greater than zero")
        payout_type = cls.normalize_payout_type(payout_type)
        logger = cls.get_logger()

        with cls.atomic():
            get_user_model().objects.select_for_update().filter(pk=user.pk).first()

            bank_details = BankDetails.objects.filter(
                user=user,
                verification_status=BankVerificationStatus.VERIFIED,
            ).first()
            if bank_details is None:
                raise NoVerifiedBankDetailsError()

            available = cls.available_balance(user, payout_type)
            if amount > available:
                logger.info(
                    "Withdrawal exceeds available balance",
                    extra={
                        "user_id": str(user.pk),
                        "payout_type": payout_type,
                        "requested": str(amount),
                        "available": str(available),
                    },
                )
                raise InsufficientBalanceError.for_available(
                    available, currency=settings.PAYOUT_CURRENCY
                )

            payout = Payout(
                recipient=user,
                recipient_type=payout_type,
                amount=amount,
                currency=settings.PAYOUT_CURRENCY,
                scheduled_for=timezone.now(),
                bank_name=bank_details.bank_name,
                bank_code=get_bank_code(bank_details.bank_name),
                account_number=bank_details.account_number,
                account_name=bank_details.account_holder_name,
            )
            payout.process(reference=f"withdraw_{uuid.uuid4().hex}")
            payout.save()

        logger.info(
            "Withdrawal reserved",
            extra={
                "user_id": str(user.pk),
                "payout_id": str(payout.id),
                "payout_type": payout_type,
                "amount": str(amount),
                "reference": payout.reference,
            },
        )

        attempt = PayoutProcessor.execute_payout(payout)
        if attempt.status == PayoutState.FAILED:
            return {
                "success": False,
                "message": attempt.error or "Withdrawal failed",
                "reference": payout.reference,
            }
        return {
            "success": True,
            "message": "Withdrawal initiated successfully",
            "reference": payout.reference,
        }
