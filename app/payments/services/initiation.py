"""
Payment initiation service.

Starts a customer charge with the gateway and records it as a
PendingPayment keyed by the gateway handle:

- M-Pesa: STK push; keyed by Daraja's CheckoutRequestID
- Paystack: popup transaction; keyed by a reference we generate

Exactly one PendingPayment is created per call and the gateway call is
never retried here. A caller that retries gets a new reference.

Usage:
    from payments.services import PaymentInitiationService

    payment = PaymentInitiationService.initiate_mpesa_payment(
        phone_number="0712 345 678",
        amount=Decimal("1500"),
        booking_payload={...},
        user=request.user,
    )
    payment.checkout_reference  # "ws_CO_191220191020363925"
"""

from __future__ import annotations

import re
import uuid
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any

from django.db import transaction

from bookings.fees import to_money
from bookings.services import BookingMaterializer
from core.services import BaseService

from payments.exceptions import InvalidAmountError, PaymentValidationError
from payments.models import PendingPayment
from payments.services.base import GatewayAdapterMixin
from payments.state_machines import PaymentProvider

if TYPE_CHECKING:
    from authentication.models import User

KENYAN_MSISDN = re.compile(r"^254[17]\d{8}$")

ACCOUNT_REFERENCE = "SafariBooking"
TRANSACTION_DESCRIPTION = "Booking"

# Daraja charges whole shillings.
MIN_MPESA_AMOUNT = Decimal("1")


def normalize_phone(phone_number: str) -> str:
    """
    Normalize a Kenyan mobile number to 2547XXXXXXXX / 2541XXXXXXXX.

    Accepts 07..., 01..., 7..., 1..., 254... and +254... with spaces or
    dashes.

    Raises:
        PaymentValidationError: Not a Kenyan mobile number
    """
    digits = re.sub(r"[\s\-()]", "", phone_number or "")
    if digits.startswith("+"):
        digits = digits[1:]
    if digits.startswith("0") and len(digits) == 10:
        digits = "254" + digits[1:]
    elif len(digits) == 9 and digits[0] in "17":
        digits = "254" + digits

    if not KENYAN_MSISDN.match(digits):
        raise PaymentValidationError(
            "Enter a valid M-Pesa phone number",
            error_code="INVALID_PHONE_NUMBER",
            details={"phone_number": ["Expected a Kenyan mobile number such as 0712345678."]},
        )
    return digits


def generate_card_reference() -> str:
    return f"ps_{uuid.uuid4().hex}"


class PaymentInitiationService(GatewayAdapterMixin, BaseService):
    """
    Starts gateway charges and persists them as PendingPayments.

    Each successful initiation also queues poll_pending_payment after
    commit, the server-side fallback for payments whose confirmation
    never arrives.
    """

    @classmethod
    def _validate_amount(cls, amount: Any) -> Decimal:
        try:
            value = to_money(amount)
        except (InvalidOperation, TypeError, ValueError) as e:
            raise InvalidAmountError("Amount must be a number") from e
        if value <= 0:
            raise InvalidAmountError(
                "Amount must be greater than zero",
                details={"amount": str(value)},
            )
        return value

    @classmethod
    def initiate_mpesa_payment(
        cls,
        phone_number: str,
        amount: Decimal,
        booking_payload: dict[str, Any],
        user: User | None = None,
    ) -> PendingPayment:
        """
        Send an STK push and record the pending payment.

        Raises:
            InvalidAmountError: amount rounds to less than KES 1
            PaymentValidationError: Bad phone number or booking payload
            GatewayUnavailableError / GatewayRequestError: Daraja failed
        """
        amount = cls._validate_amount(amount)
        if amount.quantize(MIN_MPESA_AMOUNT, rounding=ROUND_HALF_UP) < MIN_MPESA_AMOUNT:
            raise InvalidAmountError(
                "M-Pesa amount must be at least KES 1",
                details={"amount": str(amount)},
            )
        phone = normalize_phone(phone_number)
        payload = BookingMaterializer.prepare_payload(booking_payload)

        push = cls.get_gateway_adapter(PaymentProvider.MPESA).stk_push(
            phone_number=phone,
            amount=amount,
            account_reference=ACCOUNT_REFERENCE,
            description=TRANSACTION_DESCRIPTION,
        )

        with transaction.atomic():
            payment = PendingPayment.objects.create(
                checkout_reference=push.checkout_request_id,
                merchant_request_id=push.merchant_request_id,
                provider=PaymentProvider.MPESA,
                user=user,
                phone_number=phone,
                email=payload.get("guest_email") or (user.email if user else ""),
                amount=amount,
                booking_payload=payload,
            )
            cls._schedule_poll(payment)

        cls.get_logger().info(
            "M-Pesa payment initiated",
            extra={
                "reference": payment.checkout_reference,
                "amount": str(amount),
                "item_id": payload.get("item_id"),
            },
        )
        return payment

    @classmethod
    def initiate_card_payment(
        cls,
        email: str,
        amount: Decimal,
        booking_payload: dict[str, Any],
        user: User | None = None,
    ) -> PendingPayment:
        """
        Initialize a Paystack popup transaction and record it.

        The reference is generated here and sent to Paystack, so the
        PendingPayment key is known before the gateway answers.

        Raises:
            InvalidAmountError: amount <= 0
            PaymentValidationError: Missing email or bad booking payload
            GatewayUnavailableError / GatewayRequestError: Paystack failed
        """
        amount = cls._validate_amount(amount)
        email = (email or "").strip()
        if not email:
            raise PaymentValidationError(
                "Email is required for card payments",
                details={"email": ["This field is required."]},
            )
        payload = BookingMaterializer.prepare_payload(booking_payload)
        reference = generate_card_reference()

        init = cls.get_gateway_adapter(PaymentProvider.PAYSTACK).initialize_transaction(
            email=email,
            amount=amount,
            reference=reference,
            metadata={
                "item_id": payload.get("item_id"),
                "booking_type": payload.get("booking_type"),
            },
        )

        with transaction.atomic():
            payment = PendingPayment.objects.create(
                checkout_reference=init.reference or reference,
                provider=PaymentProvider.PAYSTACK,
                user=user,
                email=email,
                phone_number=payload.get("guest_phone", ""),
                amount=amount,
                booking_payload=payload,
                access_code=init.access_code,
                authorization_url=init.authorization_url,
            )
            cls._schedule_poll(payment)

        cls.get_logger().info(
            "Card payment initiated",
            extra={"reference": payment.checkout_reference, "amount": str(amount)},
        )
        return payment

    @classmethod
    def _schedule_poll(cls, payment: PendingPayment) -> None:
        from payments.tasks import poll_pending_payment

        reference = payment.checkout_reference
        transaction.on_commit(lambda: poll_pending_payment.delay(reference))
