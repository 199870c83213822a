"""
Payment confirmation service.

Applies gateway-sourced outcomes to PendingPayments and materializes the
booking for successful ones. Three paths lead here:

- handle_mpesa_callback: Daraja posts the STK result
- verify_card_payment: the client asks us to verify a Paystack reference;
  the client's own "success" is never trusted, Paystack is re-queried
- query_gateway: a throttled direct status query (poller fallback)

All three are idempotent. A PendingPayment leaves ``pending`` once,
under a row lock; later deliveries are reported as duplicates and only
make sure the booking exists.

Usage:
    from payments.services import PaymentConfirmationService

    result = PaymentConfirmationService.handle_mpesa_callback(request.data)
    result.status  # "completed"
    result.booking  # Booking, or None for failures
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any

from django.conf import settings
from django.core.cache import cache
from django.db import transaction

from bookings.models import Booking, PaymentMethod
from bookings.services import BookingMaterializer
from core.services import BaseService

from payments.adapters import backoff_delay
from payments.exceptions import (
    GatewayRateLimitedError,
    PaymentNotFoundError,
    PaymentValidationError,
)
from payments.models import PendingPayment
from payments.services.base import GatewayAdapterMixin
from payments.state_machines import PaymentProvider, PendingPaymentStatus

if TYPE_CHECKING:
    from payments.adapters import TransactionVerification

MPESA_SUCCESS_CODE = "0"

PAYMENT_METHODS = {
    PaymentProvider.MPESA: PaymentMethod.MPESA,
    PaymentProvider.PAYSTACK: PaymentMethod.CARD,
}

QUERY_THROTTLE_KEY = "payments:status-query:{reference}"


# =============================================================================
# Result Types
# =============================================================================


@dataclass
class ConfirmationResult:
    """
    Outcome of applying a gateway result to a PendingPayment.

    Attributes:
        reference: Checkout reference
        status: PendingPayment status after the call
        duplicate: The payment was already terminal before this call
        booking: Booking for a completed payment, when materialized
        pending_payment: The PendingPayment row
    """

    reference: str
    status: str
    duplicate: bool = False
    booking: Booking | None = None
    pending_payment: PendingPayment | None = None

    @property
    def is_completed(self) -> bool:
        return self.status == PendingPaymentStatus.COMPLETED

    @property
    def is_failed(self) -> bool:
        return self.status == PendingPaymentStatus.FAILED

    @property
    def is_pending(self) -> bool:
        return self.status == PendingPaymentStatus.PENDING


@dataclass
class CardVerificationResult:
    """
    Paystack verification echoed back to the paying client.

    ``to_dict()`` produces the response body fields (camelCase keys
    where the client expects them).
    """

    status: str
    reference: str
    amount: Decimal
    paid_at: str | None
    channel: str | None
    currency: str
    is_successful: bool
    booking: Booking | None = None
    service_fee: Decimal | None = None
    host_payout: Decimal | None = None
    confirmation: ConfirmationResult | None = field(default=None, repr=False)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "status": self.status,
            "reference": self.reference,
            "amount": str(self.amount),
            "paid_at": self.paid_at,
            "channel": self.channel,
            "currency": self.currency,
            "isSuccessful": self.is_successful,
        }
        booking = self.booking
        if booking is None:
            return data

        details = booking.booking_details or {}
        data.update(
            {
                "bookingId": str(booking.id),
                "guestName": booking.guest_name,
                "guestEmail": booking.guest_email,
                "guestPhone": booking.guest_phone,
                "itemName": booking.item_name or "Booking",
                "bookingType": booking.booking_type,
                "visitDate": booking.visit_date.isoformat() if booking.visit_date else None,
                "slotsBooked": booking.slots_booked,
                "adults": details.get("adults"),
                "children": details.get("children"),
                "facilities": details.get("facilities"),
                "activities": details.get("activities"),
                "serviceFee": str(booking.service_fee_amount),
                "hostPayout": str(booking.host_payout_amount),
            }
        )
        return data


# =============================================================================
# Confirmation Service
# =============================================================================


class PaymentConfirmationService(GatewayAdapterMixin, BaseService):
    """
    Records gateway outcomes and materializes bookings.

    Status update and booking creation are separate steps. The status
    transition commits first; a booking that fails to materialize is
    created on the next delivery or query for the same reference.
    """

    # =========================================================================
    # M-Pesa callback
    # =========================================================================

    @classmethod
    def parse_mpesa_callback(cls, payload: dict[str, Any]) -> dict[str, Any]:
        """
        Extract the fields we use from a Daraja STK callback body.

        Raises:
            PaymentValidationError: Body.stkCallback missing or incomplete
        """
        try:
            callback = payload["Body"]["stkCallback"]
            checkout_reference = callback["CheckoutRequestID"]
            result_code = callback["ResultCode"]
        except (KeyError, TypeError) as e:
            raise PaymentValidationError(
                "Malformed M-Pesa callback",
                error_code="MALFORMED_CALLBACK",
            ) from e

        items = (callback.get("CallbackMetadata") or {}).get("Item") or []
        metadata = {
            item.get("Name"): item.get("Value")
            for item in items
            if isinstance(item, dict) and item.get("Name")
        }
        return {
            "checkout_reference": checkout_reference,
            "merchant_request_id": callback.get("MerchantRequestID", ""),
            "result_code": str(result_code),
            "result_desc": callback.get("ResultDesc", ""),
            "metadata": metadata,
        }

    @classmethod
    def handle_mpesa_callback(cls, payload: dict[str, Any]) -> ConfirmationResult:
        """
        Apply a Daraja STK callback.

        ResultCode 0 completes the payment with the MpesaReceiptNumber
        stored verbatim and the callback's Amount as the confirmed
        amount; any other code fails it.

        Raises:
            PaymentValidationError: Malformed body
            PaymentNotFoundError: Unknown CheckoutRequestID
        """
        data = cls.parse_mpesa_callback(payload)
        metadata = data["metadata"]
        succeeded = data["result_code"] == MPESA_SUCCESS_CODE

        cls.get_logger().info(
            "M-Pesa callback received",
            extra={
                "reference": data["checkout_reference"],
                "result_code": data["result_code"],
            },
        )

        return cls._apply_outcome(
            data["checkout_reference"],
            succeeded=succeeded,
            amount=cls._parse_amount(metadata.get("Amount")),
            receipt_number=str(metadata.get("MpesaReceiptNumber") or ""),
            result_code=data["result_code"],
            result_desc=data["result_desc"],
        )

    # =========================================================================
    # Paystack verify
    # =========================================================================

    @classmethod
    def verify_card_payment(cls, reference: str) -> CardVerificationResult:
        """
        Verify a Paystack transaction server-side and apply the result.

        ``success`` completes the PendingPayment (if one exists under the
        reference) and materializes the booking; ``failed``/``reversed``
        fail it; any other status leaves it pending.

        Raises:
            PaymentValidationError: Empty reference
            GatewayError: Paystack could not be queried
        """
        reference = (reference or "").strip()
        if not reference:
            raise PaymentValidationError(
                "Reference is required",
                details={"reference": ["This field is required."]},
            )

        verification = cls.get_gateway_adapter(PaymentProvider.PAYSTACK).verify_transaction(
            reference
        )
        confirmation = None
        if PendingPayment.objects.filter(checkout_reference=reference).exists():
            confirmation = cls._apply_verification(reference, verification)
        else:
            cls.get_logger().warning(
                "Verified a Paystack reference with no pending payment",
                extra={"reference": reference, "status": verification.status},
            )

        booking = confirmation.booking if confirmation else None
        return CardVerificationResult(
            status=verification.status,
            reference=verification.reference,
            amount=verification.amount,
            paid_at=verification.paid_at,
            channel=verification.channel,
            currency=verification.currency,
            is_successful=verification.is_successful,
            booking=booking,
            service_fee=booking.service_fee_amount if booking else None,
            host_payout=booking.host_payout_amount if booking else None,
            confirmation=confirmation,
        )

    @classmethod
    def _apply_verification(
        cls, reference: str, verification: TransactionVerification
    ) -> ConfirmationResult:
        if verification.is_successful:
            succeeded = True
        elif verification.is_failed:
            succeeded = False
        else:
            succeeded = None
        return cls._apply_outcome(
            reference,
            succeeded=succeeded,
            amount=verification.amount if verification.is_successful else None,
            receipt_number=verification.reference,
            result_code=verification.status,
            result_desc=verification.gateway_response or "",
        )

    # =========================================================================
    # Direct gateway query
    # =========================================================================

    @classmethod
    def query_gateway(cls, reference: str) -> ConfirmationResult:
        """
        Ask the gateway directly for a payment's outcome.

        Terminal payments are answered from the store without a gateway
        call. Otherwise the call passes through a per-reference backoff
        throttle (base/max from PAYMENT_STATUS_QUERY_BACKOFF_*).

        Raises:
            PaymentNotFoundError: Unknown reference
            GatewayRateLimitedError: Called before the throttle allows,
                or the gateway answered 429
            GatewayUnavailableError: Gateway unreachable
        """
        payment = PendingPayment.objects.filter(checkout_reference=reference).first()
        if payment is None:
            raise PaymentNotFoundError(
                "Payment not found",
                details={"reference": reference},
            )
        if payment.is_terminal:
            return cls._result_for(payment, duplicate=True)

        cls._throttle_query(reference)

        if payment.provider == PaymentProvider.MPESA:
            status = cls.get_gateway_adapter(PaymentProvider.MPESA).stk_query(reference)
            if status.is_pending:
                return cls._result_for(payment)
            return cls._apply_outcome(
                reference,
                succeeded=status.is_successful,
                amount=None,
                receipt_number="",
                result_code=status.result_code or "",
                result_desc=status.result_desc,
            )

        verification = cls.get_gateway_adapter(PaymentProvider.PAYSTACK).verify_transaction(
            reference
        )
        return cls._apply_verification(reference, verification)

    @classmethod
    def _throttle_query(cls, reference: str) -> None:
        """
        Exponential backoff between direct queries for one reference.

        The first query goes through; each later one must wait
        base * 2^n seconds (capped, with jitter) after the previous.
        """
        key = QUERY_THROTTLE_KEY.format(reference=reference)
        now = time.time()
        state = cache.get(key) or {"attempt": 0, "next_at": 0.0}
        if now < state["next_at"]:
            retry_after = state["next_at"] - now
            cls.get_logger().info(
                "Status query throttled",
                extra={"reference": reference, "retry_after": round(retry_after, 2)},
            )
            raise GatewayRateLimitedError(
                "Too many status checks. Check your payment history later.",
                retry_after=retry_after,
            )

        max_delay = settings.PAYMENT_STATUS_QUERY_BACKOFF_MAX_SECONDS
        delay = backoff_delay(
            state["attempt"],
            base=settings.PAYMENT_STATUS_QUERY_BACKOFF_BASE_SECONDS,
            max_delay=max_delay,
        )
        cache.set(
            key,
            {"attempt": state["attempt"] + 1, "next_at": now + delay},
            timeout=int(max_delay * 4),
        )

    # =========================================================================
    # Internals
    # =========================================================================

    @staticmethod
    def _parse_amount(value: Any) -> Decimal | None:
        if value in (None, ""):
            return None
        try:
            return Decimal(str(value))
        except InvalidOperation:
            return None

    @classmethod
    def _result_for(cls, payment: PendingPayment, duplicate: bool = False) -> ConfirmationResult:
        booking = Booking.objects.filter(checkout_reference=payment.checkout_reference).first()
        return ConfirmationResult(
            reference=payment.checkout_reference,
            status=payment.status,
            duplicate=duplicate,
            booking=booking,
            pending_payment=payment,
        )

    @classmethod
    def _apply_outcome(
        cls,
        reference: str,
        *,
        succeeded: bool | None,
        amount: Decimal | None,
        receipt_number: str,
        result_code: str,
        result_desc: str,
    ) -> ConfirmationResult:
        """
        Move a pending payment to its terminal status, then materialize.

        ``succeeded`` None means the gateway still reports it pending; the
        record is left untouched.
        """
        logger = cls.get_logger()
        with transaction.atomic():
            payment = (
                PendingPayment.objects.select_for_update()
                .filter(checkout_reference=reference)
                .first()
            )
            if payment is None:
                logger.warning(
                    "Confirmation for unknown payment",
                    extra={"reference": reference, "result_code": result_code},
                )
                raise PaymentNotFoundError(
                    "Payment not found",
                    details={"reference": reference},
                )

            duplicate = payment.is_terminal
            if duplicate:
                logger.info(
                    "Duplicate confirmation ignored",
                    extra={"reference": reference, "status": payment.status},
                )
            elif succeeded is True:
                if amount is not None and amount != payment.amount:
                    logger.warning(
                        "Confirmed amount differs from requested amount",
                        extra={
                            "reference": reference,
                            "requested": str(payment.amount),
                            "confirmed": str(amount),
                        },
                    )
                    payment.amount = amount
                payment.complete(
                    receipt_number=receipt_number,
                    result_code=result_code,
                    result_desc=result_desc,
                )
                payment.save()
            elif succeeded is False:
                payment.fail(result_code=result_code, result_desc=result_desc)
                payment.save()
            else:
                return cls._result_for(payment)

        if payment.status == PendingPaymentStatus.FAILED:
            if not duplicate:
                logger.info(
                    "Payment failed",
                    extra={
                        "reference": reference,
                        "result_code": result_code,
                        "result_desc": result_desc,
                    },
                )
            return ConfirmationResult(
                reference=reference,
                status=payment.status,
                duplicate=duplicate,
                pending_payment=payment,
            )

        booking = cls._materialize(payment)
        return ConfirmationResult(
            reference=reference,
            status=payment.status,
            duplicate=duplicate,
            booking=booking,
            pending_payment=payment,
        )

    @classmethod
    def _materialize(cls, payment: PendingPayment) -> Booking | None:
        """Create (or find) the booking for a completed payment."""
        try:
            result = BookingMaterializer.materialize(
                payment,
                amount=payment.amount,
                payment_method=PAYMENT_METHODS[payment.provider],
            )
        except PaymentValidationError as e:
            cls.get_logger().error(
                "Completed payment has an unusable booking payload",
                extra={"reference": payment.checkout_reference, "errors": e.details},
            )
            return None
        return result.booking
