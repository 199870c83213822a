"""
DRF views for payments app.

This module provides API views for:
- Starting M-Pesa and Paystack payments
- Receiving the M-Pesa callback and verifying Paystack references
- Payment status reads and direct gateway queries
- Payout runs and manual withdrawals
- Bank details

Related files:
    - services/: Initiation, confirmation, payout and withdrawal services
    - serializers.py: Request/response serializers
    - webhooks/views.py: Paystack webhook endpoint
    - urls.py: URL routing

Endpoints:
    POST /api/v1/payments/mpesa/stk-push/ - Send an STK push
    POST /api/v1/payments/mpesa/callback/ - Daraja STK result callback
    POST /api/v1/payments/paystack/initialize/ - Start a card payment
    POST /api/v1/payments/paystack/verify/ - Verify a card payment
    GET  /api/v1/payments/status/<reference>/ - Stored payment status
    POST /api/v1/payments/status/<reference>/query/ - Ask the gateway directly
    POST /api/v1/payments/payouts/ - Payout run or manual withdrawal
    GET/PUT /api/v1/payments/bank-details/ - Own payout destination

Security:
    - Payment endpoints are open to guests; payouts and bank details
      require authentication, the batch run requires staff
    - The callback is checked against MPESA_CALLBACK_TOKEN when set
"""

from __future__ import annotations

import hmac
import logging

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import DatabaseError
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.exceptions import BaseApplicationError
from core.views import error_response

from payments.exceptions import PaymentNotFoundError, PaymentValidationError
from payments.models import BankDetails, PendingPayment
from payments.serializers import (
    BankDetailsSerializer,
    CardInitializeSerializer,
    CardVerifySerializer,
    PayoutActionSerializer,
    PendingPaymentStatusSerializer,
    StkPushSerializer,
    WithdrawSerializer,
)
from payments.services import (
    PaymentConfirmationService,
    PaymentInitiationService,
    PayoutProcessor,
    WithdrawalService,
)
from payments.state_machines import BankVerificationStatus

logger = logging.getLogger(__name__)


def _request_user(request):
    return request.user if request.user.is_authenticated else None


# =============================================================================
# M-Pesa
# =============================================================================


class MpesaStkPushView(APIView):
    """
    Send an M-Pesa STK push for a booking.

    Request body:
        {"phone_number": "0712345678", "amount": "1500", "booking_data": {...}}

    Returns:
        201 {"success": true, "data": {"reference": "ws_CO_...", "status": "pending"}}
    """

    permission_classes = [AllowAny]

    def post(self, request):
        serializer = StkPushSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        try:
            payment = PaymentInitiationService.initiate_mpesa_payment(
                phone_number=data["phone_number"],
                amount=data["amount"],
                booking_payload=data["booking_data"],
                user=_request_user(request),
            )
        except BaseApplicationError as e:
            return error_response(e)

        return Response(
            {
                "success": True,
                "data": {
                    "reference": payment.checkout_reference,
                    "merchant_request_id": payment.merchant_request_id,
                    "status": payment.status,
                },
            },
            status=status.HTTP_201_CREATED,
        )


class MpesaCallbackView(APIView):
    """
    Daraja STK push result callback.

    Handled outcomes (success, failure, duplicates, unknown references,
    malformed bodies) answer 200 so Daraja stops redelivering. Only a
    failure to persist answers 500; redelivery is then safe because the
    handling is idempotent.
    """

    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_classes = []

    def post(self, request):
        expected_token = settings.MPESA_CALLBACK_TOKEN
        if expected_token:
            token = request.query_params.get("token", "")
            if not hmac.compare_digest(token.encode(), expected_token.encode()):
                logger.warning("M-Pesa callback with invalid token")
                return Response({"success": False}, status=status.HTTP_403_FORBIDDEN)

        try:
            result = PaymentConfirmationService.handle_mpesa_callback(request.data)
        except (PaymentValidationError, PaymentNotFoundError) as e:
            logger.warning(
                f"M-Pesa callback not applied: {e.message}",
                extra={"error_code": e.error_code},
            )
            return Response({"success": False, "error": e.message})
        except DatabaseError:
            logger.exception("Failed to persist M-Pesa callback")
            return Response({"success": False}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

        return Response(
            {
                "success": True,
                "status": result.status,
                "duplicate": result.duplicate,
            }
        )


# =============================================================================
# Paystack
# =============================================================================


class PaystackInitializeView(APIView):
    """
    Start a Paystack card payment.

    Returns the reference and access code the client opens the popup with.
    """

    permission_classes = [AllowAny]

    def post(self, request):
        serializer = CardInitializeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        try:
            payment = PaymentInitiationService.initiate_card_payment(
                email=data["email"],
                amount=data["amount"],
                booking_payload=data["booking_data"],
                user=_request_user(request),
            )
        except BaseApplicationError as e:
            return error_response(e)

        return Response(
            {
                "success": True,
                "data": {
                    "reference": payment.checkout_reference,
                    "access_code": payment.access_code,
                    "authorization_url": payment.authorization_url,
                    "public_key": settings.PAYSTACK_PUBLIC_KEY,
                },
            },
            status=status.HTTP_201_CREATED,
        )


class PaystackVerifyView(APIView):
    """
    Verify a Paystack reference server-side.

    Returns:
        {"success": <gateway says success>, "data": {status, reference,
        amount, paid_at, channel, currency, isSuccessful, bookingId, ...}}
    """

    permission_classes = [AllowAny]

    def post(self, request):
        serializer = CardVerifySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            result = PaymentConfirmationService.verify_card_payment(
                serializer.validated_data["reference"]
            )
        except BaseApplicationError as e:
            return error_response(e)

        return Response({"success": result.is_successful, "data": result.to_dict()})


# =============================================================================
# Status
# =============================================================================


class PaymentStatusView(APIView):
    """Stored status of a payment. Never calls the gateway."""

    permission_classes = [AllowAny]

    def get(self, request, reference: str):
        payment = (
            PendingPayment.objects.select_related("booking")
            .filter(checkout_reference=reference)
            .first()
        )
        if payment is None:
            return error_response(PaymentNotFoundError("Payment not found"))
        return Response(
            {"success": True, "data": PendingPaymentStatusSerializer(payment).data}
        )


class PaymentStatusQueryView(APIView):
    """
    Ask the gateway for a payment's outcome.

    Throttled per reference with exponential backoff; a call that comes
    too early answers 429 with Retry-After. The caller should tell the
    payer to check their payment history, not that the payment failed.
    """

    permission_classes = [AllowAny]

    def post(self, request, reference: str):
        try:
            result = PaymentConfirmationService.query_gateway(reference)
        except BaseApplicationError as e:
            return error_response(e)

        return Response(
            {
                "success": True,
                "data": {
                    "reference": result.reference,
                    "status": result.status,
                    "booking_id": str(result.booking.id) if result.booking else None,
                },
            }
        )


# =============================================================================
# Payouts
# =============================================================================


class PayoutsView(APIView):
    """
    Payout actions.

    Request body:
        {"action": "process_scheduled"}  (staff only)
        {"action": "withdraw", "amount": "500", "payout_type": "commission"}

    Any other action answers 400 "Invalid action".
    """

    permission_classes = [IsAuthenticated]

    def post(self, request):
        serializer = PayoutActionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        action = serializer.validated_data["action"]

        if action == "process_scheduled":
            return self._process_scheduled(request)
        if action == "withdraw":
            return self._withdraw(request)
        return Response(
            {"success": False, "error": "Invalid action", "error_code": "INVALID_ACTION"},
            status=status.HTTP_400_BAD_REQUEST,
        )

    def _process_scheduled(self, request):
        if not request.user.is_staff:
            return Response(
                {"success": False, "error": "Admin access required", "error_code": "PERMISSION_DENIED"},
                status=status.HTTP_403_FORBIDDEN,
            )
        summary = PayoutProcessor.process_scheduled()
        logger.info(
            "Payout run triggered manually",
            extra={"user_id": str(request.user.pk), "processed": summary["processed"]},
        )
        return Response(summary)

    def _withdraw(self, request):
        serializer = WithdrawSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        user = request.user
        user_id = data.get("user_id")
        if user_id is not None and user_id != user.pk:
            if not user.is_staff:
                return Response(
                    {
                        "success": False,
                        "error": "Cannot withdraw for another user",
                        "error_code": "PERMISSION_DENIED",
                    },
                    status=status.HTTP_403_FORBIDDEN,
                )
            user = get_user_model().objects.filter(pk=user_id).first()
            if user is None:
                return Response(
                    {"success": False, "error": "User not found", "error_code": "NOT_FOUND"},
                    status=status.HTTP_404_NOT_FOUND,
                )

        try:
            result = WithdrawalService.request_withdrawal(
                user=user,
                amount=data["amount"],
                payout_type=data["payout_type"],
            )
        except BaseApplicationError as e:
            return error_response(e)

        response_status = status.HTTP_200_OK if result["success"] else status.HTTP_502_BAD_GATEWAY
        return Response(result, status=response_status)


# =============================================================================
# Bank Details
# =============================================================================


class BankDetailsView(APIView):
    """
    The signed-in user's payout destination.

    PUT replaces the details. Changing the bank or account number puts
    them back into review.
    """

    permission_classes = [IsAuthenticated]

    def get(self, request):
        details = BankDetails.objects.filter(user=request.user).first()
        if details is None:
            return Response({"success": True, "data": None})
        return Response({"success": True, "data": BankDetailsSerializer(details).data})

    def put(self, request):
        instance = BankDetails.objects.filter(user=request.user).first()
        serializer = BankDetailsSerializer(instance, data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        destination_changed = instance is None or (
            instance.bank_name != data["bank_name"]
            or instance.account_number != data["account_number"]
        )
        if destination_changed:
            details = serializer.save(
                user=request.user,
                verification_status=BankVerificationStatus.PENDING,
                verified_at=None,
            )
            logger.info(
                "Bank details submitted for review",
                extra={"user_id": str(request.user.pk), "bank_name": details.bank_name},
            )
        else:
            details = serializer.save(user=request.user)

        return Response({"success": True, "data": BankDetailsSerializer(details).data})
