"""
DRF serializers for payments app.

This module provides serializers for:
- Payment initiation requests (M-Pesa STK push, Paystack initialize)
- Card verification and status responses
- Payout actions (batch run, manual withdrawal)
- Bank details

Related files:
    - views.py: Payment API views
    - services/: Business logic the views delegate to

Usage:
    serializer = StkPushSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
"""

from __future__ import annotations

from decimal import Decimal

from rest_framework import serializers

from payments.models import BankDetails, PendingPayment
from payments.state_machines import RecipientType


class StkPushSerializer(serializers.Serializer):
    """
    Start an M-Pesa payment.

    Fields:
        phone_number: Payer's M-Pesa number (07..., 01..., 254..., +254...)
        amount: Amount in KES, greater than zero
        booking_data: Booking payload materialized once the payment succeeds
    """

    phone_number = serializers.CharField(max_length=20)
    amount = serializers.DecimalField(
        max_digits=12,
        decimal_places=2,
        min_value=Decimal("0.01"),
    )
    booking_data = serializers.DictField()


class CardInitializeSerializer(serializers.Serializer):
    """Start a Paystack card payment."""

    email = serializers.EmailField()
    amount = serializers.DecimalField(
        max_digits=12,
        decimal_places=2,
        min_value=Decimal("0.01"),
    )
    booking_data = serializers.DictField()


class CardVerifySerializer(serializers.Serializer):
    reference = serializers.CharField(max_length=100)


class PendingPaymentStatusSerializer(serializers.ModelSerializer):
    """Store-side status of a payment, as the status endpoint returns it."""

    reference = serializers.CharField(source="checkout_reference", read_only=True)
    booking_id = serializers.SerializerMethodField()

    class Meta:
        model = PendingPayment
        fields = [
            "reference",
            "provider",
            "status",
            "amount",
            "currency",
            "result_code",
            "result_desc",
            "receipt_number",
            "confirmed_at",
            "booking_id",
        ]
        read_only_fields = fields

    def get_booking_id(self, obj: PendingPayment) -> str | None:
        booking = getattr(obj, "booking", None)
        return str(booking.id) if booking is not None else None


class PayoutActionSerializer(serializers.Serializer):
    action = serializers.CharField()


class WithdrawSerializer(serializers.Serializer):
    """
    Manual withdrawal request.

    Fields:
        amount: Amount to withdraw
        payout_type: "host", "referrer" or "commission" (alias of referrer)
        user_id: Staff only: withdraw on behalf of another user
    """

    amount = serializers.DecimalField(
        max_digits=12,
        decimal_places=2,
        min_value=Decimal("0.01"),
    )
    payout_type = serializers.CharField()
    user_id = serializers.IntegerField(required=False, min_value=1)

    def validate_payout_type(self, value: str) -> str:
        try:
            return RecipientType.normalize(value)
        except ValueError as e:
            raise serializers.ValidationError(str(e)) from e


class BankDetailsSerializer(serializers.ModelSerializer):
    """
    A user's payout destination.

    Saving new details resets verification; only VERIFIED details
    receive payouts.
    """

    class Meta:
        model = BankDetails
        fields = [
            "bank_name",
            "account_number",
            "account_holder_name",
            "verification_status",
            "verified_at",
            "updated_at",
        ]
        read_only_fields = ["verification_status", "verified_at", "updated_at"]

    def validate_account_number(self, value: str) -> str:
        value = value.replace(" ", "")
        if not value.isdigit():
            raise serializers.ValidationError("Account number must contain digits only.")
        return value
