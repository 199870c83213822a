"""
DRF serializers for bookings.

This module provides serializers for:
- The booking payload carried by a pending payment
- Booking display in payment confirmation responses

Usage:
    serializer = BookingPayloadSerializer(data=request.data["booking"])
    serializer.is_valid(raise_exception=True)
    payload = dict(serializer.data)  # JSON-safe, stored on PendingPayment
"""

from __future__ import annotations

from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import serializers

from core.validators import validate_guest_name, validate_guest_phone
from listings.models import ItemType

from bookings.models import Booking


def _drf_validator(django_validator):
    """Adapt a Django field validator to raise DRF ValidationError."""

    def validator(value):
        try:
            django_validator(value)
        except DjangoValidationError as e:
            raise serializers.ValidationError(e.messages) from e

    return validator


class BookingDetailsSerializer(serializers.Serializer):
    adults = serializers.IntegerField(min_value=0, required=False, default=0)
    children = serializers.IntegerField(min_value=0, required=False, default=0)
    facilities = serializers.ListField(child=serializers.JSONField(), required=False, default=list)
    activities = serializers.ListField(child=serializers.JSONField(), required=False, default=list)


class BookingPayloadSerializer(serializers.Serializer):
    """
    Everything needed to create a booking once payment is confirmed.

    ``total_amount`` is what the client expects to pay; at settlement the
    gateway-confirmed amount is used instead.

    ``booking_type`` accepts ``adventure`` as an alias for
    ``adventure_place``.
    """

    item_id = serializers.UUIDField()
    booking_type = serializers.CharField(max_length=30)
    item_name = serializers.CharField(max_length=200, required=False, allow_blank=True, default="")
    total_amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)
    is_guest_booking = serializers.BooleanField(required=False, default=False)
    guest_name = serializers.CharField(
        max_length=100,
        required=False,
        allow_blank=True,
        default="",
    )
    guest_email = serializers.EmailField(required=False, allow_blank=True, default="")
    guest_phone = serializers.CharField(
        max_length=20,
        required=False,
        allow_blank=True,
        default="",
    )
    slots_booked = serializers.IntegerField(min_value=1, required=False, default=1)
    visit_date = serializers.DateField(required=False, allow_null=True, default=None)
    booking_details = BookingDetailsSerializer(required=False, default=dict)
    referral_tracking_id = serializers.UUIDField(required=False, allow_null=True, default=None)

    def validate_booking_type(self, value: str) -> str:
        try:
            return ItemType.normalize(value)
        except ValueError as e:
            raise serializers.ValidationError(str(e)) from e

    def validate_guest_name(self, value: str) -> str:
        if value:
            _drf_validator(validate_guest_name)(value)
        return value.strip()

    def validate_guest_phone(self, value: str) -> str:
        if value:
            _drf_validator(validate_guest_phone)(value)
        return value

    def validate(self, attrs):
        if attrs.get("is_guest_booking"):
            errors = {}
            if not attrs.get("guest_name"):
                errors["guest_name"] = ["Guest bookings need a name."]
            if not attrs.get("guest_email"):
                errors["guest_email"] = ["Guest bookings need an email address."]
            if errors:
                raise serializers.ValidationError(errors)
        return attrs


class BookingSerializer(serializers.ModelSerializer):
    """Read-only booking representation."""

    class Meta:
        model = Booking
        fields = [
            "id",
            "item_id",
            "booking_type",
            "item_name",
            "guest_name",
            "guest_email",
            "guest_phone",
            "visit_date",
            "slots_booked",
            "booking_details",
            "total_amount",
            "status",
            "payment_status",
            "payment_method",
            "service_fee_amount",
            "host_payout_amount",
            "payout_status",
            "payout_scheduled_at",
            "created_at",
        ]
        read_only_fields = fields
