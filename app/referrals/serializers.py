"""
DRF serializers for referrals.

- ReferralSettingsSerializer: admin rate table, commission <= fee per category
- TrackClickSerializer: referral link click
"""

from __future__ import annotations

from decimal import Decimal

from rest_framework import serializers

from referrals.models import RATE_CATEGORIES


def _percent():
    return serializers.DecimalField(
        max_digits=5,
        decimal_places=2,
        min_value=Decimal("0"),
        max_value=Decimal("100"),
    )


class ReferralSettingsSerializer(serializers.Serializer):
    trip_service_fee = _percent()
    trip_commission_rate = _percent()
    event_service_fee = _percent()
    event_commission_rate = _percent()
    hotel_service_fee = _percent()
    hotel_commission_rate = _percent()
    adventure_place_service_fee = _percent()
    adventure_place_commission_rate = _percent()
    attraction_service_fee = _percent()
    attraction_commission_rate = _percent()
    version = serializers.IntegerField(read_only=True)

    def validate(self, attrs):
        errors = {}
        for category in RATE_CATEGORIES:
            fee = attrs.get(f"{category}_service_fee")
            commission = attrs.get(f"{category}_commission_rate")
            if self.instance is not None:
                if fee is None:
                    fee = getattr(self.instance, f"{category}_service_fee")
                if commission is None:
                    commission = getattr(self.instance, f"{category}_commission_rate")
            if fee is not None and commission is not None and commission > fee:
                errors[f"{category}_commission_rate"] = [
                    f"Commission rate ({commission}%) cannot exceed the service fee ({fee}%)."
                ]
        if errors:
            raise serializers.ValidationError(errors)
        return attrs


class TrackClickSerializer(serializers.Serializer):
    referral_code = serializers.CharField(max_length=50)
    item_id = serializers.UUIDField()
    item_type = serializers.CharField(max_length=30, required=False, allow_blank=True, default="")
    referral_type = serializers.CharField(max_length=30, required=False, default="booking")
