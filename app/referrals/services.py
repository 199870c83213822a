"""
Referral services.

- ReferralTrackingService: records clicks on referral links
- ReferralCommissionService: awards commission for confirmed bookings
- ReferralSettingsService: admin updates to the rate table

Usage:
    from referrals.services import ReferralTrackingService

    result = ReferralTrackingService.track_click(
        referral_code="janedoe",
        item_id=trip.id,
        item_type="trip",
        referred_user=request.user,
    )
    result.data  # {"trackingId": "...", "referrerId": "..."}
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError as DjangoValidationError
from django.utils import timezone

from bookings.fees import calculate_commission
from core.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from core.services import BaseService, ServiceResult

from referrals.models import (
    RATE_CATEGORIES,
    SINGLETON_PK,
    CommissionStatus,
    ReferralCommission,
    ReferralSettings,
    ReferralTracking,
    TrackingStatus,
)

if TYPE_CHECKING:
    from uuid import UUID

    from authentication.models import User
    from bookings.models import Booking


class ReferralTrackingService(BaseService):
    """Records referral link clicks."""

    @classmethod
    def track_click(
        cls,
        referral_code: str,
        item_id: UUID | str,
        item_type: str | None = None,
        referral_type: str = "booking",
        referred_user: User | None = None,
    ) -> ServiceResult[dict[str, str]]:
        """
        Record a visit through a referral link.

        Args:
            referral_code: The referrer's referral code from the link
            item_id: Listing the link points at
            item_type: Listing category, if known
            referral_type: What the link refers to (default "booking")
            referred_user: Signed-in visitor, if any

        Returns:
            ServiceResult with {"trackingId", "referrerId"}

        Raises:
            NotFoundError: No user has this referral code
            PermissionDeniedError: The visitor is the referrer
        """
        User = get_user_model()
        referral_code = (referral_code or "").strip().lower()
        referrer = User.objects.filter(referral_code=referral_code, is_active=True).first()
        if referrer is None:
            cls.get_logger().info(
                "No referrer for referral code",
                extra={"referral_code": referral_code},
            )
            raise NotFoundError("Referrer not found", error_code="REFERRER_NOT_FOUND")

        if referred_user is not None and referred_user.pk == referrer.pk:
            raise PermissionDeniedError("Cannot refer yourself", error_code="SELF_REFERRAL")

        tracking = ReferralTracking.objects.create(
            referrer=referrer,
            referred_user=referred_user,
            item_id=item_id,
            item_type=item_type or "unknown",
            referral_type=referral_type or "booking",
        )

        cls.get_logger().info(
            "Referral click tracked",
            extra={
                "tracking_id": str(tracking.id),
                "referrer_id": str(referrer.pk),
                "item_id": str(item_id),
            },
        )
        return ServiceResult.success(
            {"trackingId": str(tracking.id), "referrerId": str(referrer.pk)}
        )


class ReferralCommissionService(BaseService):
    """Awards referrer commissions for confirmed bookings."""

    @classmethod
    def award_for_booking(cls, booking: Booking) -> ServiceResult[ReferralCommission | None]:
        """
        Credit the referrer of a tracked booking.

        commission = total x service fee % x commission %, using the
        category rates current at the time of the call. At most one
        commission exists per booking; repeated calls return the first.
        Self-referrals and zero commissions are skipped.
        """
        logger = cls.get_logger()
        if not booking.referral_tracking_id:
            return ServiceResult.success(None)

        tracking = (
            ReferralTracking.objects.select_related("referrer")
            .filter(pk=booking.referral_tracking_id)
            .first()
        )
        if tracking is None:
            logger.warning(
                "Booking references unknown referral tracking",
                extra={
                    "booking_id": str(booking.id),
                    "referral_tracking_id": str(booking.referral_tracking_id),
                },
            )
            return ServiceResult.failure("Referral tracking not found", error_code="TRACKING_NOT_FOUND")

        if booking.user_id is not None and tracking.referrer_id == booking.user_id:
            logger.info(
                "Skipping self-referral commission",
                extra={"booking_id": str(booking.id), "referrer_id": str(tracking.referrer_id)},
            )
            return ServiceResult.failure("Self-referral", error_code="SELF_REFERRAL")

        rates = ReferralSettings.rates_for(booking.booking_type)
        amount = calculate_commission(
            booking.total_amount, rates.service_fee, rates.commission_rate
        )
        if amount <= 0:
            return ServiceResult.success(None)

        now = timezone.now()
        with cls.atomic():
            commission, created = ReferralCommission.objects.get_or_create(
                booking=booking,
                defaults={
                    "referrer": tracking.referrer,
                    "referral_tracking": tracking,
                    "booking_amount": booking.total_amount,
                    "service_fee_rate": rates.service_fee,
                    "commission_rate": rates.commission_rate,
                    "commission_amount": amount,
                    "status": CommissionStatus.PAID,
                    "paid_at": now,
                },
            )
            if tracking.status != TrackingStatus.CONVERTED:
                tracking.status = TrackingStatus.CONVERTED
                tracking.converted_at = now
                tracking.save(update_fields=["status", "converted_at", "updated_at"])

        if created:
            logger.info(
                "Referral commission awarded",
                extra={
                    "booking_id": str(booking.id),
                    "referrer_id": str(tracking.referrer_id),
                    "commission_amount": str(amount),
                },
            )
        return ServiceResult.success(commission)


class ReferralSettingsService(BaseService):
    """Admin edits to the rate table."""

    @classmethod
    def update_settings(cls, values: dict[str, Any]) -> ReferralSettings:
        """
        Apply new rates and save.

        Raises:
            ValidationError: A commission rate exceeds its service fee
        """
        with cls.atomic():
            ReferralSettings.objects.get_or_create(
                pk=SINGLETON_PK, defaults=ReferralSettings.default_values()
            )
            instance = ReferralSettings.objects.select_for_update().get(pk=SINGLETON_PK)
            for name, value in values.items():
                setattr(instance, name, value)
            try:
                instance.full_clean()
            except DjangoValidationError as e:
                raise ValidationError(
                    "Invalid referral settings",
                    details=e.message_dict,
                ) from e
            instance.save()

        cls.get_logger().info(
            "Referral settings updated",
            extra={"version": instance.version, "fields": sorted(values)},
        )
        return instance

    @staticmethod
    def as_dict(instance: ReferralSettings) -> dict[str, Any]:
        data: dict[str, Any] = {}
        for category in RATE_CATEGORIES:
            data[f"{category}_service_fee"] = getattr(instance, f"{category}_service_fee")
            data[f"{category}_commission_rate"] = getattr(instance, f"{category}_commission_rate")
        data["version"] = instance.version
        return data
