"""
Referral models.

ReferralSettings is a single row of per-category percentages read at the
start of every fee or commission computation. It is never cached in
process memory, so an admin edit applies to the next booking.

Usage:
    from referrals.models import ReferralSettings

    rates = ReferralSettings.rates_for("trip")
    rates.service_fee  # Decimal("20.00")
    rates.commission_rate  # Decimal("5.00")
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from core.model_mixins import UUIDPrimaryKeyMixin, VersionedMixin
from core.models import BaseModel
from listings.models import ItemType

SINGLETON_PK = 1

# Categories with their own rate columns. Events share the trip table but
# have their own rates.
RATE_CATEGORIES = (
    ItemType.TRIP,
    ItemType.EVENT,
    ItemType.HOTEL,
    ItemType.ADVENTURE_PLACE,
    ItemType.ATTRACTION,
)

PERCENT_VALIDATORS = [MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("100"))]


def _percent_field(default: str, help_text: str) -> models.DecimalField:
    return models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal(default),
        validators=PERCENT_VALIDATORS,
        help_text=help_text,
    )


@dataclass(frozen=True)
class CategoryRates:
    item_type: str
    service_fee: Decimal
    commission_rate: Decimal


class ReferralSettings(VersionedMixin, BaseModel):
    """
    Platform service fee and referral commission rates per category.

    All values are percentages. For every category the commission rate
    may not exceed the service fee, since commission is paid out of the
    platform's fee.

    Fields:
        {category}_service_fee: Platform share of the booking total
        {category}_commission_rate: Referrer share of the service fee
        version: Bumped on every save
    """

    trip_service_fee = _percent_field("20.00", "Service fee % for trips")
    trip_commission_rate = _percent_field("5.00", "Commission % for trips")
    event_service_fee = _percent_field("20.00", "Service fee % for events")
    event_commission_rate = _percent_field("5.00", "Commission % for events")
    hotel_service_fee = _percent_field("20.00", "Service fee % for hotels")
    hotel_commission_rate = _percent_field("5.00", "Commission % for hotels")
    adventure_place_service_fee = _percent_field("20.00", "Service fee % for adventure places")
    adventure_place_commission_rate = _percent_field("5.00", "Commission % for adventure places")
    attraction_service_fee = _percent_field("20.00", "Service fee % for attractions")
    attraction_commission_rate = _percent_field("5.00", "Commission % for attractions")

    class Meta:
        verbose_name = "Referral Settings"
        verbose_name_plural = "Referral Settings"

    def __str__(self) -> str:
        return f"ReferralSettings(v{self.version})"

    def save(self, *args, **kwargs):
        self.pk = SINGLETON_PK
        if self._state.adding and not kwargs.get("force_insert", False):
            # An unsaved instance replaces the existing row.
            existing = (
                type(self)
                .objects.filter(pk=SINGLETON_PK)
                .values_list("created_at", flat=True)
                .first()
            )
            if existing is not None:
                self.created_at = existing
                self._state.adding = False
        super().save(*args, **kwargs)

    def clean(self):
        super().clean()
        errors = {}
        for category in RATE_CATEGORIES:
            fee = getattr(self, f"{category}_service_fee")
            commission = getattr(self, f"{category}_commission_rate")
            if fee is not None and commission is not None and commission > fee:
                errors[f"{category}_commission_rate"] = (
                    f"Commission rate ({commission}%) cannot exceed the "
                    f"service fee ({fee}%)."
                )
        if errors:
            raise ValidationError(errors)

    # ==========================================================================
    # Access
    # ==========================================================================

    @staticmethod
    def default_values() -> dict[str, Decimal]:
        values = {}
        for category in RATE_CATEGORIES:
            values[f"{category}_service_fee"] = settings.DEFAULT_SERVICE_FEE_PERCENT
            values[f"{category}_commission_rate"] = settings.DEFAULT_COMMISSION_PERCENT
        return values

    @classmethod
    def defaults(cls) -> ReferralSettings:
        """Unsaved settings populated from DEFAULT_* settings."""
        return cls(pk=SINGLETON_PK, **cls.default_values())

    @classmethod
    def load(cls) -> ReferralSettings:
        """Current settings row, or unsaved defaults when none exists."""
        instance = cls.objects.filter(pk=SINGLETON_PK).first()
        return instance if instance is not None else cls.defaults()

    def get_category_rates(self, item_type: str) -> CategoryRates:
        """
        Rates for a booking category.

        Raises:
            ValueError: Unknown item type
        """
        category = ItemType.normalize(item_type)
        return CategoryRates(
            item_type=category,
            service_fee=Decimal(getattr(self, f"{category}_service_fee")),
            commission_rate=Decimal(getattr(self, f"{category}_commission_rate")),
        )

    @classmethod
    def rates_for(cls, item_type: str) -> CategoryRates:
        return cls.load().get_category_rates(item_type)


class TrackingStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    CONVERTED = "converted", "Converted"


class CommissionStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    PAID = "paid", "Paid"


class ReferralTracking(UUIDPrimaryKeyMixin, BaseModel):
    """
    A visit through a referral link.

    Bookings carry the tracking id; when such a booking is confirmed the
    row is marked converted and the referrer earns a commission.
    """

    referrer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="referral_trackings",
    )
    referred_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="referred_trackings",
    )
    item_id = models.UUIDField()
    item_type = models.CharField(max_length=30, default="unknown")
    referral_type = models.CharField(max_length=30, default="booking")
    status = models.CharField(
        max_length=20,
        choices=TrackingStatus.choices,
        default=TrackingStatus.PENDING,
        db_index=True,
    )
    converted_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Referral Tracking"

    def __str__(self) -> str:
        return f"ReferralTracking({self.id}, {self.status})"


class ReferralCommission(UUIDPrimaryKeyMixin, BaseModel):
    """
    A referrer's commission for one booking.

    One row per booking at most; the row is created already PAID and
    counts toward the referrer's withdrawable balance.
    """

    referrer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="referral_commissions",
    )
    booking = models.OneToOneField(
        "bookings.Booking",
        on_delete=models.PROTECT,
        related_name="referral_commission",
    )
    referral_tracking = models.ForeignKey(
        ReferralTracking,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="commissions",
    )
    booking_amount = models.DecimalField(max_digits=12, decimal_places=2)
    service_fee_rate = models.DecimalField(max_digits=5, decimal_places=2)
    commission_rate = models.DecimalField(max_digits=5, decimal_places=2)
    commission_amount = models.DecimalField(max_digits=12, decimal_places=2)
    status = models.CharField(
        max_length=20,
        choices=CommissionStatus.choices,
        default=CommissionStatus.PAID,
        db_index=True,
    )
    paid_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Referral Commission"
        constraints = [
            models.CheckConstraint(
                condition=models.Q(commission_amount__gte=0),
                name="referral_commission_non_negative",
            ),
        ]

    def __str__(self) -> str:
        return f"ReferralCommission({self.referrer_id}, {self.commission_amount})"
