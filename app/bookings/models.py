"""
Booking model.

Bookings are created only by the BookingMaterializer, once a payment is
confirmed (or straight away for free bookings). The settlement split is
computed at creation and never recomputed; afterwards only the payout
fields change.

Usage:
    from bookings.models import Booking, PayoutStatus

    due = Booking.objects.filter(
        payout_status=PayoutStatus.SCHEDULED,
        payout_scheduled_at__lte=timezone.now(),
    )
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.db.models import F

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel

from listings.models import ItemType


class BookingStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    CONFIRMED = "confirmed", "Confirmed"


class PaymentStatus(models.TextChoices):
    """
    PENDING: Not yet paid
    COMPLETED: Paid through a gateway
    PAID: Nothing to pay (free booking)
    """

    PENDING = "pending", "Pending"
    COMPLETED = "completed", "Completed"
    PAID = "paid", "Paid"


class PaymentMethod(models.TextChoices):
    MPESA = "mpesa", "M-Pesa"
    CARD = "card", "Card"
    FREE = "free", "Free"


class PayoutStatus(models.TextChoices):
    """
    Host payout progress for a booking.

    NONE: No payout owed (free booking or no host payout)
    SCHEDULED: Waiting for payout_scheduled_at (and verified bank details)
    PROCESSING: Transfer initiated with the gateway
    READY: Due, but the host has no verified bank details; counts toward
        the host's manual-withdrawal balance
    COMPLETED: Transfer succeeded
    FAILED: Transfer failed or was reversed
    """

    NONE = "none", "None"
    SCHEDULED = "scheduled", "Scheduled"
    PROCESSING = "processing", "Processing"
    READY = "ready", "Ready"
    COMPLETED = "completed", "Completed"
    FAILED = "failed", "Failed"


class Booking(UUIDPrimaryKeyMixin, BaseModel):
    """
    A confirmed booking of a listing.

    Fields:
        item_id / booking_type: The booked listing and its category
        item_name: Listing name at booking time
        user: Booking account, if the booker was signed in
        host: Listing owner at booking time (payout recipient)
        guest_name / guest_email / guest_phone: Booking party contact
        visit_date: Date of the visit, if the item has one
        total_amount: What the gateway confirmed was charged
        slots_booked: Number of places booked
        booking_details: Adults, children, facilities and activities
        status / payment_status / payment_method: Booking and payment state
        service_fee_amount / host_payout_amount: Settlement split
        payout_status / payout_scheduled_at / payout_reference /
            payout_processed_at: Host payout progress
        pending_payment / checkout_reference: The confirmed payment,
            unique so a payment can materialize only one booking
        referral_tracking_id: Referral click that led to this booking
    """

    # ==========================================================================
    # Item & Parties
    # ==========================================================================

    item_id = models.UUIDField(db_index=True)

    booking_type = models.CharField(
        max_length=20,
        choices=ItemType.choices,
        db_index=True,
    )

    item_name = models.CharField(max_length=200, blank=True, default="")

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="bookings",
    )

    host = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="hosted_bookings",
    )

    is_guest_booking = models.BooleanField(default=False)
    guest_name = models.CharField(max_length=100, blank=True, default="")
    guest_email = models.EmailField(blank=True, default="")
    guest_phone = models.CharField(max_length=20, blank=True, default="")

    # ==========================================================================
    # Visit
    # ==========================================================================

    visit_date = models.DateField(null=True, blank=True)
    slots_booked = models.PositiveIntegerField(default=1)
    booking_details = models.JSONField(default=dict, blank=True)

    # ==========================================================================
    # Payment
    # ==========================================================================

    total_amount = models.DecimalField(max_digits=12, decimal_places=2)

    status = models.CharField(
        max_length=20,
        choices=BookingStatus.choices,
        default=BookingStatus.CONFIRMED,
    )

    payment_status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
    )

    payment_method = models.CharField(
        max_length=20,
        choices=PaymentMethod.choices,
        blank=True,
        default="",
    )

    pending_payment = models.OneToOneField(
        "payments.PendingPayment",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="booking",
    )

    checkout_reference = models.CharField(
        max_length=100,
        null=True,
        blank=True,
        unique=True,
        help_text="Gateway reference of the payment that created this booking",
    )

    # ==========================================================================
    # Settlement
    # ==========================================================================

    service_fee_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    host_payout_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)

    payout_status = models.CharField(
        max_length=20,
        choices=PayoutStatus.choices,
        default=PayoutStatus.NONE,
        db_index=True,
    )
    payout_scheduled_at = models.DateTimeField(null=True, blank=True, db_index=True)
    payout_reference = models.CharField(max_length=100, blank=True, default="")
    payout_processed_at = models.DateTimeField(null=True, blank=True)

    referral_tracking_id = models.UUIDField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Booking"
        verbose_name_plural = "Bookings"
        indexes = [
            models.Index(fields=["host", "payout_status"], name="booking_host_payout_idx"),
            models.Index(
                fields=["payout_status", "payout_scheduled_at"],
                name="booking_payout_due_idx",
            ),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(
                    total_amount=F("service_fee_amount") + F("host_payout_amount")
                ),
                name="booking_settlement_split_balances",
            ),
            models.CheckConstraint(
                condition=models.Q(total_amount__gte=0),
                name="booking_total_non_negative",
            ),
        ]

    def __str__(self) -> str:
        return f"Booking({self.id}, {self.booking_type}, {self.total_amount})"

    @property
    def guest_display_name(self) -> str:
        if self.guest_name:
            return self.guest_name
        return self.user.get_full_name() if self.user else ""
