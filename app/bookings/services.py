"""
Booking materialization.

BookingMaterializer turns a confirmed payment into a Booking row with its
settlement split, schedules the host payout and announces the booking.

Materialization is idempotent per payment: Booking.checkout_reference and
Booking.pending_payment are unique, so a second delivery for the same
payment hits the constraint, is caught, and returns the existing booking.

Usage:
    from bookings.services import BookingMaterializer

    result = BookingMaterializer.materialize(
        pending_payment,
        amount=Decimal("1500.00"),
        payment_method=PaymentMethod.MPESA,
    )
    result.booking.host_payout_amount  # Decimal("1200.00")
    result.created  # False on a duplicate delivery
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from core.services import BaseService
from listings.services import resolve_listing
from notifications.models import NotificationKind
from notifications.services import NotificationService
from payments.banks import get_bank_code
from payments.exceptions import PaymentValidationError
from payments.models import BankDetails, Payout
from payments.state_machines import BankVerificationStatus, RecipientType
from referrals.models import ReferralSettings

from bookings.fees import FeeSplit, calculate_fee_split, compute_payout_schedule, to_money
from bookings.models import (
    Booking,
    BookingStatus,
    PaymentMethod,
    PaymentStatus,
    PayoutStatus,
)
from bookings.serializers import BookingPayloadSerializer
from bookings.signals import booking_confirmed

if TYPE_CHECKING:
    from authentication.models import User
    from payments.models import PendingPayment


@dataclass
class MaterializationResult:
    """
    Outcome of materializing a payment.

    Attributes:
        booking: The booking for the payment (new or pre-existing)
        created: False when the booking already existed
        payout: Scheduled host Payout, if one was created now
        split: Fee split used for a new booking
    """

    booking: Booking
    created: bool
    payout: Payout | None = None
    split: FeeSplit | None = None


class BookingMaterializer(BaseService):
    """
    Creates bookings from confirmed payments.

    Steps for a new booking:
        1. Parse the stored booking payload
        2. Read the category rates (fresh from ReferralSettings)
        3. Split the confirmed amount into service fee and host payout
        4. Resolve the host and the payout date (visit - lead time, or now)
        5. Insert the Booking (and a scheduled Payout when the host has
           verified bank details) in one savepoint
        6. Send booking_confirmed and notify the host
    """

    @classmethod
    def _validate_payload(cls, payload: dict[str, Any]) -> BookingPayloadSerializer:
        serializer = BookingPayloadSerializer(data=payload or {})
        if not serializer.is_valid():
            raise PaymentValidationError(
                "Invalid booking payload",
                error_code="INVALID_BOOKING_PAYLOAD",
                details=serializer.errors,
            )
        return serializer

    @classmethod
    def parse_payload(cls, payload: dict[str, Any]) -> dict[str, Any]:
        """Validated booking payload with typed values (UUID, date, Decimal)."""
        return cls._validate_payload(payload).validated_data

    @classmethod
    def prepare_payload(cls, payload: dict[str, Any]) -> dict[str, Any]:
        """Validated booking payload in JSON-safe form, for PendingPayment storage."""
        return dict(cls._validate_payload(payload).data)

    @classmethod
    def materialize(
        cls,
        pending_payment: PendingPayment,
        amount: Decimal,
        payment_method: str,
    ) -> MaterializationResult:
        """
        Create the booking for a confirmed payment.

        Args:
            pending_payment: A PendingPayment already marked completed
            amount: Amount the gateway confirmed was charged; this, not the
                payload's total, becomes the booking total
            payment_method: PaymentMethod value

        Returns:
            MaterializationResult (created=False on a duplicate)

        Raises:
            PaymentValidationError: The stored payload is unusable
        """
        existing = Booking.objects.filter(
            checkout_reference=pending_payment.checkout_reference
        ).first()
        if existing is not None:
            cls.get_logger().info(
                "Booking already exists for payment",
                extra={
                    "reference": pending_payment.checkout_reference,
                    "booking_id": str(existing.id),
                },
            )
            return MaterializationResult(booking=existing, created=False)

        data = cls.parse_payload(pending_payment.booking_payload)
        rates = ReferralSettings.rates_for(data["booking_type"])
        split = calculate_fee_split(amount, rates.service_fee)

        try:
            with transaction.atomic():
                booking, payout = cls._create_booking(
                    data,
                    split,
                    user=pending_payment.user,
                    payment_status=PaymentStatus.COMPLETED,
                    payment_method=payment_method,
                    pending_payment=pending_payment,
                )
        except IntegrityError:
            booking = Booking.objects.filter(
                checkout_reference=pending_payment.checkout_reference
            ).first()
            if booking is None:
                raise
            cls.get_logger().info(
                "Concurrent delivery already created the booking",
                extra={
                    "reference": pending_payment.checkout_reference,
                    "booking_id": str(booking.id),
                },
            )
            return MaterializationResult(booking=booking, created=False)

        cls.get_logger().info(
            "Booking materialized",
            extra={
                "reference": pending_payment.checkout_reference,
                "booking_id": str(booking.id),
                "total_amount": str(split.total),
                "service_fee_amount": str(split.service_fee),
                "host_payout_amount": str(split.host_payout),
                "service_fee_rate": str(split.service_fee_rate),
                "payout_id": str(payout.id) if payout else None,
            },
        )
        cls._announce(booking)
        return MaterializationResult(booking=booking, created=True, payout=payout, split=split)

    @classmethod
    def create_free_booking(cls, payload: dict[str, Any], user: User | None = None) -> Booking:
        """
        Create a booking that costs nothing.

        No payment, no fee and no payout: payment_status is ``paid`` and
        payout_status ``none``.
        """
        data = cls.parse_payload(payload)
        split = calculate_fee_split(Decimal("0"), Decimal("0"))
        with transaction.atomic():
            booking, _ = cls._create_booking(
                data,
                split,
                user=user,
                payment_status=PaymentStatus.PAID,
                payment_method=PaymentMethod.FREE,
            )

        cls.get_logger().info(
            "Free booking created",
            extra={"booking_id": str(booking.id), "item_id": str(booking.item_id)},
        )
        cls._announce(booking)
        return booking

    # =========================================================================
    # Internals
    # =========================================================================

    @classmethod
    def _create_booking(
        cls,
        data: dict[str, Any],
        split: FeeSplit,
        *,
        user: User | None,
        payment_status: str,
        payment_method: str,
        pending_payment: PendingPayment | None = None,
    ) -> tuple[Booking, Payout | None]:
        listing = resolve_listing(data["booking_type"], data["item_id"])
        host = listing.created_by if listing else None
        owes_payout = host is not None and split.host_payout > 0

        scheduled_at = None
        if owes_payout:
            scheduled_at = compute_payout_schedule(
                data.get("visit_date"),
                now=timezone.now(),
                lead_hours=settings.PAYOUT_LEAD_TIME_HOURS,
            )

        booking = Booking.objects.create(
            item_id=data["item_id"],
            booking_type=data["booking_type"],
            item_name=data.get("item_name") or (listing.name if listing else ""),
            user=user,
            host=host,
            is_guest_booking=data.get("is_guest_booking") or user is None,
            guest_name=data.get("guest_name", ""),
            guest_email=data.get("guest_email", ""),
            guest_phone=data.get("guest_phone", ""),
            visit_date=data.get("visit_date"),
            slots_booked=data.get("slots_booked", 1),
            booking_details=dict(data.get("booking_details") or {}),
            total_amount=split.total,
            status=BookingStatus.CONFIRMED,
            payment_status=payment_status,
            payment_method=payment_method,
            service_fee_amount=split.service_fee,
            host_payout_amount=split.host_payout,
            payout_status=PayoutStatus.SCHEDULED if owes_payout else PayoutStatus.NONE,
            payout_scheduled_at=scheduled_at,
            pending_payment=pending_payment,
            checkout_reference=pending_payment.checkout_reference if pending_payment else None,
            referral_tracking_id=data.get("referral_tracking_id"),
        )

        payout = None
        if owes_payout:
            payout = cls.schedule_host_payout(booking)
        return booking, payout

    @classmethod
    def schedule_host_payout(cls, booking: Booking) -> Payout | None:
        """
        Create the scheduled host Payout for a booking.

        Only when the host has VERIFIED bank details; otherwise the
        booking stays payout_status=scheduled without a Payout until
        create_missing_host_payouts runs. The destination is snapshotted
        onto the payout.
        """
        bank_details = BankDetails.objects.filter(
            user_id=booking.host_id,
            verification_status=BankVerificationStatus.VERIFIED,
        ).first()
        if bank_details is None:
            cls.get_logger().info(
                "Host has no verified bank details, payout deferred",
                extra={"booking_id": str(booking.id), "host_id": str(booking.host_id)},
            )
            return None

        payout = Payout(
            recipient_id=booking.host_id,
            recipient_type=RecipientType.HOST,
            booking=booking,
            amount=to_money(booking.host_payout_amount),
            currency=settings.PAYOUT_CURRENCY,
            bank_name=bank_details.bank_name,
            bank_code=get_bank_code(bank_details.bank_name),
            account_number=bank_details.account_number,
            account_name=bank_details.account_holder_name,
        )
        payout.schedule(booking.payout_scheduled_at or timezone.now())
        payout.save()
        return payout

    @classmethod
    def _announce(cls, booking: Booking) -> None:
        """Send booking_confirmed and the host notification."""
        responses = booking_confirmed.send_robust(sender=Booking, booking=booking)
        for receiver, response in responses:
            if isinstance(response, Exception):
                cls.get_logger().error(
                    f"booking_confirmed receiver failed: {type(response).__name__}",
                    extra={
                        "booking_id": str(booking.id),
                        "receiver": getattr(receiver, "__name__", repr(receiver)),
                    },
                    exc_info=(type(response), response, response.__traceback__),
                )

        if booking.host_id is None:
            return
        guest = booking.guest_display_name or "A guest"
        visit = f" for {booking.visit_date.isoformat()}" if booking.visit_date else ""
        NotificationService.create_notification(
            user=booking.host,
            notification_type=NotificationKind.BOOKING_RECEIVED,
            title="New Booking",
            message=f"{guest} booked {booking.item_name or 'your listing'}{visit}.",
            data={
                "booking_id": str(booking.id),
                "total_amount": str(booking.total_amount),
                "host_payout_amount": str(booking.host_payout_amount),
            },
        )
