"""
Payout state updates driven by gateway outcomes.

Every path that learns a transfer's fate (the transfer webhooks, the
reconciliation sweep, a synchronous gateway rejection) goes through
PayoutStateService, so the Payout, its Booking and the recipient's
notification always move together.

Terminal payouts are never touched again: a duplicate transfer.success
for a completed payout is logged and ignored.

Usage:
    from payments.services import PayoutStateService

    PayoutStateService.mark_completed(payout.id)
    PayoutStateService.mark_failed(payout.id, "Account name mismatch")
"""

from __future__ import annotations

import uuid

from django.db import transaction

from bookings.models import PayoutStatus
from core.services import BaseService, ServiceResult
from notifications.models import NotificationKind
from notifications.services import NotificationService

from payments.exceptions import PaymentNotFoundError
from payments.models import Payout
from payments.state_machines import PayoutState


class PayoutStateService(BaseService):
    """Applies terminal transfer outcomes to payouts and their bookings."""

    @classmethod
    def _lock(cls, payout_id: uuid.UUID) -> Payout:
        try:
            return Payout.objects.select_for_update().select_related("booking").get(id=payout_id)
        except Payout.DoesNotExist:
            raise PaymentNotFoundError(
                f"Payout {payout_id} not found",
                details={"payout_id": str(payout_id)},
            )

    @classmethod
    def mark_completed(cls, payout_id: uuid.UUID) -> ServiceResult[Payout]:
        """
        PROCESSING -> COMPLETED, booking payout_status -> completed.

        Raises:
            PaymentNotFoundError: Unknown payout
        """
        with transaction.atomic():
            payout = cls._lock(payout_id)
            if payout.state != PayoutState.PROCESSING:
                cls.get_logger().info(
                    "Payout not processing, completion ignored",
                    extra={"payout_id": str(payout_id), "current_state": payout.state},
                )
                return ServiceResult.failure(
                    f"Payout is {payout.state}",
                    error_code="PAYOUT_NOT_PROCESSING",
                )

            payout.complete()
            payout.save()

            booking = payout.booking
            if booking is not None:
                booking.payout_status = PayoutStatus.COMPLETED
                booking.payout_processed_at = payout.processed_at
                booking.save(update_fields=["payout_status", "payout_processed_at", "updated_at"])

        cls.get_logger().info(
            "Payout completed",
            extra={
                "payout_id": str(payout.id),
                "transfer_code": payout.transfer_code,
                "amount": str(payout.amount),
            },
        )
        NotificationService.create_notification(
            user=payout.recipient,
            notification_type=NotificationKind.PAYOUT_COMPLETED,
            title="Payout Successful",
            message=f"Your payout of {payout.currency} {payout.amount} has been sent.",
            data={"payout_id": str(payout.id), "amount": str(payout.amount)},
        )
        return ServiceResult.success(payout)

    @classmethod
    def mark_failed(cls, payout_id: uuid.UUID, reason: str) -> ServiceResult[Payout]:
        """
        Non-terminal -> FAILED, booking payout_status -> failed.

        A failed payout no longer reserves the recipient's balance.

        Raises:
            PaymentNotFoundError: Unknown payout
        """
        with transaction.atomic():
            payout = cls._lock(payout_id)
            if payout.is_terminal:
                cls.get_logger().info(
                    "Payout already terminal, failure ignored",
                    extra={"payout_id": str(payout_id), "current_state": payout.state},
                )
                return ServiceResult.failure(
                    f"Payout is {payout.state}",
                    error_code="PAYOUT_TERMINAL",
                )

            payout.fail(reason=reason)
            payout.save()

            booking = payout.booking
            if booking is not None:
                booking.payout_status = PayoutStatus.FAILED
                booking.save(update_fields=["payout_status", "updated_at"])

        cls.get_logger().warning(
            "Payout failed",
            extra={"payout_id": str(payout.id), "reason": reason},
        )
        NotificationService.create_notification(
            user=payout.recipient,
            notification_type=NotificationKind.PAYOUT_FAILED,
            title="Payout Failed",
            message=f"Your payout of {payout.currency} {payout.amount} failed: {reason}",
            data={"payout_id": str(payout.id), "reason": reason},
        )
        return ServiceResult.success(payout)

    @classmethod
    def record_transfer(
        cls,
        payout_id: uuid.UUID,
        transfer_code: str,
        recipient_code: str = "",
    ) -> Payout:
        """
        Store the gateway's transfer code on a processing payout.

        Skipped when a webhook already moved the payout on; the booking
        follows to payout_status=processing with the payout's reference.
        """
        with transaction.atomic():
            payout = cls._lock(payout_id)
            if payout.state != PayoutState.PROCESSING:
                cls.get_logger().info(
                    "Payout state advanced before transfer code was stored",
                    extra={"payout_id": str(payout_id), "current_state": payout.state},
                )
                return payout

            payout.transfer_code = transfer_code or None
            if recipient_code:
                payout.recipient_code = recipient_code
            payout.save(update_fields=["transfer_code", "recipient_code", "version", "updated_at"])

            booking = payout.booking
            if booking is not None:
                booking.payout_status = PayoutStatus.PROCESSING
                booking.payout_reference = payout.reference or ""
                booking.save(update_fields=["payout_status", "payout_reference", "updated_at"])
        return payout

