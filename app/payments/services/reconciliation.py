"""
Payout reconciliation.

Two sweeps that repair state the normal flow can leave behind:

PayoutReconciliationService.reconcile_processing
    Payouts stuck in PROCESSING (lost webhook, timed-out transfer call)
    are verified against Paystack by their transfer reference and
    finished with the gateway's answer.

HostPayoutReconciliationService.create_missing_payouts
    Bookings left payout_status=scheduled without a Payout because the
    host had no verified bank details get their Payout once the details
    are verified. Past-due ones whose host is still unverified become
    "ready" and count toward the host's manual-withdrawal balance.

Usage:
    from payments.services import PayoutReconciliationService

    summary = PayoutReconciliationService.reconcile_processing()
    summary["completed"]  # 2
"""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING, Any

from django.conf import settings
from django.utils import timezone

from bookings.models import Booking, PayoutStatus
from bookings.services import BookingMaterializer
from core.services import BaseService

from payments.exceptions import GatewayError
from payments.models import BankDetails, Payout
from payments.services.base import GatewayAdapterMixin
from payments.services.payout_state import PayoutStateService
from payments.state_machines import BankVerificationStatus, PaymentProvider, PayoutState

if TYPE_CHECKING:
    from authentication.models import User


class PayoutReconciliationService(GatewayAdapterMixin, BaseService):
    """Resolves payouts stuck in PROCESSING."""

    @classmethod
    def stale_processing(cls, threshold_minutes: int | None = None):
        if threshold_minutes is None:
            threshold_minutes = settings.PAYOUT_RECONCILIATION_THRESHOLD_MINUTES
        cutoff = timezone.now() - timedelta(minutes=threshold_minutes)
        return Payout.objects.filter(
            state=PayoutState.PROCESSING,
            updated_at__lt=cutoff,
            reference__isnull=False,
        ).order_by("updated_at")

    @classmethod
    def reconcile_processing(cls, threshold_minutes: int | None = None) -> dict[str, Any]:
        """
        Verify stale PROCESSING payouts with Paystack.

        success completes the payout; failed/reversed fails it; anything
        else (pending, otp, gateway errors) leaves it for the next run.
        """
        logger = cls.get_logger()
        adapter = cls.get_gateway_adapter(PaymentProvider.PAYSTACK)
        summary = {"checked": 0, "completed": 0, "failed": 0, "unresolved": 0}

        for payout in cls.stale_processing(threshold_minutes):
            summary["checked"] += 1
            try:
                transfer = adapter.verify_transfer(payout.reference)
            except GatewayError as e:
                logger.warning(
                    f"Could not verify transfer: {type(e).__name__}",
                    extra={"payout_id": str(payout.id), "reference": payout.reference},
                )
                summary["unresolved"] += 1
                continue

            if transfer.is_successful:
                PayoutStateService.mark_completed(payout.id)
                summary["completed"] += 1
            elif transfer.is_failed:
                PayoutStateService.mark_failed(
                    payout.id, transfer.reason or f"Transfer {transfer.status}"
                )
                summary["failed"] += 1
            else:
                summary["unresolved"] += 1

        if summary["checked"]:
            logger.info("Processing payouts reconciled", extra=summary)
        return summary


class HostPayoutReconciliationService(BaseService):
    """Creates host payouts that were deferred for missing bank details."""

    @classmethod
    def create_missing_payouts(cls, host: User | None = None) -> dict[str, int]:
        logger = cls.get_logger()
        now = timezone.now()
        pending = Booking.objects.filter(
            payout_status=PayoutStatus.SCHEDULED,
            host__isnull=False,
            host_payout_amount__gt=0,
            payouts__isnull=True,
        )
        if host is not None:
            pending = pending.filter(host=host)

        verified_hosts = set(
            BankDetails.objects.filter(
                verification_status=BankVerificationStatus.VERIFIED,
                user_id__in=pending.values("host_id"),
            ).values_list("user_id", flat=True)
        )

        created = 0
        ready_ids = []
        for booking in pending.select_related("host"):
            if booking.host_id in verified_hosts:
                if BookingMaterializer.schedule_host_payout(booking) is not None:
                    created += 1
            elif booking.payout_scheduled_at and booking.payout_scheduled_at <= now:
                ready_ids.append(booking.id)

        ready = 0
        if ready_ids:
            ready = Booking.objects.filter(id__in=ready_ids).update(
                payout_status=PayoutStatus.READY,
                updated_at=now,
            )

        if created or ready:
            logger.info(
                "Deferred host payouts reconciled",
                extra={
                    "host_id": str(host.pk) if host is not None else None,
                    "payouts_created": created,
                    "payouts_ready": ready,
                },
            )
        return {"created": created, "ready": ready}
