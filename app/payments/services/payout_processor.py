"""
Scheduled payout processor.

Sends due host payouts to Paystack in batches. Money leaves the platform
here, so every payout goes through the same three phases:

1. Claim: inside a transaction, due payouts are locked (skip_locked, so
   concurrent runs never claim the same row), given a transfer reference
   and moved SCHEDULED -> PROCESSING. The transaction commits.
2. Transfer: outside any transaction, a transfer recipient is resolved
   (reused when the stored one matches the destination) and the transfer
   is initiated with the committed reference.
3. Record: the transfer code is stored if the payout is still PROCESSING;
   the transfer webhooks or the reconciliation sweep finish it.

A failure on one payout never stops the batch.

Usage:
    from payments.services import PayoutProcessor

    summary = PayoutProcessor.process_scheduled()
    summary["processed"]  # 3
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from core.services import BaseService

from payments.adapters import is_retryable_gateway_error
from payments.exceptions import GatewayError
from payments.models import Payout, TransferRecipient
from payments.services.base import GatewayAdapterMixin
from payments.services.payout_state import PayoutStateService
from payments.state_machines import PaymentProvider, PayoutState

RECIPIENT_TYPE = "mobile_money"


@dataclass
class PayoutAttempt:
    """Outcome of one payout within a run."""

    payout_id: str
    status: str
    transfer_code: str | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "payout_id": self.payout_id,
            "status": self.status,
            "transfer_code": self.transfer_code,
        }
        if self.error:
            data["error"] = self.error
        return data


class PayoutProcessor(GatewayAdapterMixin, BaseService):
    """Claims due payouts and initiates their transfers."""

    @classmethod
    def transfer_reference(cls, payout: Payout) -> str:
        return f"payout_{payout.id.hex}"

    @classmethod
    def claim_due(cls, batch_size: int | None = None, now: datetime | None = None) -> list[Payout]:
        """
        Lock up to batch_size due payouts and move them to PROCESSING.

        Due means state SCHEDULED and scheduled_for <= now. Rows already
        locked by another run are skipped.
        """
        batch_size = batch_size or settings.PAYOUT_BATCH_SIZE
        now = now or timezone.now()

        claimed = []
        with transaction.atomic():
            due = list(
                Payout.objects.due(now)
                .select_for_update(skip_locked=True)[:batch_size]
            )
            for payout in due:
                payout.process(reference=cls.transfer_reference(payout))
                payout.save()
                claimed.append(payout)
        return claimed

    @classmethod
    def process_scheduled(
        cls,
        batch_size: int | None = None,
        now: datetime | None = None,
    ) -> dict[str, Any]:
        """
        Claim and transfer one batch of due payouts.

        Returns:
            {"success": True, "processed": n, "results": [...]}, one
            result per claimed payout
        """
        logger = cls.get_logger()
        claimed = cls.claim_due(batch_size=batch_size, now=now)
        if not claimed:
            logger.info("No payouts due")
            return {"success": True, "processed": 0, "results": []}

        logger.info("Processing due payouts", extra={"count": len(claimed)})

        results = []
        for payout in claimed:
            try:
                attempt = cls.execute_payout(payout)
            except Exception as e:
                logger.error(
                    f"Unexpected error processing payout: {type(e).__name__}",
                    extra={"payout_id": str(payout.id)},
                    exc_info=True,
                )
                attempt = PayoutAttempt(
                    payout_id=str(payout.id),
                    status=PayoutState.PROCESSING,
                    error=str(e),
                )
            results.append(attempt.to_dict())

        logger.info(
            "Payout batch finished",
            extra={
                "processed": len(results),
                "failed": sum(1 for r in results if r["status"] == PayoutState.FAILED),
            },
        )
        return {"success": True, "processed": len(results), "results": results}

    @classmethod
    def execute_payout(cls, payout: Payout) -> PayoutAttempt:
        """
        Transfer a payout that is already PROCESSING with a reference.

        Permanent gateway rejections fail the payout. Timeouts, 5xx and
        rate limits leave it PROCESSING: the transfer may have gone
        through, so reconciliation decides.
        """
        logger = cls.get_logger()
        adapter = cls.get_gateway_adapter(PaymentProvider.PAYSTACK)

        try:
            recipient_code = cls.resolve_recipient(payout)
            transfer = adapter.initiate_transfer(
                amount=payout.amount,
                recipient_code=recipient_code,
                reference=payout.reference,
                reason=payout.transfer_reason,
            )
        except GatewayError as e:
            if is_retryable_gateway_error(e):
                logger.warning(
                    f"Transient gateway error, payout left processing: {type(e).__name__}",
                    extra={"payout_id": str(payout.id), "reference": payout.reference},
                )
                return PayoutAttempt(
                    payout_id=str(payout.id),
                    status=PayoutState.PROCESSING,
                    error=str(e),
                )

            logger.error(
                "Gateway rejected payout",
                extra={"payout_id": str(payout.id), "error": str(e)},
            )
            PayoutStateService.mark_failed(payout.id, str(e))
            return PayoutAttempt(
                payout_id=str(payout.id),
                status=PayoutState.FAILED,
                error=str(e),
            )

        if transfer.is_failed:
            reason = transfer.reason or f"Transfer {transfer.status}"
            PayoutStateService.mark_failed(payout.id, reason)
            return PayoutAttempt(
                payout_id=str(payout.id),
                status=PayoutState.FAILED,
                transfer_code=transfer.transfer_code or None,
                error=reason,
            )

        payout = PayoutStateService.record_transfer(
            payout.id,
            transfer_code=transfer.transfer_code,
            recipient_code=recipient_code,
        )
        logger.info(
            "Transfer initiated",
            extra={
                "payout_id": str(payout.id),
                "reference": payout.reference,
                "transfer_code": transfer.transfer_code,
                "transfer_status": transfer.status,
            },
        )
        return PayoutAttempt(
            payout_id=str(payout.id),
            status=payout.state,
            transfer_code=transfer.transfer_code or None,
        )

    @classmethod
    def resolve_recipient(cls, payout: Payout) -> str:
        """
        Recipient code for the payout's destination.

        The stored TransferRecipient is reused when its account number and
        bank code match the payout's snapshot; otherwise a new one is
        created with Paystack and stored.
        """
        existing = TransferRecipient.objects.filter(user_id=payout.recipient_id).first()
        if existing is not None and existing.matches(payout.account_number, payout.bank_code):
            return existing.recipient_code

        result = cls.get_gateway_adapter(PaymentProvider.PAYSTACK).create_transfer_recipient(
            name=payout.account_name,
            account_number=payout.account_number,
            bank_code=payout.bank_code,
            recipient_type=RECIPIENT_TYPE,
        )
        TransferRecipient.objects.update_or_create(
            user_id=payout.recipient_id,
            defaults={
                "recipient_code": result.recipient_code,
                "account_name": payout.account_name,
                "account_number": payout.account_number,
                "bank_code": payout.bank_code,
                "bank_name": payout.bank_name,
            },
        )
        cls.get_logger().info(
            "Transfer recipient registered",
            extra={"recipient_id": str(payout.recipient_id), "bank_code": payout.bank_code},
        )
        return result.recipient_code
