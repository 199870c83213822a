"""
Celery tasks for payment processing.

This module provides async tasks for:
- Processing Paystack webhook events
- Retrying failed webhook events
- Polling pending payments that never received a confirmation
- Processing due host payouts
- Reconciling payouts stuck in processing
- Creating host payouts deferred for missing bank details

Periodic schedules are registered in the django_celery_beat data migration
(payments/migrations/0003_register_payout_schedules.py).

Usage:
    from payments.tasks import process_webhook_event

    # Queue a webhook for async processing
    process_webhook_event.delay(webhook_event_id)

    # Run the payout batch now
    from payments.tasks import process_scheduled_payouts
    process_scheduled_payouts.delay()
"""

from __future__ import annotations

import logging
from datetime import timedelta
from uuid import UUID

from celery import shared_task
from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from payments.exceptions import LockAcquisitionError
from payments.locks import DistributedLock
from payments.models import WebhookEvent
from payments.models.webhook_event import MAX_WEBHOOK_RETRIES
from payments.state_machines import WebhookEventStatus

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

PAYOUT_RUN_LOCK_KEY = "payouts:process_scheduled"
PAYOUT_RUN_LOCK_TTL = 600
RECONCILIATION_LOCK_KEY = "payouts:reconcile_processing"
RECONCILIATION_LOCK_TTL = 600
WEBHOOK_RETRY_BATCH_SIZE = 100
STALE_PENDING_WEBHOOK_MINUTES = 5


# =============================================================================
# Webhook Processing Tasks
# =============================================================================


@shared_task(
    bind=True,
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_backoff_max=300,
    retry_kwargs={"max_retries": MAX_WEBHOOK_RETRIES},
    acks_late=True,
)
def process_webhook_event(self, webhook_event_id: str) -> dict:
    """
    Process a Paystack webhook event asynchronously.

    This task:
    1. Loads the WebhookEvent by ID
    2. Checks if already processed (idempotency)
    3. Marks as processing
    4. Dispatches to the registered handler
    5. Marks as processed or failed

    Raises:
        Exception: Re-raised to trigger Celery retry mechanism
    """
    from payments.webhooks.handlers import dispatch_webhook

    if isinstance(webhook_event_id, str):
        webhook_event_id = UUID(webhook_event_id)

    try:
        webhook_event = WebhookEvent.objects.get(id=webhook_event_id)
    except WebhookEvent.DoesNotExist:
        logger.error(
            "WebhookEvent not found",
            extra={"webhook_event_id": str(webhook_event_id)},
        )
        return {"status": "not_found", "webhook_event_id": str(webhook_event_id)}

    if webhook_event.is_processed:
        logger.info(
            "WebhookEvent already processed, skipping",
            extra={"webhook_event_id": str(webhook_event_id), "event_key": webhook_event.event_key},
        )
        return {"status": "already_processed", "webhook_event_id": str(webhook_event_id)}

    webhook_event.mark_processing()
    webhook_event.save()

    try:
        with transaction.atomic():
            result = dispatch_webhook(webhook_event)
    except Exception as e:
        error_msg = f"{type(e).__name__}: {e}"
        webhook_event.mark_failed(error_msg)
        webhook_event.save()
        logger.exception(
            "Webhook processing failed with exception",
            extra={"webhook_event_id": str(webhook_event_id), "error": error_msg},
        )
        raise

    if result.success:
        webhook_event.mark_processed()
        webhook_event.save()
        logger.info(
            "Webhook processed successfully",
            extra={"webhook_event_id": str(webhook_event_id), "event_key": webhook_event.event_key},
        )
        return {
            "status": "processed",
            "webhook_event_id": str(webhook_event_id),
            "event_key": webhook_event.event_key,
        }

    error_msg = result.error or "Handler returned failure"
    webhook_event.mark_failed(error_msg)
    webhook_event.save()
    logger.warning(
        f"Webhook handler failed: {error_msg}",
        extra={
            "webhook_event_id": str(webhook_event_id),
            "event_key": webhook_event.event_key,
            "error_code": result.error_code,
        },
    )
    return {
        "status": "handler_failed",
        "webhook_event_id": str(webhook_event_id),
        "error": error_msg,
    }


@shared_task
def retry_failed_webhooks() -> dict:
    """
    Re-queue failed webhook events that have retries left.

    Events still pending after a few minutes (their original enqueue
    failed) are picked up too.

    Scheduled via celery-beat every 5 minutes.
    """
    stale_pending = timezone.now() - timedelta(minutes=STALE_PENDING_WEBHOOK_MINUTES)
    failed_webhooks = WebhookEvent.objects.filter(
        Q(status=WebhookEventStatus.FAILED)
        | Q(status=WebhookEventStatus.PENDING, created_at__lt=stale_pending),
        retry_count__lt=MAX_WEBHOOK_RETRIES,
    ).order_by("created_at")[:WEBHOOK_RETRY_BATCH_SIZE]

    queued_count = 0
    for webhook in failed_webhooks:
        try:
            process_webhook_event.delay(str(webhook.id))
        except Exception as e:
            logger.error(
                f"Failed to queue webhook for retry: {e}",
                extra={"webhook_event_id": str(webhook.id)},
            )
            continue
        queued_count += 1

    if queued_count:
        logger.info(
            f"Queued {queued_count} webhooks for retry",
            extra={"queued_count": queued_count},
        )
    return {"queued_count": queued_count}


# =============================================================================
# Pending Payment Polling
# =============================================================================


@shared_task(acks_late=True)
def poll_pending_payment(reference: str) -> dict:
    """
    Watch a pending payment until the gateway resolves it.

    Queued after every initiation. Completion by callback or verify ends
    the poll early; otherwise the final gateway query settles it.
    """
    from payments.services import StatusPoller

    result = StatusPoller(reference).run()
    logger.info(
        f"Pending payment poll finished: {result.outcome}",
        extra=result.to_dict(),
    )
    return result.to_dict()


# =============================================================================
# Payout Tasks
# =============================================================================


@shared_task(bind=True)
def process_scheduled_payouts(self, batch_size: int | None = None) -> dict:
    """
    Transfer one batch of due host payouts.

    Scheduled via celery-beat every 15 minutes. Overlapping runs are
    skipped rather than queued.
    """
    from payments.services import PayoutProcessor

    try:
        with DistributedLock(PAYOUT_RUN_LOCK_KEY, ttl=PAYOUT_RUN_LOCK_TTL):
            return PayoutProcessor.process_scheduled(batch_size=batch_size)
    except LockAcquisitionError:
        logger.info("Previous payout run still active, skipping")
        return {"success": True, "processed": 0, "results": [], "skipped": True}


@shared_task(bind=True)
def reconcile_processing_payouts(self, threshold_minutes: int | None = None) -> dict:
    """
    Verify payouts stuck in processing with Paystack.

    Scheduled via celery-beat every 30 minutes.
    """
    from payments.services import PayoutReconciliationService

    try:
        with DistributedLock(RECONCILIATION_LOCK_KEY, ttl=RECONCILIATION_LOCK_TTL):
            return PayoutReconciliationService.reconcile_processing(threshold_minutes)
    except LockAcquisitionError:
        logger.info("Previous reconciliation still active, skipping")
        return {"skipped": True}


@shared_task
def create_missing_host_payouts(host_id: str | None = None) -> dict:
    """
    Create payouts for bookings deferred by missing bank details.

    Runs hourly for every host, and once per host right after their bank
    details are verified.
    """
    from payments.services import HostPayoutReconciliationService

    host = None
    if host_id is not None:
        host = get_user_model().objects.filter(pk=host_id).first()
        if host is None:
            logger.warning("Host not found", extra={"host_id": str(host_id)})
            return {"created": 0, "ready": 0}
    return HostPayoutReconciliationService.create_missing_payouts(host=host)
