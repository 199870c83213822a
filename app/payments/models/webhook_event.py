"""
WebhookEvent model for Paystack webhook tracking.

Every verified webhook is stored before it is handled. Paystack events
carry no event id, so the idempotency key is ``"{event}:{reference}"``;
a redelivered ``transfer.success`` for the same transfer maps to the same
row and is not handled twice.

Usage:
    event, created = WebhookEvent.objects.get_or_create(
        event_key="transfer.success:payout_9b1d...",
        defaults={"event_type": "transfer.success", "payload": body},
    )
    if not created and event.is_processed:
        return JsonResponse({"received": True})
"""

from __future__ import annotations

import hashlib
import json

from django.db import models
from django.utils import timezone

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel

from payments.state_machines import WebhookEventStatus

MAX_WEBHOOK_RETRIES = 5


class WebhookEvent(UUIDPrimaryKeyMixin, BaseModel):
    """
    Tracks gateway webhook events for idempotent processing.

    Processing Flow:
        1. Verify the x-paystack-signature header
        2. get_or_create WebhookEvent by event_key
        3. If it already exists and is PROCESSED -> acknowledge (duplicate)
        4. Queue processing; the task marks PROCESSING, routes to the
           handler, then marks PROCESSED or FAILED
        5. FAILED events are retried by retry_failed_webhooks

    Fields:
        event_key: "{event}:{reference}" - unique for idempotency
        event_type: Paystack event name (e.g. 'transfer.success')
        payload: Full JSON body
        status: Processing status
        processed_at: When processing succeeded
        error_message: Error details if processing failed
        retry_count: Number of processing attempts
    """

    event_key = models.CharField(
        max_length=255,
        unique=True,
        help_text="'{event}:{reference}' - unique constraint for idempotency",
    )

    event_type = models.CharField(
        max_length=100,
        db_index=True,
        help_text="Gateway event type (e.g., 'transfer.success')",
    )

    payload = models.JSONField(help_text="Full webhook payload (JSON)")

    status = models.CharField(
        max_length=20,
        choices=WebhookEventStatus.choices,
        default=WebhookEventStatus.PENDING,
        db_index=True,
    )

    processed_at = models.DateTimeField(null=True, blank=True)

    error_message = models.TextField(null=True, blank=True)

    retry_count = models.PositiveSmallIntegerField(
        default=0,
        help_text="Number of processing attempts",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Webhook Event"
        verbose_name_plural = "Webhook Events"
        indexes = [
            models.Index(fields=["status", "created_at"], name="webhook_status_created_idx"),
            models.Index(fields=["status", "retry_count"], name="webhook_status_retry_idx"),
        ]

    def __str__(self) -> str:
        return f"WebhookEvent({self.event_key})"

    @staticmethod
    def build_key(event_type: str, payload: dict) -> str:
        """
        Idempotency key for an event body: its type plus the data reference.

        Bodies without a reference, transfer code or id are keyed by a hash
        of their content, so only an identical redelivery collapses.
        """
        data = payload.get("data") or {}
        reference = data.get("reference") or data.get("transfer_code") or data.get("id")
        if not reference:
            body = json.dumps(payload, sort_keys=True, default=str).encode()
            reference = f"sha256-{hashlib.sha256(body).hexdigest()}"
        return f"{event_type}:{reference}"

    # ==========================================================================
    # Properties
    # ==========================================================================

    @property
    def is_processed(self) -> bool:
        return self.status == WebhookEventStatus.PROCESSED

    @property
    def is_failed(self) -> bool:
        return self.status == WebhookEventStatus.FAILED

    @property
    def can_retry(self) -> bool:
        return self.is_failed and self.retry_count < MAX_WEBHOOK_RETRIES

    @property
    def data(self) -> dict:
        return self.payload.get("data") or {}

    # ==========================================================================
    # Helper Methods (caller saves)
    # ==========================================================================

    def mark_processing(self) -> None:
        self.status = WebhookEventStatus.PROCESSING
        self.retry_count += 1

    def mark_processed(self) -> None:
        self.status = WebhookEventStatus.PROCESSED
        self.processed_at = timezone.now()
        self.error_message = None

    def mark_failed(self, error_message: str) -> None:
        self.status = WebhookEventStatus.FAILED
        self.error_message = error_message
