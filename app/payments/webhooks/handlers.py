"""
Webhook event handlers for Paystack events.

This module provides a handler registry and implementations for the
Paystack events the payout pipeline listens to:

- transfer.success: payout completed
- transfer.failed / transfer.reversed: payout failed
- charge.success: acknowledged only; collections are confirmed through
  the verify endpoint and the status query

Usage:
    from payments.webhooks.handlers import dispatch_webhook, register_handler

    @register_handler("custom.event")
    def handle_custom_event(webhook_event: WebhookEvent) -> ServiceResult:
        ...

    result = dispatch_webhook(webhook_event)
"""

from __future__ import annotations

import logging
from typing import Callable

from django.db.models import Q

from core.services import ServiceResult

from payments.models import Payout, WebhookEvent
from payments.services import PayoutStateService

logger = logging.getLogger(__name__)

DEFAULT_FAILURE_REASON = "Transfer failed or reversed"


# =============================================================================
# Handler Registry
# =============================================================================


# Maps event type strings to handler functions
WEBHOOK_HANDLERS: dict[str, Callable[[WebhookEvent], ServiceResult]] = {}


def register_handler(event_type: str) -> Callable:
    """
    Decorator to register a webhook event handler.

    Args:
        event_type: The Paystack event type (e.g., "transfer.success")
    """

    def decorator(func: Callable[[WebhookEvent], ServiceResult]) -> Callable:
        WEBHOOK_HANDLERS[event_type] = func
        logger.debug(f"Registered webhook handler for {event_type}")
        return func

    return decorator


def dispatch_webhook(webhook_event: WebhookEvent) -> ServiceResult:
    """
    Dispatch a webhook event to its handler.

    Unknown event types are logged and treated as success so they are
    not retried forever.
    """
    handler = WEBHOOK_HANDLERS.get(webhook_event.event_type)

    if not handler:
        logger.info(
            f"No handler registered for event type: {webhook_event.event_type}",
            extra={"event_key": webhook_event.event_key},
        )
        return ServiceResult.success(None)

    logger.info(
        f"Dispatching {webhook_event.event_type} to handler",
        extra={"event_key": webhook_event.event_key},
    )
    return handler(webhook_event)


def find_payout(data: dict) -> Payout | None:
    """Payout for a transfer event, by our reference or Paystack's transfer code."""
    reference = data.get("reference")
    transfer_code = data.get("transfer_code")
    lookup = Q()
    if reference:
        lookup |= Q(reference=reference)
    if transfer_code:
        lookup |= Q(transfer_code=transfer_code)
    if not lookup:
        return None
    return Payout.objects.filter(lookup).first()


# =============================================================================
# Transfer Handlers
# =============================================================================


@register_handler("transfer.success")
def handle_transfer_success(webhook_event: WebhookEvent) -> ServiceResult:
    data = webhook_event.data
    payout = find_payout(data)
    if payout is None:
        logger.warning(
            "transfer.success for unknown payout",
            extra={"event_key": webhook_event.event_key, "reference": data.get("reference")},
        )
        return ServiceResult.failure("Payout not found", error_code="PAYOUT_NOT_FOUND")

    result = PayoutStateService.mark_completed(payout.id)
    if not result.success:
        # Duplicate or out-of-order delivery; nothing left to do
        return ServiceResult.success(None)
    return result


def _handle_transfer_failure(webhook_event: WebhookEvent) -> ServiceResult:
    data = webhook_event.data
    payout = find_payout(data)
    if payout is None:
        logger.warning(
            f"{webhook_event.event_type} for unknown payout",
            extra={"event_key": webhook_event.event_key, "reference": data.get("reference")},
        )
        return ServiceResult.failure("Payout not found", error_code="PAYOUT_NOT_FOUND")

    reason = data.get("reason") or DEFAULT_FAILURE_REASON
    result = PayoutStateService.mark_failed(payout.id, reason)
    if not result.success:
        return ServiceResult.success(None)
    return result


@register_handler("transfer.failed")
def handle_transfer_failed(webhook_event: WebhookEvent) -> ServiceResult:
    return _handle_transfer_failure(webhook_event)


@register_handler("transfer.reversed")
def handle_transfer_reversed(webhook_event: WebhookEvent) -> ServiceResult:
    return _handle_transfer_failure(webhook_event)


# =============================================================================
# Charge Handlers
# =============================================================================


@register_handler("charge.success")
def handle_charge_success(webhook_event: WebhookEvent) -> ServiceResult:
    logger.info(
        "charge.success acknowledged",
        extra={"event_key": webhook_event.event_key},
    )
    return ServiceResult.success(None)
