"""
Webhook endpoint view for Paystack.

The view:
1. Verifies the x-paystack-signature header (HMAC-SHA512 of the raw body)
2. Creates/retrieves the WebhookEvent record (idempotent by event key)
3. Queues the event for async processing
4. Returns {"received": true} immediately

A missing or wrong signature is answered with 401 before anything is
stored.

Usage:
    # In urls.py
    from payments.webhooks.views import paystack_webhook

    urlpatterns = [
        path("webhooks/paystack/", paystack_webhook, name="paystack_webhook"),
    ]
"""

from __future__ import annotations

import logging

from django.http import HttpRequest, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from payments.adapters import PaystackAdapter
from payments.exceptions import InvalidSignatureError, PaymentValidationError
from payments.models import WebhookEvent
from payments.state_machines import WebhookEventStatus

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "x-paystack-signature"


@csrf_exempt
@require_POST
def paystack_webhook(request: HttpRequest) -> JsonResponse:
    """
    Receive and queue Paystack webhook events.

    Paystack retries deliveries that do not get a 2xx. Duplicates map to
    the same WebhookEvent and are acknowledged without reprocessing.

    Returns:
        JsonResponse with status:
        - 200: Event accepted (new or duplicate)
        - 400: Signed body is not a usable event
        - 401: Missing or invalid signature
    """
    signature = request.headers.get(SIGNATURE_HEADER)

    try:
        event_data = PaystackAdapter.verify_webhook_signature(request.body, signature)
    except InvalidSignatureError as e:
        logger.warning(
            "Webhook signature verification failed",
            extra={"error": str(e), "has_signature": bool(signature)},
        )
        return JsonResponse({"error": "Invalid signature"}, status=401)
    except PaymentValidationError as e:
        logger.warning("Webhook body is not a JSON object", extra={"error": str(e)})
        return JsonResponse({"error": "Invalid payload"}, status=400)

    event_type = event_data.get("event")
    if not event_type or not isinstance(event_data.get("data"), dict):
        logger.warning("Webhook missing required fields")
        return JsonResponse({"error": "Invalid event"}, status=400)

    event_key = WebhookEvent.build_key(event_type, event_data)
    logger.info(
        f"Received Paystack webhook: {event_type}",
        extra={"event_key": event_key, "event_type": event_type},
    )

    webhook_event, created = WebhookEvent.objects.get_or_create(
        event_key=event_key,
        defaults={
            "event_type": event_type,
            "payload": event_data,
            "status": WebhookEventStatus.PENDING,
        },
    )

    if not created and webhook_event.is_processed:
        logger.info(
            "Webhook already processed, returning success",
            extra={"event_key": event_key},
        )
        return JsonResponse({"received": True})

    try:
        from payments.tasks import process_webhook_event

        process_webhook_event.delay(str(webhook_event.id))
        logger.info(
            "Webhook queued for processing",
            extra={"event_key": event_key, "webhook_event_id": str(webhook_event.id)},
        )
    except Exception as e:
        # The stored event is picked up by retry_failed_webhooks
        logger.error(
            f"Failed to queue webhook: {type(e).__name__}",
            extra={"event_key": event_key},
            exc_info=True,
        )

    return JsonResponse({"received": True})
