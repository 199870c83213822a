"""
Tests for webhook Celery tasks.

Tests cover:
- process_webhook_event status tracking and idempotency
- retry_failed_webhooks selection
"""

from datetime import timedelta
from unittest.mock import patch

import pytest
from django.utils import timezone

from core.services import ServiceResult
from payments.models import WebhookEvent
from payments.state_machines import PayoutState, WebhookEventStatus
from payments.tasks import process_webhook_event, retry_failed_webhooks
from payments.tests.factories import WebhookEventFactory, reload


# =============================================================================
# process_webhook_event
# =============================================================================


class TestProcessWebhookEvent:
    def test_processes_transfer_success(self, pending_webhook_event, processing_payout):
        result = process_webhook_event(str(pending_webhook_event.id))

        event = WebhookEvent.objects.get(pk=pending_webhook_event.pk)
        assert result["status"] == "processed"
        assert result["event_key"] == event.event_key
        assert event.status == WebhookEventStatus.PROCESSED
        assert event.retry_count == 1
        assert event.processed_at is not None
        assert reload(processing_payout).state == PayoutState.COMPLETED

    def test_not_found(self, db):
        result = process_webhook_event("00000000-0000-0000-0000-000000000000")

        assert result["status"] == "not_found"

    def test_already_processed(self, processed_webhook_event):
        with patch("payments.webhooks.handlers.dispatch_webhook") as mock_dispatch:
            result = process_webhook_event(str(processed_webhook_event.id))

        assert result["status"] == "already_processed"
        mock_dispatch.assert_not_called()

    def test_handler_failure_marks_failed(self, pending_webhook_event):
        with patch(
            "payments.webhooks.handlers.dispatch_webhook",
            return_value=ServiceResult.failure("Payout not found", error_code="PAYOUT_NOT_FOUND"),
        ):
            result = process_webhook_event(str(pending_webhook_event.id))

        event = WebhookEvent.objects.get(pk=pending_webhook_event.pk)
        assert result == {
            "status": "handler_failed",
            "webhook_event_id": str(event.id),
            "error": "Payout not found",
        }
        assert event.status == WebhookEventStatus.FAILED
        assert event.error_message == "Payout not found"

    def test_exception_marks_failed_and_reraises(self, pending_webhook_event):
        with patch(
            "payments.webhooks.handlers.dispatch_webhook",
            side_effect=RuntimeError("database went away"),
        ):
            with pytest.raises(RuntimeError):
                process_webhook_event(str(pending_webhook_event.id))

        event = WebhookEvent.objects.get(pk=pending_webhook_event.pk)
        assert event.status == WebhookEventStatus.FAILED
        assert event.error_message == "RuntimeError: database went away"


# =============================================================================
# retry_failed_webhooks
# =============================================================================


class TestRetryFailedWebhooks:
    @pytest.fixture
    def mock_delay(self):
        with patch("payments.tasks.process_webhook_event.delay") as delay:
            yield delay

    def test_requeues_failed_events(self, failed_webhook_event, mock_delay):
        result = retry_failed_webhooks()

        assert result == {"queued_count": 1}
        mock_delay.assert_called_once_with(str(failed_webhook_event.id))

    def test_skips_exhausted_events(self, mock_delay, db):
        WebhookEventFactory(status=WebhookEventStatus.FAILED, retry_count=5)

        assert retry_failed_webhooks() == {"queued_count": 0}
        mock_delay.assert_not_called()

    def test_picks_up_stale_pending_events(self, mock_delay, db):
        stale = WebhookEventFactory()
        WebhookEvent.objects.filter(pk=stale.pk).update(
            created_at=timezone.now() - timedelta(minutes=10)
        )
        WebhookEventFactory()

        result = retry_failed_webhooks()

        assert result == {"queued_count": 1}
        mock_delay.assert_called_once_with(str(stale.id))

    def test_ignores_processed_events(self, processed_webhook_event, mock_delay):
        assert retry_failed_webhooks() == {"queued_count": 0}

    def test_queue_error_is_skipped(self, failed_webhook_event, mock_delay, db):
        WebhookEventFactory(status=WebhookEventStatus.FAILED, retry_count=2)
        mock_delay.side_effect = [ConnectionError("broker down"), None]

        result = retry_failed_webhooks()

        assert result == {"queued_count": 1}
        assert mock_delay.call_count == 2
