"""
Tests for the payout reconciliation sweeps.

Tests cover:
- Stale PROCESSING payouts verified against Paystack
- Deferred host payouts created once bank details are verified
- Past-due deferred bookings released to the withdrawal balance
"""

import logging
import uuid
from datetime import timedelta

import pytest
from django.utils import timezone

from bookings.models import Booking, PayoutStatus
from bookings.tests.factories import BookingFactory
from payments.adapters import TransferResult
from payments.exceptions import GatewayUnavailableError
from payments.models import Payout
from payments.services import HostPayoutReconciliationService, PayoutReconciliationService
from payments.state_machines import BankVerificationStatus, PayoutState
from payments.tests.factories import BankDetailsFactory, PayoutFactory, reload


def stale_payout(minutes=45, **kwargs):
    """A PROCESSING payout last touched `minutes` ago."""
    kwargs.setdefault("reference", f"payout_{uuid.uuid4().hex}")
    payout = PayoutFactory(state=PayoutState.PROCESSING, **kwargs)
    Payout.objects.filter(pk=payout.pk).update(
        updated_at=timezone.now() - timedelta(minutes=minutes)
    )
    return reload(payout)


def transfer(status, reason=None):
    return TransferResult(transfer_code="TRF_x", reference="", status=status, reason=reason)


# =============================================================================
# Stale PROCESSING payouts
# =============================================================================


class TestReconcileProcessing:
    def test_success_completes(self, paystack_gateway, db):
        payout = stale_payout()
        paystack_gateway.verify_transfer.return_value = transfer("success")

        summary = PayoutReconciliationService.reconcile_processing()

        assert summary == {"checked": 1, "completed": 1, "failed": 0, "unresolved": 0}
        assert reload(payout).state == PayoutState.COMPLETED
        paystack_gateway.verify_transfer.assert_called_once_with(payout.reference)

    def test_reversed_fails_with_reason(self, paystack_gateway, db):
        booking = BookingFactory(payout_status=PayoutStatus.PROCESSING)
        payout = stale_payout(booking=booking, recipient=booking.host)
        paystack_gateway.verify_transfer.return_value = transfer("reversed", "Account closed")

        summary = PayoutReconciliationService.reconcile_processing()

        payout = reload(payout)
        assert summary["failed"] == 1
        assert payout.state == PayoutState.FAILED
        assert payout.failure_reason == "Account closed"
        assert Booking.objects.get(pk=booking.pk).payout_status == PayoutStatus.FAILED

    def test_still_pending_is_unresolved(self, paystack_gateway, db):
        payout = stale_payout()
        paystack_gateway.verify_transfer.return_value = transfer("otp")

        summary = PayoutReconciliationService.reconcile_processing()

        assert summary["unresolved"] == 1
        assert reload(payout).state == PayoutState.PROCESSING

    def test_gateway_error_continues(self, paystack_gateway, db):
        first = stale_payout(minutes=90)
        second = stale_payout(minutes=60)
        paystack_gateway.verify_transfer.side_effect = [
            GatewayUnavailableError("timeout"),
            transfer("success"),
        ]

        summary = PayoutReconciliationService.reconcile_processing()

        assert summary == {"checked": 2, "completed": 1, "failed": 0, "unresolved": 1}
        assert reload(first).state == PayoutState.PROCESSING
        assert reload(second).state == PayoutState.COMPLETED

    def test_recent_payouts_are_left_alone(self, paystack_gateway, db):
        stale_payout(minutes=5)
        PayoutFactory()

        summary = PayoutReconciliationService.reconcile_processing(threshold_minutes=30)

        assert summary["checked"] == 0
        paystack_gateway.verify_transfer.assert_not_called()

    def test_payout_without_reference_is_skipped(self, paystack_gateway, db):
        payout = PayoutFactory(state=PayoutState.PROCESSING)
        Payout.objects.filter(pk=payout.pk).update(
            updated_at=timezone.now() - timedelta(hours=2)
        )

        assert PayoutReconciliationService.reconcile_processing()["checked"] == 0


# =============================================================================
# Deferred host payouts
# =============================================================================


class TestCreateMissingPayouts:
    @pytest.fixture
    def deferred_booking(self, host):
        """Paid booking whose host had no verified details at confirmation."""
        return BookingFactory(
            host=host,
            payout_status=PayoutStatus.SCHEDULED,
            payout_scheduled_at=timezone.now() + timedelta(days=3),
        )

    def test_creates_payout_for_verified_host(self, deferred_booking, verified_bank_details):
        summary = HostPayoutReconciliationService.create_missing_payouts()

        assert summary == {"created": 1, "ready": 0}
        payout = Payout.objects.get(booking=deferred_booking)
        assert payout.state == PayoutState.SCHEDULED
        assert payout.scheduled_for == deferred_booking.payout_scheduled_at
        assert payout.amount == deferred_booking.host_payout_amount

    def test_is_idempotent(self, deferred_booking, verified_bank_details):
        HostPayoutReconciliationService.create_missing_payouts()
        summary = HostPayoutReconciliationService.create_missing_payouts()

        assert summary == {"created": 0, "ready": 0}
        assert Payout.objects.filter(booking=deferred_booking).count() == 1

    def test_unverified_host_not_yet_due(self, deferred_booking):
        BankDetailsFactory(
            user=deferred_booking.host, verification_status=BankVerificationStatus.PENDING
        )

        summary = HostPayoutReconciliationService.create_missing_payouts()

        assert summary == {"created": 0, "ready": 0}
        assert Booking.objects.get(pk=deferred_booking.pk).payout_status == PayoutStatus.SCHEDULED

    def test_unverified_host_past_due_becomes_ready(self, host):
        booking = BookingFactory(host=host, payout_scheduled_at=timezone.now() - timedelta(hours=1))

        summary = HostPayoutReconciliationService.create_missing_payouts()

        assert summary == {"created": 0, "ready": 1}
        assert Booking.objects.get(pk=booking.pk).payout_status == PayoutStatus.READY
        assert not Payout.objects.exists()

    def test_limited_to_one_host(self, deferred_booking, verified_bank_details):
        other = BookingFactory(payout_status=PayoutStatus.SCHEDULED)
        BankDetailsFactory(user=other.host)

        summary = HostPayoutReconciliationService.create_missing_payouts(host=deferred_booking.host)

        assert summary["created"] == 1
        assert not Payout.objects.filter(booking=other).exists()

    def test_free_bookings_are_ignored(self, host, verified_bank_details):
        BookingFactory(host=host, host_payout_amount=0, service_fee_amount=0, total_amount=0)

        assert HostPayoutReconciliationService.create_missing_payouts() == {
            "created": 0,
            "ready": 0,
        }

    def test_logged_counts_do_not_clash_with_log_record(
        self, deferred_booking, verified_bank_details, mocker
    ):
        logger = mocker.patch.object(HostPayoutReconciliationService, "get_logger").return_value

        HostPayoutReconciliationService.create_missing_payouts()

        extra = logger.info.call_args.kwargs["extra"]
        assert extra["payouts_created"] == 1
        assert not set(extra) & set(vars(logging.makeLogRecord({})))
