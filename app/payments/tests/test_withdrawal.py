"""
Tests for WithdrawalService.

Tests cover:
- Available balance for hosts and referrers
- Reservation of the balance by in-flight withdrawals
- Validation failures (amount, payout type, bank details, balance)
- The transfer outcome reported back to the caller
"""

from decimal import Decimal

import pytest

from bookings.models import PayoutStatus
from bookings.tests.factories import BookingFactory
from payments.adapters import TransferRecipientResult, TransferResult
from payments.exceptions import (
    GatewayRequestError,
    InsufficientBalanceError,
    InvalidAmountError,
    NoVerifiedBankDetailsError,
    PaymentValidationError,
)
from payments.models import Payout
from payments.services import WithdrawalService
from payments.state_machines import BankVerificationStatus, PayoutState, RecipientType
from payments.tests.factories import BankDetailsFactory, PayoutFactory
from referrals.tests.factories import ReferralCommissionFactory


@pytest.fixture
def transfers(paystack_gateway):
    paystack_gateway.create_transfer_recipient.return_value = TransferRecipientResult(
        recipient_code="RCP_withdraw"
    )
    paystack_gateway.initiate_transfer.side_effect = lambda **kwargs: TransferResult(
        transfer_code=f"TRF_{kwargs['reference'][-10:]}",
        reference=kwargs["reference"],
        status="pending",
    )
    return paystack_gateway


@pytest.fixture
def ready_host(host, verified_bank_details):
    """Host with two 800 KES bookings ready for withdrawal."""
    BookingFactory.create_batch(2, host=host, payout_status=PayoutStatus.READY)
    return host


@pytest.fixture
def referrer(user):
    BankDetailsFactory(user=user)
    ReferralCommissionFactory.create_batch(3, referrer=user)
    return user


# =============================================================================
# Balances
# =============================================================================


class TestAvailableBalance:
    def test_host_balance_counts_ready_bookings(self, ready_host):
        BookingFactory(host=ready_host, payout_status=PayoutStatus.SCHEDULED)

        assert WithdrawalService.available_balance(ready_host, "host") == Decimal("1600.00")

    def test_host_balance_includes_owned_listings(self, host, trip):
        BookingFactory(item_id=trip.id, host=None, payout_status=PayoutStatus.READY)

        assert WithdrawalService.available_balance(host, "host") == Decimal("800.00")

    def test_host_withdrawals_reserve_balance(self, ready_host):
        PayoutFactory(recipient=ready_host, amount=Decimal("500.00"), state=PayoutState.PROCESSING)
        PayoutFactory(recipient=ready_host, amount=Decimal("300.00"), state=PayoutState.FAILED)

        assert WithdrawalService.available_balance(ready_host, "host") == Decimal("1100.00")

    def test_booking_payouts_do_not_reserve_host_balance(self, ready_host):
        booking = BookingFactory(host=ready_host)
        PayoutFactory(recipient=ready_host, booking=booking, state=PayoutState.COMPLETED)

        assert WithdrawalService.available_balance(ready_host, "host") == Decimal("1600.00")

    def test_referrer_balance(self, referrer):
        PayoutFactory(
            recipient=referrer,
            recipient_type=RecipientType.REFERRER,
            amount=Decimal("5.00"),
            state=PayoutState.COMPLETED,
        )

        assert WithdrawalService.available_balance(referrer, "commission") == Decimal("25.00")

    def test_unknown_type(self, user):
        with pytest.raises(PaymentValidationError) as exc_info:
            WithdrawalService.available_balance(user, "guest")

        assert exc_info.value.error_code == "INVALID_PAYOUT_TYPE"


# =============================================================================
# Requests
# =============================================================================


class TestRequestWithdrawal:
    def test_host_withdrawal(self, transfers, ready_host):
        result = WithdrawalService.request_withdrawal(ready_host, "1000", "host")

        assert result["success"] is True
        assert result["message"] == "Withdrawal initiated successfully"
        assert result["reference"].startswith("withdraw_")

        payout = Payout.objects.get(reference=result["reference"])
        assert payout.state == PayoutState.PROCESSING
        assert payout.recipient_type == RecipientType.HOST
        assert payout.amount == Decimal("1000.00")
        assert payout.booking is None
        assert payout.bank_code == "063"
        assert payout.transfer_code is not None
        assert WithdrawalService.available_balance(ready_host, "host") == Decimal("600.00")

    def test_referrer_withdrawal(self, transfers, referrer):
        result = WithdrawalService.request_withdrawal(referrer, Decimal("30"), "commission")

        assert result["success"] is True
        payout = Payout.objects.get(reference=result["reference"])
        assert payout.recipient_type == RecipientType.REFERRER
        assert WithdrawalService.available_balance(referrer, "referrer") == Decimal("0.00")

    def test_insufficient_balance(self, transfers, ready_host):
        with pytest.raises(InsufficientBalanceError) as exc_info:
            WithdrawalService.request_withdrawal(ready_host, "1600.01", "host")

        assert exc_info.value.message == "Insufficient balance. Available: KES 1600.00"
        assert not Payout.objects.exists()
        transfers.initiate_transfer.assert_not_called()

    def test_second_request_sees_reservation(self, transfers, ready_host):
        WithdrawalService.request_withdrawal(ready_host, "1000", "host")

        with pytest.raises(InsufficientBalanceError) as exc_info:
            WithdrawalService.request_withdrawal(ready_host, "1000", "host")

        assert "KES 600.00" in exc_info.value.message

    def test_requires_verified_bank_details(self, transfers, host):
        BankDetailsFactory(user=host, verification_status=BankVerificationStatus.PENDING)
        BookingFactory(host=host, payout_status=PayoutStatus.READY)

        with pytest.raises(NoVerifiedBankDetailsError):
            WithdrawalService.request_withdrawal(host, "100", "host")

    @pytest.mark.parametrize("amount", ["0", "-5", "lots"])
    def test_invalid_amount(self, transfers, ready_host, amount):
        with pytest.raises(InvalidAmountError):
            WithdrawalService.request_withdrawal(ready_host, amount, "host")

    def test_invalid_type(self, transfers, ready_host):
        with pytest.raises(PaymentValidationError):
            WithdrawalService.request_withdrawal(ready_host, "100", "guest")

    def test_rejected_transfer_releases_balance(self, transfers, ready_host):
        transfers.initiate_transfer.side_effect = GatewayRequestError("Recipient account invalid")

        result = WithdrawalService.request_withdrawal(ready_host, "1000", "host")

        assert result["success"] is False
        assert "Recipient account invalid" in result["message"]
        assert Payout.objects.get(reference=result["reference"]).state == PayoutState.FAILED
        assert WithdrawalService.available_balance(ready_host, "host") == Decimal("1600.00")
