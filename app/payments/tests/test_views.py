"""
Tests for payment API views.

Tests cover:
- M-Pesa STK push and the Daraja callback (including the callback token)
- Paystack initialize and verify
- Status reads and throttled gateway queries
- Payout actions (batch run, withdrawal, invalid actions)
- Bank details
"""

from decimal import Decimal

import pytest

from bookings.models import Booking, PayoutStatus
from bookings.tests.factories import BookingFactory
from payments.adapters import (
    StkPushResult,
    StkQueryResult,
    TransactionInitResult,
    TransferRecipientResult,
    TransferResult,
)
from payments.exceptions import GatewayUnavailableError
from payments.models import BankDetails, Payout
from payments.state_machines import BankVerificationStatus, PendingPaymentStatus
from payments.tests.factories import BankDetailsFactory, reload
from payments.tests.test_confirmation import REFERENCE, stk_callback, verification

STK_PUSH_URL = "/api/v1/payments/mpesa/stk-push/"
CALLBACK_URL = "/api/v1/payments/mpesa/callback/"
INITIALIZE_URL = "/api/v1/payments/paystack/initialize/"
VERIFY_URL = "/api/v1/payments/paystack/verify/"
PAYOUTS_URL = "/api/v1/payments/payouts/"
BANK_DETAILS_URL = "/api/v1/payments/bank-details/"


def status_url(reference):
    return f"/api/v1/payments/status/{reference}/"


def query_url(reference):
    return f"/api/v1/payments/status/{reference}/query/"


# =============================================================================
# M-Pesa
# =============================================================================


class TestStkPushView:
    def test_starts_payment(self, api_client, mpesa_gateway, booking_data, no_poll):
        mpesa_gateway.stk_push.return_value = StkPushResult(
            merchant_request_id="29115-34620561-1",
            checkout_request_id=REFERENCE,
            response_code="0",
            customer_message="Success. Request accepted for processing",
        )

        response = api_client.post(
            STK_PUSH_URL,
            {"phone_number": "0712345678", "amount": "1500", "booking_data": booking_data},
            format="json",
        )

        assert response.status_code == 201
        assert response.data["success"] is True
        assert response.data["data"]["reference"] == REFERENCE
        assert response.data["data"]["status"] == PendingPaymentStatus.PENDING

    def test_invalid_phone(self, api_client, mpesa_gateway, booking_data):
        response = api_client.post(
            STK_PUSH_URL,
            {"phone_number": "12345", "amount": "1500", "booking_data": booking_data},
            format="json",
        )

        assert response.status_code == 400
        assert response.data["error_code"] == "INVALID_PHONE_NUMBER"
        mpesa_gateway.stk_push.assert_not_called()

    def test_zero_amount_rejected(self, api_client, mpesa_gateway, booking_data):
        response = api_client.post(
            STK_PUSH_URL,
            {"phone_number": "0712345678", "amount": "0", "booking_data": booking_data},
            format="json",
        )

        assert response.status_code == 400
        mpesa_gateway.stk_push.assert_not_called()

    def test_gateway_down(self, api_client, mpesa_gateway, booking_data):
        mpesa_gateway.stk_push.side_effect = GatewayUnavailableError(
            "Daraja unreachable", gateway="mpesa", gateway_code="timeout"
        )

        response = api_client.post(
            STK_PUSH_URL,
            {"phone_number": "0712345678", "amount": "1500", "booking_data": booking_data},
            format="json",
        )

        assert response.status_code == 502
        assert response.data["success"] is False


class TestMpesaCallbackView:
    def test_success_books(self, api_client, mpesa_payment):
        response = api_client.post(CALLBACK_URL, stk_callback(), format="json")

        assert response.status_code == 200
        assert response.data == {"success": True, "status": "completed", "duplicate": False}
        assert Booking.objects.filter(checkout_reference=REFERENCE).exists()

    def test_redelivery_is_acknowledged(self, api_client, mpesa_payment):
        api_client.post(CALLBACK_URL, stk_callback(), format="json")

        response = api_client.post(CALLBACK_URL, stk_callback(), format="json")

        assert response.status_code == 200
        assert response.data["duplicate"] is True
        assert Booking.objects.filter(checkout_reference=REFERENCE).count() == 1

    def test_unknown_reference_is_acknowledged(self, api_client, db):
        response = api_client.post(CALLBACK_URL, stk_callback(reference="ws_CO_nope"), format="json")

        assert response.status_code == 200
        assert response.data["success"] is False

    def test_malformed_body_is_acknowledged(self, api_client, db):
        response = api_client.post(CALLBACK_URL, {"Body": {}}, format="json")

        assert response.status_code == 200
        assert response.data["success"] is False

    def test_token_required_when_configured(self, api_client, mpesa_payment, settings):
        settings.MPESA_CALLBACK_TOKEN = "cb-token"

        response = api_client.post(CALLBACK_URL, stk_callback(), format="json")

        assert response.status_code == 403
        assert reload(mpesa_payment).status == PendingPaymentStatus.PENDING

    def test_non_ascii_token_rejected(self, api_client, mpesa_payment, settings):
        settings.MPESA_CALLBACK_TOKEN = "cb-token"

        response = api_client.post(f"{CALLBACK_URL}?token=caf%C3%A9", stk_callback(), format="json")

        assert response.status_code == 403
        assert reload(mpesa_payment).status == PendingPaymentStatus.PENDING

    def test_token_accepted(self, api_client, mpesa_payment, settings):
        settings.MPESA_CALLBACK_TOKEN = "cb-token"

        response = api_client.post(f"{CALLBACK_URL}?token=cb-token", stk_callback(), format="json")

        assert response.status_code == 200
        assert reload(mpesa_payment).status == PendingPaymentStatus.COMPLETED


# =============================================================================
# Paystack
# =============================================================================


class TestPaystackViews:
    def test_initialize(self, api_client, paystack_gateway, booking_data, settings):
        settings.PAYSTACK_PUBLIC_KEY = "pk_test_public"
        paystack_gateway.initialize_transaction.side_effect = (
            lambda email, amount, reference, **kwargs: TransactionInitResult(
                reference=reference,
                access_code="0peioxfhpn",
                authorization_url="https://checkout.paystack.com/0peioxfhpn",
            )
        )

        response = api_client.post(
            INITIALIZE_URL,
            {"email": "akinyi@example.com", "amount": "1000", "booking_data": booking_data},
            format="json",
        )

        data = response.data["data"]
        assert response.status_code == 201
        assert data["reference"].startswith("ps_")
        assert data["access_code"] == "0peioxfhpn"
        assert data["public_key"] == "pk_test_public"

    def test_initialize_requires_email(self, api_client, paystack_gateway, booking_data):
        response = api_client.post(
            INITIALIZE_URL,
            {"amount": "1000", "booking_data": booking_data},
            format="json",
        )

        assert response.status_code == 400
        paystack_gateway.initialize_transaction.assert_not_called()

    def test_verify_success(self, api_client, paystack_gateway, card_payment):
        paystack_gateway.verify_transaction.return_value = verification()

        response = api_client.post(VERIFY_URL, {"reference": "ref_abc"}, format="json")

        data = response.data["data"]
        assert response.status_code == 200
        assert response.data["success"] is True
        assert data["isSuccessful"] is True
        assert Decimal(data["serviceFee"]) == Decimal("200")
        assert Decimal(data["hostPayout"]) == Decimal("800")

    def test_verify_failed_charge(self, api_client, paystack_gateway, card_payment):
        paystack_gateway.verify_transaction.return_value = verification(status="failed")

        response = api_client.post(VERIFY_URL, {"reference": "ref_abc"}, format="json")

        assert response.status_code == 200
        assert response.data["success"] is False
        assert reload(card_payment).status == PendingPaymentStatus.FAILED


# =============================================================================
# Status
# =============================================================================


class TestPaymentStatusViews:
    def test_stored_status(self, api_client, mpesa_payment, mpesa_gateway):
        response = api_client.get(status_url(REFERENCE))

        assert response.status_code == 200
        assert response.data["data"]["reference"] == REFERENCE
        assert response.data["data"]["status"] == PendingPaymentStatus.PENDING
        assert response.data["data"]["booking_id"] is None
        mpesa_gateway.stk_query.assert_not_called()

    def test_unknown_reference(self, api_client, db):
        response = api_client.get(status_url("ws_CO_nope"))

        assert response.status_code == 404
        assert response.data["error_code"] == "PAYMENT_NOT_FOUND"

    def test_query_completes_payment(self, api_client, mpesa_gateway, mpesa_payment):
        mpesa_gateway.stk_query.return_value = StkQueryResult(
            checkout_request_id=REFERENCE, result_code="0", result_desc="Processed"
        )

        response = api_client.post(query_url(REFERENCE))

        assert response.status_code == 200
        assert response.data["data"]["status"] == PendingPaymentStatus.COMPLETED
        assert response.data["data"]["booking_id"] is not None

    def test_query_throttled(self, api_client, mpesa_gateway, mpesa_payment):
        mpesa_gateway.stk_query.return_value = StkQueryResult(
            checkout_request_id=REFERENCE, result_code=None
        )
        api_client.post(query_url(REFERENCE))

        response = api_client.post(query_url(REFERENCE))

        assert response.status_code == 429
        assert response.data["error_code"] == "GATEWAY_RATE_LIMITED"
        assert int(response["Retry-After"]) >= 0
        assert mpesa_gateway.stk_query.call_count == 1


# =============================================================================
# Payouts
# =============================================================================


@pytest.fixture
def transfers(paystack_gateway):
    paystack_gateway.create_transfer_recipient.return_value = TransferRecipientResult(
        recipient_code="RCP_view"
    )
    paystack_gateway.initiate_transfer.side_effect = lambda **kwargs: TransferResult(
        transfer_code="TRF_view",
        reference=kwargs["reference"],
        status="pending",
    )
    return paystack_gateway


class TestPayoutsView:
    def test_requires_authentication(self, api_client, db):
        response = api_client.post(PAYOUTS_URL, {"action": "process_scheduled"}, format="json")

        assert response.status_code == 401

    def test_batch_run_requires_staff(self, api_client, user):
        api_client.force_authenticate(user)

        response = api_client.post(PAYOUTS_URL, {"action": "process_scheduled"}, format="json")

        assert response.status_code == 403

    def test_staff_runs_batch(self, api_client, staff_user, paystack_gateway):
        api_client.force_authenticate(staff_user)

        response = api_client.post(PAYOUTS_URL, {"action": "process_scheduled"}, format="json")

        assert response.status_code == 200
        assert response.data == {"success": True, "processed": 0, "results": []}

    def test_invalid_action(self, api_client, user):
        api_client.force_authenticate(user)

        response = api_client.post(PAYOUTS_URL, {"action": "refund"}, format="json")

        assert response.status_code == 400
        assert response.data["error"] == "Invalid action"
        assert response.data["error_code"] == "INVALID_ACTION"

    def test_withdraw(self, api_client, host, verified_bank_details, transfers):
        BookingFactory.create_batch(2, host=host, payout_status=PayoutStatus.READY)
        api_client.force_authenticate(host)

        response = api_client.post(
            PAYOUTS_URL,
            {"action": "withdraw", "amount": "1000", "payout_type": "host"},
            format="json",
        )

        assert response.status_code == 200
        assert response.data["success"] is True
        assert Payout.objects.filter(reference=response.data["reference"]).exists()

    def test_withdraw_insufficient_balance(self, api_client, host, verified_bank_details, transfers):
        api_client.force_authenticate(host)

        response = api_client.post(
            PAYOUTS_URL,
            {"action": "withdraw", "amount": "1000", "payout_type": "host"},
            format="json",
        )

        assert response.status_code == 400
        assert response.data["error"] == "Insufficient balance. Available: KES 0.00"
        transfers.initiate_transfer.assert_not_called()

    def test_withdraw_unknown_type(self, api_client, user):
        api_client.force_authenticate(user)

        response = api_client.post(
            PAYOUTS_URL,
            {"action": "withdraw", "amount": "100", "payout_type": "guest"},
            format="json",
        )

        assert response.status_code == 400

    def test_withdraw_for_another_user_requires_staff(self, api_client, user, host):
        api_client.force_authenticate(user)

        response = api_client.post(
            PAYOUTS_URL,
            {"action": "withdraw", "amount": "100", "payout_type": "host", "user_id": host.pk},
            format="json",
        )

        assert response.status_code == 403


# =============================================================================
# Bank Details
# =============================================================================


class TestBankDetailsView:
    def test_none_yet(self, api_client, user):
        api_client.force_authenticate(user)

        response = api_client.get(BANK_DETAILS_URL)

        assert response.status_code == 200
        assert response.data == {"success": True, "data": None}

    def test_submit_goes_to_review(self, api_client, user):
        api_client.force_authenticate(user)

        response = api_client.put(
            BANK_DETAILS_URL,
            {
                "bank_name": "MPESA",
                "account_number": "0712 345 678",
                "account_holder_name": "Akinyi Otieno",
            },
            format="json",
        )

        details = BankDetails.objects.get(user=user)
        assert response.status_code == 200
        assert details.account_number == "0712345678"
        assert details.verification_status == BankVerificationStatus.PENDING

    def test_changing_account_resets_verification(self, api_client, user):
        BankDetailsFactory(user=user, account_number="0712345678")
        api_client.force_authenticate(user)

        api_client.put(
            BANK_DETAILS_URL,
            {
                "bank_name": "MPESA",
                "account_number": "0799999999",
                "account_holder_name": "Akinyi Otieno",
            },
            format="json",
        )

        details = BankDetails.objects.get(user=user)
        assert details.verification_status == BankVerificationStatus.PENDING
        assert details.verified_at is None

    def test_name_change_keeps_verification(self, api_client, user):
        BankDetailsFactory(user=user, account_number="0712345678")
        api_client.force_authenticate(user)

        api_client.put(
            BANK_DETAILS_URL,
            {
                "bank_name": "MPESA",
                "account_number": "0712345678",
                "account_holder_name": "A. Otieno",
            },
            format="json",
        )

        assert BankDetails.objects.get(user=user).verification_status == (
            BankVerificationStatus.VERIFIED
        )

    def test_non_digit_account_rejected(self, api_client, user):
        api_client.force_authenticate(user)

        response = api_client.put(
            BANK_DETAILS_URL,
            {"bank_name": "MPESA", "account_number": "07-abc", "account_holder_name": "A"},
            format="json",
        )

        assert response.status_code == 400


def test_stored_status_after_callback(api_client, mpesa_payment):
    api_client.post(CALLBACK_URL, stk_callback(), format="json")

    response = api_client.get(status_url(REFERENCE))

    data = response.data["data"]
    assert data["status"] == PendingPaymentStatus.COMPLETED
    assert data["receipt_number"] == "QGH7XYZ12"
    assert Decimal(data["amount"]) == Decimal("1500.00")
    assert data["booking_id"] is not None

