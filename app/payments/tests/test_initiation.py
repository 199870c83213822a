"""
Tests for PaymentInitiationService.

Tests cover:
- Phone number normalization
- M-Pesa STK push initiation
- Paystack card initiation
- Validation failures never reaching the gateway
"""

from decimal import Decimal

import pytest

from payments.adapters import StkPushResult, TransactionInitResult
from payments.exceptions import (
    GatewayRequestError,
    GatewayUnavailableError,
    InvalidAmountError,
    PaymentValidationError,
)
from payments.models import PendingPayment
from payments.services import PaymentInitiationService, generate_card_reference, normalize_phone
from payments.state_machines import PaymentProvider, PendingPaymentStatus

CHECKOUT_REQUEST_ID = "ws_CO_191220191020363925"


@pytest.fixture
def accepted_push(mpesa_gateway):
    mpesa_gateway.stk_push.return_value = StkPushResult(
        merchant_request_id="29115-34620561-1",
        checkout_request_id=CHECKOUT_REQUEST_ID,
        response_code="0",
        customer_message="Success. Request accepted for processing",
    )
    return mpesa_gateway


@pytest.fixture
def initialized_card(paystack_gateway):
    def _initialize(email, amount, reference, metadata=None, callback_url=None):
        return TransactionInitResult(
            reference=reference,
            access_code="0peioxfhpn",
            authorization_url="https://checkout.paystack.com/0peioxfhpn",
        )

    paystack_gateway.initialize_transaction.side_effect = _initialize
    return paystack_gateway


# =============================================================================
# Phone Normalization
# =============================================================================


class TestNormalizePhone:
    @pytest.mark.parametrize(
        "raw",
        [
            "0712345678",
            "0712 345 678",
            "712345678",
            "254712345678",
            "+254712345678",
            "+254-712-345-678",
        ],
    )
    def test_safaricom_formats(self, raw):
        assert normalize_phone(raw) == "254712345678"

    def test_01_prefix(self):
        assert normalize_phone("0110123456") == "254110123456"

    @pytest.mark.parametrize("raw", ["", "12345", "0812345678", "255712345678", "07123456789"])
    def test_invalid(self, raw):
        with pytest.raises(PaymentValidationError) as exc_info:
            normalize_phone(raw)

        assert exc_info.value.error_code == "INVALID_PHONE_NUMBER"


def test_card_references_are_unique():
    first, second = generate_card_reference(), generate_card_reference()

    assert first.startswith("ps_")
    assert first != second


# =============================================================================
# M-Pesa
# =============================================================================


class TestInitiateMpesaPayment:
    def test_creates_pending_payment(self, accepted_push, booking_data, no_poll):
        payment = PaymentInitiationService.initiate_mpesa_payment(
            phone_number="0712345678",
            amount=Decimal("1500"),
            booking_payload=booking_data,
        )

        assert payment.checkout_reference == CHECKOUT_REQUEST_ID
        assert payment.merchant_request_id == "29115-34620561-1"
        assert payment.provider == PaymentProvider.MPESA
        assert payment.status == PendingPaymentStatus.PENDING
        assert payment.phone_number == "254712345678"
        assert payment.email == "akinyi@example.com"
        assert payment.amount == Decimal("1500.00")
        assert payment.booking_payload["item_id"] == booking_data["item_id"]

    def test_stk_push_arguments(self, accepted_push, booking_data, no_poll):
        PaymentInitiationService.initiate_mpesa_payment(
            phone_number="+254 712 345 678",
            amount="1500",
            booking_payload=booking_data,
        )

        accepted_push.stk_push.assert_called_once_with(
            phone_number="254712345678",
            amount=Decimal("1500.00"),
            account_reference="SafariBooking",
            description="Booking",
        )

    def test_records_authenticated_payer(self, accepted_push, booking_data, user, no_poll):
        payment = PaymentInitiationService.initiate_mpesa_payment(
            phone_number="0712345678",
            amount=Decimal("1500"),
            booking_payload=booking_data,
            user=user,
        )

        assert payment.user == user

    def test_queues_poller_after_commit(
        self, accepted_push, booking_data, no_poll, django_capture_on_commit_callbacks
    ):
        with django_capture_on_commit_callbacks(execute=True):
            PaymentInitiationService.initiate_mpesa_payment(
                phone_number="0712345678",
                amount=Decimal("1500"),
                booking_payload=booking_data,
            )

        no_poll.assert_called_once_with(CHECKOUT_REQUEST_ID)

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-10"), "abc", Decimal("0.40")])
    def test_invalid_amount(self, accepted_push, booking_data, amount):
        with pytest.raises(InvalidAmountError):
            PaymentInitiationService.initiate_mpesa_payment(
                phone_number="0712345678",
                amount=amount,
                booking_payload=booking_data,
            )

        accepted_push.stk_push.assert_not_called()

    def test_invalid_phone_never_reaches_gateway(self, accepted_push, booking_data):
        with pytest.raises(PaymentValidationError):
            PaymentInitiationService.initiate_mpesa_payment(
                phone_number="12345",
                amount=Decimal("1500"),
                booking_payload=booking_data,
            )

        accepted_push.stk_push.assert_not_called()

    def test_invalid_payload_never_reaches_gateway(self, accepted_push, db):
        with pytest.raises(PaymentValidationError) as exc_info:
            PaymentInitiationService.initiate_mpesa_payment(
                phone_number="0712345678",
                amount=Decimal("1500"),
                booking_payload={},
            )

        assert exc_info.value.error_code == "INVALID_BOOKING_PAYLOAD"
        accepted_push.stk_push.assert_not_called()

    @pytest.mark.parametrize(
        "error",
        [GatewayUnavailableError("Daraja down"), GatewayRequestError("Invalid PhoneNumber")],
    )
    def test_gateway_error_leaves_no_record(self, mpesa_gateway, booking_data, error):
        mpesa_gateway.stk_push.side_effect = error

        with pytest.raises(type(error)):
            PaymentInitiationService.initiate_mpesa_payment(
                phone_number="0712345678",
                amount=Decimal("1500"),
                booking_payload=booking_data,
            )

        assert not PendingPayment.objects.exists()


# =============================================================================
# Paystack
# =============================================================================


class TestInitiateCardPayment:
    def test_creates_pending_payment(self, initialized_card, booking_data, no_poll):
        payment = PaymentInitiationService.initiate_card_payment(
            email="akinyi@example.com",
            amount=Decimal("1000"),
            booking_payload=booking_data,
        )

        assert payment.checkout_reference.startswith("ps_")
        assert payment.provider == PaymentProvider.PAYSTACK
        assert payment.access_code == "0peioxfhpn"
        assert payment.authorization_url == "https://checkout.paystack.com/0peioxfhpn"
        assert payment.amount == Decimal("1000.00")

    def test_sends_reference_and_metadata(self, initialized_card, booking_data, no_poll):
        payment = PaymentInitiationService.initiate_card_payment(
            email="akinyi@example.com",
            amount=Decimal("1000"),
            booking_payload=booking_data,
        )

        kwargs = initialized_card.initialize_transaction.call_args.kwargs
        assert kwargs["reference"] == payment.checkout_reference
        assert kwargs["email"] == "akinyi@example.com"
        assert kwargs["metadata"] == {
            "item_id": booking_data["item_id"],
            "booking_type": "trip",
        }

    def test_email_required(self, initialized_card, booking_data):
        with pytest.raises(PaymentValidationError):
            PaymentInitiationService.initiate_card_payment(
                email="  ",
                amount=Decimal("1000"),
                booking_payload=booking_data,
            )

        initialized_card.initialize_transaction.assert_not_called()

    def test_gateway_error_leaves_no_record(self, paystack_gateway, booking_data):
        paystack_gateway.initialize_transaction.side_effect = GatewayRequestError(
            "Invalid Email Address Passed"
        )

        with pytest.raises(GatewayRequestError):
            PaymentInitiationService.initiate_card_payment(
                email="akinyi@example.com",
                amount=Decimal("1000"),
                booking_payload=booking_data,
            )

        assert not PendingPayment.objects.exists()
