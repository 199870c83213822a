"""
PendingPayment model - the durable record of an initiated charge.

A PendingPayment is created before the gateway call returns control to
the payer and is keyed by the gateway handle (M-Pesa CheckoutRequestID or
our Paystack reference). It carries the full booking payload so the
booking can be materialized whenever confirmation arrives, even long
after the payer closed the page.

Rows are never deleted; they are the audit trail of every charge attempt.

Usage:
    from payments.models import PendingPayment

    payment = PendingPayment.objects.create(
        checkout_reference="ws_CO_191220191020363925",
        provider=PaymentProvider.MPESA,
        phone_number="254712345678",
        amount=Decimal("1500.00"),
        booking_payload={...},
    )

    payment.complete(receipt_number="QGH7XYZ12", result_code="0")
    payment.save()
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.utils import timezone

from django_fsm import FSMField, transition

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel

from payments.state_machines import PaymentProvider, PendingPaymentStatus


class PendingPayment(UUIDPrimaryKeyMixin, BaseModel):
    """
    An initiated payment awaiting gateway confirmation.

    State Flow:
        PENDING -> COMPLETED (gateway reports success)
        PENDING -> FAILED (gateway reports failure)

    Fields:
        checkout_reference: Gateway handle, unique
        merchant_request_id: M-Pesa MerchantRequestID
        provider: mpesa or paystack
        user: Authenticated payer, if any
        phone_number / email: Payer contact used for the charge
        amount: Requested amount; replaced by the confirmed amount
        status: FSM status
        booking_payload: Everything needed to create the booking
        result_code / result_desc: Gateway outcome, stored verbatim
        receipt_number: M-Pesa receipt or Paystack reference once paid
        access_code / authorization_url: Paystack popup handles
        confirmed_at: When a terminal status was recorded
    """

    checkout_reference = models.CharField(
        max_length=100,
        unique=True,
        help_text="Gateway checkout/transaction reference",
    )

    merchant_request_id = models.CharField(max_length=100, blank=True, default="")

    provider = models.CharField(
        max_length=20,
        choices=PaymentProvider.choices,
        db_index=True,
    )

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="pending_payments",
    )

    phone_number = models.CharField(max_length=20, blank=True, default="")
    email = models.EmailField(blank=True, default="")

    amount = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=3, default="KES")

    status = FSMField(
        default=PendingPaymentStatus.PENDING,
        choices=PendingPaymentStatus.choices,
        db_index=True,
        protected=True,
        help_text="Current payment status (managed by FSM)",
    )

    booking_payload = models.JSONField(
        default=dict,
        blank=True,
        help_text="Serialized booking request, materialized on success",
    )

    result_code = models.CharField(max_length=50, blank=True, default="")
    result_desc = models.TextField(blank=True, default="")
    receipt_number = models.CharField(max_length=100, blank=True, default="")

    access_code = models.CharField(max_length=100, blank=True, default="")
    authorization_url = models.URLField(max_length=500, blank=True, default="")

    confirmed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Pending Payment"
        verbose_name_plural = "Pending Payments"
        indexes = [
            models.Index(fields=["provider", "status"], name="pending_provider_status_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gte=0),
                name="pending_payment_amount_non_negative",
            ),
        ]

    def __str__(self) -> str:
        return f"PendingPayment({self.checkout_reference}, {self.status}, {self.amount})"

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=status,
        source=PendingPaymentStatus.PENDING,
        target=PendingPaymentStatus.COMPLETED,
    )
    def complete(
        self,
        receipt_number: str = "",
        result_code: str = "",
        result_desc: str = "",
    ):
        """Record a gateway-confirmed success."""
        self.receipt_number = receipt_number or ""
        self.result_code = result_code
        self.result_desc = result_desc
        self.confirmed_at = timezone.now()

    @transition(
        field=status,
        source=PendingPaymentStatus.PENDING,
        target=PendingPaymentStatus.FAILED,
    )
    def fail(self, result_code: str = "", result_desc: str = ""):
        """Record a gateway-confirmed failure."""
        self.result_code = result_code
        self.result_desc = result_desc
        self.confirmed_at = timezone.now()

    # ==========================================================================
    # Properties
    # ==========================================================================

    @property
    def is_pending(self) -> bool:
        return self.status == PendingPaymentStatus.PENDING

    @property
    def is_terminal(self) -> bool:
        return self.status in (PendingPaymentStatus.COMPLETED, PendingPaymentStatus.FAILED)
