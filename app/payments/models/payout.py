"""
Payout model for money leaving the platform to hosts and referrers.

A Payout is created either by the booking materializer (a host's share
of a booking, scheduled for 48 hours before the visit) or by a manual
withdrawal request (due immediately). It carries a snapshot of the
destination account taken when it was created.

Usage:
    from payments.models import Payout
    from payments.state_machines import PayoutState

    payout = Payout.objects.create(
        recipient=host,
        recipient_type=RecipientType.HOST,
        booking=booking,
        amount=Decimal("800.00"),
        state=PayoutState.SCHEDULED,
        scheduled_for=booking.payout_scheduled_at,
        ...
    )

    payout.process(reference="payout_9b1d...")  # scheduled -> processing
    payout.save()

    # transfer.success webhook
    payout.complete()  # processing -> completed
    payout.save()
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.utils import timezone

from django_fsm import FSMField, transition

from core.model_mixins import UUIDPrimaryKeyMixin, VersionedMixin
from core.models import BaseModel

from payments.state_machines import TERMINAL_PAYOUT_STATES, PayoutState, RecipientType


class PayoutQuerySet(models.QuerySet):
    def due(self, now=None):
        """Scheduled payouts whose scheduled_for has passed, oldest first."""
        now = now or timezone.now()
        return self.filter(
            state=PayoutState.SCHEDULED,
            scheduled_for__lte=now,
        ).order_by("scheduled_for", "created_at")

    def reserving_balance(self):
        """Payouts that count against a recipient's available balance."""
        return self.exclude(state=PayoutState.FAILED)


class Payout(UUIDPrimaryKeyMixin, VersionedMixin, BaseModel):
    """
    Outbound transfer to a host or referrer.

    State Flow:
        SCHEDULED -> PROCESSING -> COMPLETED (booking payouts)
        PENDING -> PROCESSING -> COMPLETED (manual withdrawals)
        PENDING/SCHEDULED/PROCESSING -> FAILED

    COMPLETED and FAILED are terminal: no transition leaves them.

    Fields:
        recipient: User receiving the money
        recipient_type: host or referrer
        booking: Source booking (null for manual withdrawals)
        amount: Amount in major units
        state: Current FSM state
        scheduled_for: When the payout becomes due
        bank_name / bank_code / account_number / account_name: Destination
            snapshot (bank_code is the gateway code, mapped at creation)
        recipient_code: Paystack recipient used for the transfer
        reference: Our transfer reference, persisted before the transfer call
        transfer_code: Paystack transfer code, persisted right after it
        failure_reason: Why the payout failed
        processed_at / failed_at: Terminal timestamps
        version: Optimistic locking version
    """

    # ==========================================================================
    # Relationships
    # ==========================================================================

    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="payouts",
    )

    recipient_type = models.CharField(
        max_length=20,
        choices=RecipientType.choices,
        db_index=True,
    )

    booking = models.ForeignKey(
        "bookings.Booking",
        on_delete=models.PROTECT,
        related_name="payouts",
        null=True,
        blank=True,
        help_text="Booking this payout settles. Null for manual withdrawals.",
    )

    # ==========================================================================
    # Amount & State
    # ==========================================================================

    amount = models.DecimalField(max_digits=12, decimal_places=2)

    currency = models.CharField(max_length=3, default="KES")

    state = FSMField(
        default=PayoutState.PENDING,
        choices=PayoutState.choices,
        db_index=True,
        protected=True,
        help_text="Current state of the payout (managed by FSM)",
    )

    scheduled_for = models.DateTimeField(
        null=True,
        blank=True,
        db_index=True,
        help_text="When the payout becomes due",
    )

    # ==========================================================================
    # Destination Snapshot
    # ==========================================================================

    bank_name = models.CharField(max_length=100, blank=True, default="")
    bank_code = models.CharField(max_length=100, blank=True, default="")
    account_number = models.CharField(max_length=50, blank=True, default="")
    account_name = models.CharField(max_length=150, blank=True, default="")

    # ==========================================================================
    # Gateway Integration
    # ==========================================================================

    recipient_code = models.CharField(max_length=100, blank=True, default="")

    reference = models.CharField(
        max_length=100,
        null=True,
        blank=True,
        unique=True,
        help_text="Our transfer reference (payout_<hex> / withdraw_<hex>)",
    )

    transfer_code = models.CharField(
        max_length=100,
        null=True,
        blank=True,
        unique=True,
        help_text="Paystack transfer code (TRF_xxx)",
    )

    # ==========================================================================
    # Outcome
    # ==========================================================================

    failure_reason = models.TextField(blank=True, default="")
    processed_at = models.DateTimeField(null=True, blank=True)
    failed_at = models.DateTimeField(null=True, blank=True)

    objects = PayoutQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Payout"
        verbose_name_plural = "Payouts"
        indexes = [
            models.Index(fields=["state", "scheduled_for"], name="payout_state_due_idx"),
            models.Index(
                fields=["recipient", "recipient_type", "state"],
                name="payout_recipient_state_idx",
            ),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gt=0),
                name="payout_amount_positive",
            ),
        ]

    def __str__(self) -> str:
        return f"Payout({self.id}, {self.state}, {self.amount} {self.currency})"

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=state,
        source=PayoutState.PENDING,
        target=PayoutState.SCHEDULED,
    )
    def schedule(self, scheduled_for):
        """Transition: PENDING -> SCHEDULED"""
        self.scheduled_for = scheduled_for

    @transition(
        field=state,
        source=[PayoutState.PENDING, PayoutState.SCHEDULED],
        target=PayoutState.PROCESSING,
    )
    def process(self, reference: str | None = None):
        """
        Claim the payout for a transfer.

        Transition: PENDING/SCHEDULED -> PROCESSING

        The reference is set here so it is committed before the gateway
        sees it; a lost response can then be reconciled by reference.
        """
        if reference:
            self.reference = reference

    @transition(
        field=state,
        source=PayoutState.PROCESSING,
        target=PayoutState.COMPLETED,
    )
    def complete(self):
        """Transition: PROCESSING -> COMPLETED (transfer.success)."""
        self.processed_at = timezone.now()

    @transition(
        field=state,
        source=[PayoutState.PENDING, PayoutState.SCHEDULED, PayoutState.PROCESSING],
        target=PayoutState.FAILED,
    )
    def fail(self, reason: str | None = None):
        """
        Transition: PENDING/SCHEDULED/PROCESSING -> FAILED

        Used for gateway rejections and transfer.failed / transfer.reversed.
        """
        self.failed_at = timezone.now()
        if reason:
            self.failure_reason = reason

    # ==========================================================================
    # Properties
    # ==========================================================================

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_PAYOUT_STATES

    @property
    def transfer_reason(self) -> str:
        """Narration sent with the transfer."""
        if self.booking_id:
            return f"Payout for booking {self.booking_id}"
        return f"{self.recipient_type} withdrawal"
