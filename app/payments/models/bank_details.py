"""
Payout destination models.

- BankDetails: The account a user wants to be paid to, with admin review
- TransferRecipient: Cache of the Paystack recipient registered for it

Only VERIFIED bank details receive money. When details become verified,
any booking payouts that were waiting on them are created after commit
(see payments.tasks.create_missing_host_payouts).
"""

from __future__ import annotations

from django.conf import settings
from django.db import models, transaction
from django.utils import timezone

from core.models import BaseModel

from payments.banks import get_bank_code
from payments.state_machines import BankVerificationStatus


class BankDetails(BaseModel):
    """
    A user's payout destination.

    Fields:
        user: Owner (one set of details per user)
        bank_name: Free-text bank name, mapped to a gateway code at payout time
        account_number: Bank account or M-Pesa number
        account_holder_name: Name registered with the bank
        verification_status: pending, verified or rejected
        verified_at: When an admin verified the details
    """

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="bank_details",
    )

    bank_name = models.CharField(max_length=100)
    account_number = models.CharField(max_length=50)
    account_holder_name = models.CharField(max_length=150)

    verification_status = models.CharField(
        max_length=20,
        choices=BankVerificationStatus.choices,
        default=BankVerificationStatus.PENDING,
        db_index=True,
    )
    verified_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Bank Details"
        verbose_name_plural = "Bank Details"

    def __str__(self) -> str:
        return f"BankDetails({self.user_id}, {self.bank_name}, {self.verification_status})"

    @property
    def is_verified(self) -> bool:
        return self.verification_status == BankVerificationStatus.VERIFIED

    @property
    def bank_code(self) -> str:
        return get_bank_code(self.bank_name)

    def verify(self) -> None:
        """
        Mark the details verified and release payouts waiting on them.

        Saves the row. The follow-up task is enqueued only once the
        surrounding transaction commits.
        """
        from payments.tasks import create_missing_host_payouts

        self.verification_status = BankVerificationStatus.VERIFIED
        self.verified_at = timezone.now()
        self.save(update_fields=["verification_status", "verified_at", "updated_at"])

        user_id = self.user_id
        transaction.on_commit(lambda: create_missing_host_payouts.delay(host_id=user_id))

    def reject(self) -> None:
        self.verification_status = BankVerificationStatus.REJECTED
        self.verified_at = None
        self.save(update_fields=["verification_status", "verified_at", "updated_at"])


class TransferRecipient(BaseModel):
    """
    Paystack transfer recipient registered for a user.

    Reused for later payouts while the account number and bank code are
    unchanged; replaced when the user's destination changes.
    """

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="transfer_recipient",
    )

    recipient_code = models.CharField(max_length=100)
    account_name = models.CharField(max_length=150)
    account_number = models.CharField(max_length=50)
    bank_code = models.CharField(max_length=100)
    bank_name = models.CharField(max_length=100, blank=True, default="")

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Transfer Recipient"

    def __str__(self) -> str:
        return f"TransferRecipient({self.user_id}, {self.recipient_code})"

    def matches(self, account_number: str, bank_code: str) -> bool:
        return self.account_number == account_number and self.bank_code == bank_code
