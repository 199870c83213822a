"""
Notification model.

Notifications are immutable records of something that happened to a
user's money: a payout landed, a payout failed, a booking came in.

Design Decisions:
    - Notification inherits from BaseModel (timestamps, ordering)
    - notification_type is a plain string so new kinds need no migration
    - Recipient uses CASCADE (notifications are owned by the user)
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from core.models import BaseModel


class NotificationKind(models.TextChoices):
    """Notification types emitted by the settlement pipeline."""

    PAYOUT_COMPLETED = "payout_completed", "Payout completed"
    PAYOUT_FAILED = "payout_failed", "Payout failed"
    BOOKING_RECEIVED = "booking_received", "Booking received"


class Notification(BaseModel):
    """
    Individual notification record for a user.

    Fields:
        recipient: User receiving the notification
        notification_type: Kind of event (see NotificationKind)
        title: Short headline
        message: Full rendered text
        data: Structured payload for clients (reference, amount, ...)
        is_read: Whether the user has seen it
    """

    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="notifications",
    )

    notification_type = models.CharField(
        max_length=50,
        db_index=True,
        help_text="Kind of event, e.g. 'payout_completed'",
    )

    title = models.CharField(max_length=200)

    message = models.TextField(blank=True, default="")

    data = models.JSONField(default=dict, blank=True)

    is_read = models.BooleanField(default=False, db_index=True)

    class Meta(BaseModel.Meta):
        indexes = [
            models.Index(
                fields=["recipient", "is_read", "-created_at"],
                name="notif_recipient_unread_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"Notification({self.notification_type}, {self.recipient_id})"
