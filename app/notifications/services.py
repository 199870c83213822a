"""
Notification service layer.

Services:
    NotificationService: Notification creation and read status management

Usage:
    from notifications.services import NotificationService

    result = NotificationService.create_notification(
        user=host,
        notification_type="booking_received",
        title="New booking",
        message="Jane booked Lake Naivasha Camp for 2025-03-14.",
        data={"booking_id": str(booking.id)},
    )
    if result.success:
        notification = result.data

    NotificationService.mark_all_as_read(user)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from core.services import BaseService, ServiceResult

from notifications.models import Notification

if TYPE_CHECKING:
    from authentication.models import User

logger = logging.getLogger(__name__)


class NotificationService(BaseService):
    """
    Service for notification operations.

    Methods:
        create_notification: Store a notification for a user
        mark_as_read: Mark a single notification as read
        mark_all_as_read: Mark all user's unread notifications as read
    """

    @classmethod
    def create_notification(
        cls,
        user: User,
        notification_type: str,
        title: str,
        message: str = "",
        data: dict[str, Any] | None = None,
    ) -> ServiceResult[Notification]:
        """
        Create a notification for a user.

        Args:
            user: Recipient
            notification_type: Kind of event (payout_completed, ...)
            title: Short headline
            message: Full text shown to the user
            data: JSON-serializable payload (amounts as strings)

        Returns:
            ServiceResult with the created Notification

        Error codes:
            NO_RECIPIENT: user is None
        """
        if user is None:
            return ServiceResult.failure(
                "Notification recipient is required",
                error_code="NO_RECIPIENT",
            )

        notification = Notification.objects.create(
            recipient=user,
            notification_type=notification_type,
            title=title,
            message=message,
            data=data or {},
        )

        cls.get_logger().info(
            "Notification created",
            extra={
                "notification_id": notification.pk,
                "notification_type": notification_type,
                "user_id": user.pk,
            },
        )
        return ServiceResult.success(notification)

    @classmethod
    def mark_as_read(
        cls,
        notification: Notification,
        user: User,
    ) -> ServiceResult[Notification]:
        """
        Mark a single notification as read.

        Idempotent. Fails with NOT_OWNER when the user is not the recipient.
        """
        if notification.recipient_id != user.pk:
            cls.get_logger().warning(
                f"User {user.pk} attempted to mark notification {notification.pk} "
                f"owned by user {notification.recipient_id}"
            )
            return ServiceResult.failure(
                "Cannot mark notification you don't own",
                error_code="NOT_OWNER",
            )

        if not notification.is_read:
            notification.is_read = True
            notification.save(update_fields=["is_read", "updated_at"])

        return ServiceResult.success(notification)

    @classmethod
    def mark_all_as_read(cls, user: User) -> ServiceResult[int]:
        """Mark every unread notification of the user as read."""
        count = Notification.objects.filter(recipient=user, is_read=False).update(
            is_read=True
        )
        cls.get_logger().info(f"Marked {count} notifications as read for user {user.pk}")
        return ServiceResult.success(count)
