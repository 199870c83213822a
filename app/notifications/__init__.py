"""
Notifications app for in-app messages about money movement.

This app provides:
- Notification model for storing user notifications
- NotificationService for creating and reading them

Usage:
    from notifications.services import NotificationService

    NotificationService.create_notification(
        user=payout.recipient,
        notification_type=NotificationKind.PAYOUT_COMPLETED,
        title="Payout Successful",
        message="Your host payout of KES 800 has been sent to your bank account.",
        data={"reference": payout.reference},
    )
"""
