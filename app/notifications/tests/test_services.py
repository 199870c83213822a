"""
Tests for NotificationService.
"""

from notifications.models import Notification, NotificationKind
from notifications.services import NotificationService
from notifications.tests.factories import NotificationFactory


class TestCreateNotification:
    """Tests for NotificationService.create_notification()."""

    def test_creates_row_with_payload(self, user):
        """Should store the rendered text and data."""
        result = NotificationService.create_notification(
            user=user,
            notification_type=NotificationKind.PAYOUT_COMPLETED,
            title="Payout Successful",
            message="Your host payout of KES 800 has been sent to your bank account.",
            data={"reference": "payout_abc", "amount": "800.00"},
        )

        assert result.success is True
        notification = Notification.objects.get(pk=result.data.pk)
        assert notification.recipient == user
        assert notification.notification_type == "payout_completed"
        assert notification.data["reference"] == "payout_abc"
        assert notification.is_read is False

    def test_missing_recipient_fails(self, db):
        """Should refuse to create a notification without a user."""
        result = NotificationService.create_notification(
            user=None,
            notification_type=NotificationKind.PAYOUT_FAILED,
            title="Payout Failed",
        )

        assert result.success is False
        assert result.error_code == "NO_RECIPIENT"
        assert Notification.objects.count() == 0


class TestMarkAsRead:
    """Tests for read status management."""

    def test_owner_can_mark_read(self, user):
        notification = NotificationFactory(recipient=user)

        result = NotificationService.mark_as_read(notification, user)

        assert result.success is True
        notification.refresh_from_db()
        assert notification.is_read is True

    def test_other_user_cannot_mark_read(self, user, other_user):
        """Should reject users who are not the recipient."""
        notification = NotificationFactory(recipient=user)

        result = NotificationService.mark_as_read(notification, other_user)

        assert result.success is False
        assert result.error_code == "NOT_OWNER"

    def test_mark_all_only_touches_own_unread(self, user, other_user):
        NotificationFactory.create_batch(2, recipient=user)
        NotificationFactory(recipient=other_user)

        result = NotificationService.mark_all_as_read(user)

        assert result.data == 2
        assert Notification.objects.filter(recipient=other_user, is_read=False).count() == 1
