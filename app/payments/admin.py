"""
Payment admin configuration.

Registers the payment models with the Django admin. State fields managed
by django-fsm are read-only here; bank details are verified through an
admin action so the deferred host payouts are released.
"""

from django.contrib import admin

from payments.models import BankDetails, PendingPayment, Payout, TransferRecipient, WebhookEvent

__all__ = [
    "BankDetailsAdmin",
    "PendingPaymentAdmin",
    "PayoutAdmin",
    "TransferRecipientAdmin",
    "WebhookEventAdmin",
]


@admin.register(PendingPayment)
class PendingPaymentAdmin(admin.ModelAdmin):
    """
    Admin configuration for PendingPayment.

    Read-only: only gateway signals may move a payment's status.
    """

    list_display = [
        "checkout_reference",
        "provider",
        "amount",
        "status",
        "receipt_number",
        "created_at",
    ]
    list_filter = ["provider", "status", "created_at"]
    search_fields = ["checkout_reference", "receipt_number", "phone_number", "email"]
    readonly_fields = [field.name for field in PendingPayment._meta.fields]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]

    def has_add_permission(self, request) -> bool:
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        """Disable delete for pending payments (audit trail)."""
        return False


@admin.register(Payout)
class PayoutAdmin(admin.ModelAdmin):
    """
    Admin configuration for Payout.

    Provides visibility into payout status and history.
    """

    list_display = [
        "id",
        "recipient",
        "recipient_type",
        "amount_display",
        "state",
        "scheduled_for",
        "processed_at",
        "created_at",
    ]
    list_filter = ["state", "recipient_type", "created_at"]
    search_fields = ["id", "reference", "transfer_code", "recipient__email", "booking__id"]
    readonly_fields = [
        "id",
        "state",
        "reference",
        "transfer_code",
        "recipient_code",
        "created_at",
        "updated_at",
        "version",
        "processed_at",
        "failed_at",
    ]
    raw_id_fields = ["recipient", "booking"]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]

    fieldsets = (
        (
            None,
            {
                "fields": ("id", "recipient", "recipient_type", "booking", "state"),
            },
        ),
        (
            "Amount",
            {
                "fields": ("amount", "currency", "scheduled_for"),
            },
        ),
        (
            "Destination",
            {
                "fields": ("bank_name", "bank_code", "account_number", "account_name"),
            },
        ),
        (
            "Paystack Details",
            {
                "fields": ("reference", "transfer_code", "recipient_code"),
            },
        ),
        (
            "Outcome",
            {
                "fields": ("processed_at", "failed_at", "failure_reason"),
            },
        ),
        (
            "Timestamps",
            {
                "fields": ("version", "created_at", "updated_at"),
                "classes": ("collapse",),
            },
        ),
    )

    @admin.display(description="Amount")
    def amount_display(self, obj: Payout) -> str:
        return f"{obj.currency} {obj.amount:,.2f}"

    def has_delete_permission(self, request, obj=None) -> bool:
        """Disable delete for payouts (audit trail)."""
        return False


@admin.register(BankDetails)
class BankDetailsAdmin(admin.ModelAdmin):
    """Review queue for payout destinations."""

    list_display = ["user", "bank_name", "account_holder_name", "verification_status", "verified_at"]
    list_filter = ["verification_status", "bank_name"]
    search_fields = ["user__email", "account_holder_name", "account_number"]
    readonly_fields = ["verification_status", "verified_at", "created_at", "updated_at"]
    raw_id_fields = ["user"]
    actions = ["verify_selected", "reject_selected"]

    @admin.action(description="Verify selected bank details")
    def verify_selected(self, request, queryset):
        count = 0
        for details in queryset:
            if not details.is_verified:
                details.verify()
                count += 1
        self.message_user(request, f"Verified {count} bank detail record(s).")

    @admin.action(description="Reject selected bank details")
    def reject_selected(self, request, queryset):
        for details in queryset:
            details.reject()
        self.message_user(request, f"Rejected {queryset.count()} bank detail record(s).")


@admin.register(TransferRecipient)
class TransferRecipientAdmin(admin.ModelAdmin):
    list_display = ["user", "recipient_code", "bank_code", "account_number", "updated_at"]
    search_fields = ["user__email", "recipient_code", "account_number"]
    readonly_fields = ["created_at", "updated_at"]
    raw_id_fields = ["user"]


@admin.register(WebhookEvent)
class WebhookEventAdmin(admin.ModelAdmin):
    """
    Admin configuration for WebhookEvent.

    Provides visibility into webhook processing status.
    Webhook events are immutable once received.
    """

    list_display = [
        "id",
        "event_key",
        "event_type",
        "status",
        "retry_count",
        "processed_at",
        "created_at",
    ]
    list_filter = ["status", "event_type", "created_at"]
    search_fields = ["id", "event_key", "event_type"]
    readonly_fields = [
        "id",
        "created_at",
        "updated_at",
        "event_key",
        "event_type",
        "payload",
        "processed_at",
    ]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]

    fieldsets = (
        (
            None,
            {
                "fields": ("id", "event_key", "event_type", "status"),
            },
        ),
        (
            "Processing",
            {
                "fields": ("processed_at", "retry_count"),
            },
        ),
        (
            "Error Info",
            {
                "fields": ("error_message",),
                "classes": ("collapse",),
            },
        ),
        (
            "Payload",
            {
                "fields": ("payload",),
                "classes": ("collapse",),
            },
        ),
        (
            "Timestamps",
            {
                "fields": ("created_at", "updated_at"),
            },
        ),
    )

    def has_delete_permission(self, request, obj=None) -> bool:
        """Disable delete for webhook events (audit trail)."""
        return False

    def has_add_permission(self, request) -> bool:
        """Disable adding webhook events through admin."""
        return False
