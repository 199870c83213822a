"""
Booking admin configuration.
"""

from django.contrib import admin

from bookings.models import Booking


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    """
    Admin configuration for Booking.

    The settlement split is read-only; it is fixed when the booking is
    created.
    """

    list_display = [
        "id",
        "booking_type",
        "item_name",
        "total_amount",
        "payment_status",
        "payout_status",
        "payout_scheduled_at",
        "created_at",
    ]
    list_filter = ["booking_type", "payment_status", "payout_status", "payment_method"]
    search_fields = ["id", "checkout_reference", "guest_email", "guest_name", "host__email"]
    readonly_fields = [
        "id",
        "total_amount",
        "service_fee_amount",
        "host_payout_amount",
        "checkout_reference",
        "pending_payment",
        "created_at",
        "updated_at",
    ]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]

    fieldsets = (
        (None, {"fields": ("id", "booking_type", "item_id", "item_name", "status")}),
        (
            "Guest",
            {"fields": ("user", "is_guest_booking", "guest_name", "guest_email", "guest_phone")},
        ),
        (
            "Visit",
            {"fields": ("visit_date", "slots_booked", "booking_details")},
        ),
        (
            "Payment",
            {
                "fields": (
                    "payment_method",
                    "payment_status",
                    "total_amount",
                    "pending_payment",
                    "checkout_reference",
                ),
            },
        ),
        (
            "Settlement",
            {
                "fields": (
                    "host",
                    "service_fee_amount",
                    "host_payout_amount",
                    "payout_status",
                    "payout_scheduled_at",
                    "payout_reference",
                    "payout_processed_at",
                    "referral_tracking_id",
                ),
            },
        ),
        ("Timestamps", {"fields": ("created_at", "updated_at")}),
    )

    def has_delete_permission(self, request, obj=None) -> bool:
        """Disable delete for bookings (audit trail)."""
        return False
