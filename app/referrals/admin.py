"""
Referral admin configuration.
"""

from django.contrib import admin

from referrals.models import ReferralCommission, ReferralSettings, ReferralTracking


@admin.register(ReferralSettings)
class ReferralSettingsAdmin(admin.ModelAdmin):
    """Rate table. clean() rejects commission rates above the service fee."""

    list_display = ["id", "version", "updated_at"]
    readonly_fields = ["version", "created_at", "updated_at"]

    def has_add_permission(self, request) -> bool:
        return not ReferralSettings.objects.exists()

    def has_delete_permission(self, request, obj=None) -> bool:
        return False


@admin.register(ReferralTracking)
class ReferralTrackingAdmin(admin.ModelAdmin):
    list_display = ["id", "referrer", "item_type", "item_id", "status", "created_at"]
    list_filter = ["status", "item_type"]
    search_fields = ["id", "referrer__email", "item_id"]
    readonly_fields = ["id", "created_at", "updated_at", "converted_at"]


@admin.register(ReferralCommission)
class ReferralCommissionAdmin(admin.ModelAdmin):
    list_display = ["id", "referrer", "booking", "commission_amount", "status", "paid_at"]
    list_filter = ["status"]
    search_fields = ["id", "referrer__email", "booking__id"]
    readonly_fields = [
        "id",
        "booking_amount",
        "service_fee_rate",
        "commission_rate",
        "commission_amount",
        "created_at",
        "updated_at",
    ]

    def has_delete_permission(self, request, obj=None) -> bool:
        """Commissions count toward withdrawable balances."""
        return False
