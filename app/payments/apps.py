"""
Payments app configuration.

This app provides the payment settlement and payout pipeline:
- M-Pesa and Paystack collections
- Pending payment confirmation and status polling
- Host payouts, manual withdrawals and reconciliation
- Paystack webhook handling
"""

from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    """Configuration for the payments application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "payments"
    verbose_name = "Payments"
