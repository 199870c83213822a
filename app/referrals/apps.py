"""Django app configuration for referrals."""

from django.apps import AppConfig


class ReferralsConfig(AppConfig):
    """Configuration for the referrals app."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "referrals"
    verbose_name = "Referrals"

    def ready(self):
        # Connect booking_confirmed receivers
        from referrals import handlers  # noqa: F401
