"""
URL configuration for the referrals app.

All routes are prefixed with /api/v1/referrals/.
"""

from django.urls import path

from referrals.views import ReferralSettingsView, TrackClickView

app_name = "referrals"

urlpatterns = [
    path("settings/", ReferralSettingsView.as_view(), name="settings"),
    path("track-click/", TrackClickView.as_view(), name="track_click"),
]
