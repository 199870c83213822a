"""
URL configuration for the bookings app.

All routes are prefixed with /api/v1/bookings/.
"""

from django.urls import path

from bookings.views import FreeBookingView

app_name = "bookings"

urlpatterns = [
    path("free/", FreeBookingView.as_view(), name="free_booking"),
]
