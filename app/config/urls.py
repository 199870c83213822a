"""
Root URL configuration.

URL Structure:
    /                              - ReDoc API documentation
    /admin/                        - Django admin interface
    /health/                       - Health check endpoint (load balancers, Docker)
    /schema/                       - OpenAPI schema (YAML)
    /api/v1/auth/token/            - Obtain JWT pair (email + password)
    /api/v1/auth/token/refresh/    - Refresh access token
    /api/v1/bookings/free/         - Zero-amount booking without payment
    /api/v1/payments/              - Payment and payout endpoints
        mpesa/stk-push/            - Start an M-Pesa STK push
        mpesa/callback/            - Daraja result callback
        paystack/initialize/       - Start a Paystack card payment
        paystack/verify/           - Verify a Paystack payment server-side
        status/{reference}/        - Stored status of a pending payment
        status/{reference}/query/  - Throttled direct gateway status query
        payouts/                   - Scheduled batch run or manual withdrawal
        bank-details/              - Own payout bank details
        webhooks/paystack/         - Paystack transfer webhook
    /api/v1/referrals/             - Referral endpoints
        settings/                  - Fee and commission rates (admin)
        track-click/               - Record a referral link click

For more information, see:
https://docs.djangoproject.com/en/5.2/topics/http/urls/
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from core.views import health_check

# =============================================================================
# API v1 Routes
# =============================================================================
api_v1_patterns = [
    path("auth/token/", TokenObtainPairView.as_view(), name="token_obtain_pair"),
    path("auth/token/refresh/", TokenRefreshView.as_view(), name="token_refresh"),
    path("bookings/", include("bookings.urls")),
    path("payments/", include("payments.urls")),
    path("referrals/", include("referrals.urls")),
]

urlpatterns = [
    # Documentation
    path("", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    path("admin/", admin.site.urls),
    path("health/", health_check, name="health_check"),
    path("api/v1/", include(api_v1_patterns)),
]

# =============================================================================
# Admin Site Customization
# =============================================================================
admin.site.site_header = "Settlement Admin"
admin.site.site_title = "Settlement Admin Portal"
admin.site.index_title = "Payments, bookings and payouts"
