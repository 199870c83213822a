"""
URL configuration for the payments app.

Routes:
    - POST mpesa/stk-push/ - Send an STK push
    - POST mpesa/callback/ - Daraja callback
    - POST paystack/initialize/ - Start a card payment
    - POST paystack/verify/ - Verify a card payment
    - GET status/<reference>/ - Stored payment status
    - POST status/<reference>/query/ - Direct gateway query
    - POST payouts/ - Payout run / manual withdrawal
    - GET/PUT bank-details/ - Own bank details
    - POST webhooks/paystack/ - Paystack webhook endpoint

All routes are prefixed with /api/v1/payments/ when included in the main URLconf.
"""

from django.urls import path

from payments import views
from payments.webhooks.views import paystack_webhook

app_name = "payments"

urlpatterns = [
    # M-Pesa
    path("mpesa/stk-push/", views.MpesaStkPushView.as_view(), name="mpesa_stk_push"),
    path("mpesa/callback/", views.MpesaCallbackView.as_view(), name="mpesa_callback"),
    # Paystack
    path(
        "paystack/initialize/",
        views.PaystackInitializeView.as_view(),
        name="paystack_initialize",
    ),
    path("paystack/verify/", views.PaystackVerifyView.as_view(), name="paystack_verify"),
    # Status
    path("status/<str:reference>/", views.PaymentStatusView.as_view(), name="payment_status"),
    path(
        "status/<str:reference>/query/",
        views.PaymentStatusQueryView.as_view(),
        name="payment_status_query",
    ),
    # Payouts
    path("payouts/", views.PayoutsView.as_view(), name="payouts"),
    path("bank-details/", views.BankDetailsView.as_view(), name="bank_details"),
    # Webhook endpoints
    path("webhooks/paystack/", paystack_webhook, name="paystack_webhook"),
]
