"""
URL configuration for the payments app.

Included under /api/stripe-v2/ by config/urls.py.
"""

from django.urls import path

from payments import views
from payments.webhooks.views import stripe_webhook

app_name = "payments"

urlpatterns = [
    # Onboarding
    path("create-account/", views.CreateAccountView.as_view(), name="create_account"),
    path(
        "create-account-link/",
        views.CreateAccountLinkView.as_view(),
        name="create_account_link",
    ),
    path(
        "account-status/<int:wholesaler_id>/",
        views.AccountStatusView.as_view(),
        name="account_status",
    ),
    # Payments
    path(
        "calculate-payment/",
        views.CalculatePaymentView.as_view(),
        name="calculate_payment",
    ),
    path(
        "create-payment-intent/",
        views.CreatePaymentIntentView.as_view(),
        name="create_payment_intent",
    ),
    path(
        "process-payment/",
        views.ProcessPaymentView.as_view(),
        name="process_payment",
    ),
    # Platform reporting
    path(
        "platform-balance/",
        views.PlatformBalanceView.as_view(),
        name="platform_balance",
    ),
    path(
        "recent-transfers/",
        views.RecentTransfersView.as_view(),
        name="recent_transfers",
    ),
    # Stripe webhook
    path("webhook/", stripe_webhook, name="stripe_webhook"),
]
