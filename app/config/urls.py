"""
URL configuration for the wholesale payments service.

URL Structure:
    /                              - ReDoc API documentation
    /admin/                        - Django admin interface
    /health/                       - Health check endpoint (for load balancers, Docker)
    /schema/                       - OpenAPI schema (YAML)
    /api/stripe-v2/                - Platform-first Stripe Connect endpoints
        create-account/            - Create Express account for a wholesaler
        create-account-link/       - Create onboarding link
        account-status/{id}/       - Refresh and report account status
        calculate-payment/         - Compute the payment split
        create-payment-intent/     - Issue platform payment intent for an order
        process-payment/           - Manually transfer a paid order's share
        platform-balance/          - Platform Stripe balance (staff)
        recent-transfers/          - Recent Stripe transfers (staff)
        webhook/                   - Stripe webhook endpoint (POST)

For more information, see:
https://docs.djangoproject.com/en/5.2/topics/http/urls/
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView

from core.views import health_check

urlpatterns = [
    # Documentation
    path("", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    # Admin
    path("admin/", admin.site.urls),
    # Health check (Docker, Kubernetes, load balancers)
    path("health/", health_check, name="health_check"),
    # Platform-first Stripe Connect API
    path("api/stripe-v2/", include("payments.urls")),
]

# =============================================================================
# Admin Site Customization
# =============================================================================
admin.site.site_header = "Wholesale Payments Admin"
admin.site.site_title = "Payments Admin"
admin.site.index_title = "Orders, transfers and connected accounts"
