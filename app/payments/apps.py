"""
Payments app configuration.

This app provides the platform-first Stripe Connect flow:
- Fee calculation and PaymentIntent issuing
- Idempotent wholesaler transfers driven by webhooks
- Express account onboarding
"""

from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    """Configuration for the payments application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "payments"
    verbose_name = "Payments"

    def ready(self):
        # Registers webhook handlers
        from payments.webhooks import handlers  # noqa: F401
