"""
Stripe webhook receiving and dispatch.

The view verifies and stores events; handlers run later in the
process_webhook_event Celery task.

Usage:
    from payments.webhooks import dispatch_webhook

    result = dispatch_webhook(webhook_event)
"""

from payments.webhooks.handlers import WEBHOOK_HANDLERS, dispatch_webhook, register_handler
from payments.webhooks.views import stripe_webhook

__all__ = [
    "WEBHOOK_HANDLERS",
    "dispatch_webhook",
    "register_handler",
    "stripe_webhook",
]
