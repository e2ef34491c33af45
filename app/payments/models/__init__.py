"""
Payment domain models.

- ConnectedAccount: Wholesaler Stripe Express accounts
- PaymentCalculation: Immutable fee split recorded per PaymentIntent
- Transfer: Wholesaler share sent from the platform balance
- WebhookEvent: Stripe webhook event tracking for idempotent processing
"""

from payments.models.connected_account import ConnectedAccount
from payments.models.payment_calculation import PaymentCalculation
from payments.models.transfer import Transfer
from payments.models.webhook_event import WebhookEvent

__all__ = [
    "ConnectedAccount",
    "PaymentCalculation",
    "Transfer",
    "WebhookEvent",
]
