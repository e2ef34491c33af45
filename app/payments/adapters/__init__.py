"""
Payment adapters for external services.

All Stripe API calls go through StripeAdapter so error handling, timeouts,
idempotency and logging stay consistent.

Usage:
    from payments.adapters import StripeAdapter, IdempotencyKeyGenerator

    key = IdempotencyKeyGenerator.generate("create_platform_intent", order.id)
"""

from payments.adapters.stripe_adapter import (
    AccountLinkResult,
    AccountResult,
    BalanceResult,
    CreatePaymentIntentParams,
    IdempotencyKeyGenerator,
    PaymentIntentResult,
    StripeAdapter,
    TransferResult,
    is_retryable_stripe_error,
)

__all__ = [
    "AccountLinkResult",
    "AccountResult",
    "BalanceResult",
    "CreatePaymentIntentParams",
    "IdempotencyKeyGenerator",
    "PaymentIntentResult",
    "StripeAdapter",
    "TransferResult",
    "is_retryable_stripe_error",
]
