"""
Payment services for the platform-first payment flow.

This module provides:
- PaymentIntentService: Issues the platform PaymentIntent for an order
- TransferService: Sends the wholesaler share exactly once per intent
- OnboardingService: Express account creation and status tracking

Usage:
    from payments.services import PaymentIntentService, TransferService

    result = PaymentIntentService.issue_payment_intent(split, order.id, order.wholesaler_id)

    result = TransferService.process_complete_payment("pi_123", order_id=order.id)
"""

from payments.services.base import STRIPE_ERROR, STRIPE_UNAVAILABLE, PaymentService
from payments.services.onboarding_service import AccountStatus, OnboardingService
from payments.services.payment_intent_service import (
    IssuedPaymentIntent,
    PaymentIntentService,
    record_payment_calculation,
)
from payments.services.transfer_service import (
    TransferService,
    split_amounts_from_metadata,
)

__all__ = [
    "STRIPE_ERROR",
    "STRIPE_UNAVAILABLE",
    "AccountStatus",
    "IssuedPaymentIntent",
    "OnboardingService",
    "PaymentIntentService",
    "PaymentService",
    "TransferService",
    "record_payment_calculation",
    "split_amounts_from_metadata",
]
