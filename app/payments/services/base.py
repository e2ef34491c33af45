"""
Shared plumbing for payment services.

PaymentService adds Stripe adapter injection and a uniform translation of
StripeError into ServiceResult failures on top of BaseService.
"""

from __future__ import annotations

from core.services import BaseService, ServiceResult

from payments.adapters import StripeAdapter
from payments.exceptions import StripeError

# Stripe could not be reached or timed out; views answer 502
STRIPE_UNAVAILABLE = "STRIPE_UNAVAILABLE"
# Stripe answered and refused the request; views answer 400
STRIPE_ERROR = "STRIPE_ERROR"


class PaymentService(BaseService):
    """Base class for services that call Stripe."""

    # Stripe adapter - can be injected for testing
    _stripe_adapter: type | None = None

    @classmethod
    def get_stripe_adapter(cls) -> type:
        return cls._stripe_adapter or StripeAdapter

    @classmethod
    def set_stripe_adapter(cls, adapter: type | None) -> None:
        """Set the Stripe adapter class (for testing)."""
        cls._stripe_adapter = adapter

    @classmethod
    def stripe_failure(cls, exc: StripeError, context: str) -> ServiceResult:
        """
        Log a Stripe error and convert it to a failed result.

        Transient errors get STRIPE_UNAVAILABLE, everything else STRIPE_ERROR.
        """
        cls.get_logger().error(
            f"{context}: {exc.message}",
            extra={
                "error_code": exc.error_code,
                "stripe_code": exc.stripe_code,
                "is_retryable": exc.is_retryable,
            },
        )
        code = STRIPE_UNAVAILABLE if exc.is_retryable else STRIPE_ERROR
        return ServiceResult.failure(exc.message, error_code=code)
