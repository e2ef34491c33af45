"""
Payment-specific exceptions for the platform-first payment flow.

Exception Hierarchy:
    PaymentError (base for payment domain)
    ├── PaymentValidationError - Bad amounts, rates or immutable-row edits
    └── PaymentProcessingError - Payment processing failures
        └── StripeError - Base for all Stripe errors
            ├── StripeCardDeclinedError - Card declined (permanent)
            ├── StripeInsufficientFundsError - Insufficient funds (permanent)
            ├── StripeInvalidAccountError - Invalid connected account (permanent)
            ├── StripeInvalidRequestError - Invalid request params (permanent)
            ├── StripeRateLimitError - Rate limited (transient)
            ├── StripeAPIUnavailableError - API unavailable (transient)
            └── StripeTimeoutError - Request timeout (transient)

Usage:
    from payments.exceptions import PaymentValidationError, StripeError

    if product_subtotal_cents <= 0:
        raise PaymentValidationError(
            "Product subtotal must be positive",
            details={"product_subtotal_cents": product_subtotal_cents},
        )
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import BaseApplicationError

if TYPE_CHECKING:
    from typing import Any


# =============================================================================
# Payment Domain Exceptions
# =============================================================================


class PaymentError(BaseApplicationError):
    """
    Base exception for all payment operations.

    Inherits from BaseApplicationError so views can render it with
    ``to_dict()`` like any other domain error.
    """

    default_error_code: str = "PAYMENT_ERROR"


class PaymentValidationError(PaymentError):
    """
    Raised when payment input or audit data is invalid.

    Use for:
    - Non-positive subtotals or negative fees
    - Fee rates outside [0, 1)
    - Attempts to modify an immutable PaymentCalculation
    """

    default_error_code: str = "PAYMENT_VALIDATION_ERROR"


class PaymentProcessingError(PaymentError):
    """Raised when payment processing fails at the gateway."""

    default_error_code: str = "PAYMENT_PROCESSING_ERROR"


# =============================================================================
# Stripe-Specific Exceptions
# =============================================================================


class StripeError(PaymentProcessingError):
    """
    Base exception for all Stripe-related errors.

    Attributes:
        stripe_code: Stripe's internal error code
        decline_code: Card decline code (if applicable)
        is_retryable: True for transient errors that are safe to retry

    Example:
        try:
            StripeAdapter.create_transfer(...)
        except StripeError as e:
            transfer.mark_failed(str(e))
    """

    default_error_code: str = "STRIPE_ERROR"
    is_retryable: bool = False

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        stripe_code: str | None = None,
        decline_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if stripe_code:
            details["stripe_code"] = stripe_code
        if decline_code:
            details["decline_code"] = decline_code
        super().__init__(message, error_code=error_code, details=details)
        self.stripe_code = stripe_code
        self.decline_code = decline_code


class StripeCardDeclinedError(StripeError):
    """Card was declined by the issuer. Permanent."""

    default_error_code: str = "STRIPE_CARD_DECLINED"


class StripeInsufficientFundsError(StripeError):
    """
    Insufficient funds.

    For transfers this means the platform balance cannot cover the
    wholesaler share yet. Permanent for this attempt.
    """

    default_error_code: str = "STRIPE_INSUFFICIENT_FUNDS"


class StripeInvalidAccountError(StripeError):
    """Connected account is missing, restricted, or cannot receive transfers."""

    default_error_code: str = "STRIPE_INVALID_ACCOUNT"


class StripeInvalidRequestError(StripeError):
    """Invalid parameters, unknown resource, or bad webhook signature."""

    default_error_code: str = "STRIPE_INVALID_REQUEST"


class StripeRateLimitError(StripeError):
    """Too many requests to Stripe. Transient."""

    default_error_code: str = "STRIPE_RATE_LIMIT"
    is_retryable: bool = True


class StripeAPIUnavailableError(StripeError):
    """Stripe could not be reached or returned a server error. Transient."""

    default_error_code: str = "STRIPE_API_UNAVAILABLE"
    is_retryable: bool = True


class StripeTimeoutError(StripeError):
    """Stripe call exceeded STRIPE_API_TIMEOUT_SECONDS. Transient."""

    default_error_code: str = "STRIPE_TIMEOUT"
    is_retryable: bool = True


__all__ = [
    "PaymentError",
    "PaymentValidationError",
    "PaymentProcessingError",
    "StripeError",
    "StripeCardDeclinedError",
    "StripeInsufficientFundsError",
    "StripeInvalidAccountError",
    "StripeInvalidRequestError",
    "StripeRateLimitError",
    "StripeAPIUnavailableError",
    "StripeTimeoutError",
]
