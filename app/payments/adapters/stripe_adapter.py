"""
Stripe API adapter for platform-first Connect payments.

Every Stripe call in the project goes through StripeAdapter so timeouts,
idempotency keys, error translation and logging are handled in one place.

Features:
- Configurable timeout and network retries on all API calls
- Automatic error translation to domain exceptions
- Structured logging with timing metrics
- Idempotency support for safe retries

Configuration (via settings):
- STRIPE_SECRET_KEY: Stripe API secret key
- STRIPE_WEBHOOK_SECRET: Webhook signing secret
- STRIPE_API_TIMEOUT_SECONDS: API call timeout (default: 10)
- STRIPE_MAX_RETRIES: Network retries done by the SDK (default: 3)

Usage:
    from payments.adapters import StripeAdapter, CreatePaymentIntentParams

    result = StripeAdapter.create_payment_intent(
        CreatePaymentIntentParams(
            amount_cents=11100,
            currency="gbp",
            metadata={"order_id": "42", "payment_type": "platform_first_v2"},
            idempotency_key="create_platform_intent:42:1:a1b2c3d4",
        )
    )

    transfer = StripeAdapter.create_transfer(
        amount_cents=9670,
        destination_account="acct_123",
        idempotency_key="transfer_to_wholesaler:pi_123:1:e5f6a7b8",
        currency="gbp",
    )
"""

from __future__ import annotations

import hashlib
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable

import stripe
from django.conf import settings

from payments.exceptions import (
    StripeAPIUnavailableError,
    StripeCardDeclinedError,
    StripeError,
    StripeInsufficientFundsError,
    StripeInvalidAccountError,
    StripeInvalidRequestError,
    StripeRateLimitError,
    StripeTimeoutError,
)

MAX_LIST_LIMIT = 100


# =============================================================================
# Data Types
# =============================================================================


@dataclass
class CreatePaymentIntentParams:
    """
    Parameters for creating a Stripe PaymentIntent.

    Attributes:
        amount_cents: Payment amount in smallest currency unit
        currency: ISO 4217 currency code
        idempotency_key: Unique key for idempotent creation
        metadata: Key-value pairs to attach to the PaymentIntent
        description: Statement description shown in the dashboard
        customer_id: Optional Stripe Customer ID
        payment_method_types: Allowed payment methods (default: ['card'])
    """

    amount_cents: int
    currency: str
    idempotency_key: str
    metadata: dict[str, str] = field(default_factory=dict)
    description: str | None = None
    customer_id: str | None = None
    payment_method_types: list[str] = field(default_factory=lambda: ["card"])

    def __post_init__(self) -> None:
        if self.amount_cents <= 0:
            raise ValueError("amount_cents must be positive")
        if not self.idempotency_key:
            raise ValueError("idempotency_key is required")
        if not self.currency:
            raise ValueError("currency is required")


@dataclass
class PaymentIntentResult:
    """
    Result from Stripe PaymentIntent operations.

    Attributes:
        id: PaymentIntent ID (pi_xxx)
        status: Current status (requires_payment_method, succeeded, etc.)
        amount_cents: Amount in cents
        currency: Currency code
        client_secret: Secret for client-side confirmation
        latest_charge: Charge ID once the intent has been paid
        metadata: Attached metadata
        raw_response: Full Stripe response dict
    """

    id: str
    status: str
    amount_cents: int
    currency: str
    client_secret: str | None = None
    latest_charge: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)
    raw_response: dict[str, Any] = field(default_factory=dict)


@dataclass
class TransferResult:
    """Result from Stripe Transfer operations."""

    id: str
    amount_cents: int
    currency: str
    destination_account: str
    created: int | None = None
    reversed: bool = False
    metadata: dict[str, str] = field(default_factory=dict)
    raw_response: dict[str, Any] = field(default_factory=dict)


@dataclass
class AccountResult:
    """
    Result from Stripe Account operations.

    Attributes:
        id: Account ID (acct_xxx)
        capabilities: Capability name -> status
        requirements_due: requirements.currently_due, None when Stripe omitted it
        disabled_reason: requirements.disabled_reason, if Stripe disabled it
        raw_response: Full Stripe response dict, as stored by onboarding
    """

    id: str
    details_submitted: bool = False
    charges_enabled: bool = False
    payouts_enabled: bool = False
    country: str | None = None
    capabilities: dict[str, str] = field(default_factory=dict)
    requirements_due: list[str] | None = None
    disabled_reason: str | None = None
    business_profile: dict[str, Any] = field(default_factory=dict)
    raw_response: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AccountResult:
        """Build from a Stripe account dict (API response or webhook payload)."""
        requirements = data.get("requirements") or {}
        currently_due = requirements.get("currently_due")
        return cls(
            id=data["id"],
            details_submitted=bool(data.get("details_submitted")),
            charges_enabled=bool(data.get("charges_enabled")),
            payouts_enabled=bool(data.get("payouts_enabled")),
            country=data.get("country"),
            capabilities=dict(data.get("capabilities") or {}),
            requirements_due=None if currently_due is None else list(currently_due),
            disabled_reason=requirements.get("disabled_reason"),
            business_profile=dict(data.get("business_profile") or {}),
            raw_response=data,
        )


@dataclass
class AccountLinkResult:
    """Onboarding link for an Express account."""

    url: str
    expires_at: int
    raw_response: dict[str, Any] = field(default_factory=dict)


@dataclass
class BalanceResult:
    """
    Platform balance.

    available and pending are lists of {"amount": int, "currency": str}.
    """

    available: list[dict[str, Any]]
    pending: list[dict[str, Any]]
    livemode: bool
    raw_response: dict[str, Any] = field(default_factory=dict)


# =============================================================================
# Idempotency Key Generator
# =============================================================================


class IdempotencyKeyGenerator:
    """
    Generate idempotency keys for Stripe API calls.

    Format: "{operation}:{entity_id}:{attempt}:{hash}"

    The same (operation, entity, attempt) always yields the same key, so a
    worker that crashes after Stripe accepted a call replays onto the same
    Stripe object.

    Example:
        key = IdempotencyKeyGenerator.generate(
            operation="transfer_to_wholesaler",
            entity_id="pi_3Nxyz",
            attempt=1,
        )
        # "transfer_to_wholesaler:pi_3Nxyz:1:a1b2c3d4"
    """

    @staticmethod
    def generate(
        operation: str,
        entity_id: uuid.UUID | str | int,
        attempt: int = 1,
    ) -> str:
        entity_str = str(entity_id)
        hash_input = f"{operation}:{entity_str}:{attempt}:{settings.SECRET_KEY}"
        short_hash = hashlib.sha256(hash_input.encode()).hexdigest()[:8]
        return f"{operation}:{entity_str}:{attempt}:{short_hash}"


# =============================================================================
# Retry Classification
# =============================================================================


def is_retryable_stripe_error(error: Exception) -> bool:
    """
    Check if an error is a transient Stripe error.

    A timeout or outage may hide a request that Stripe did complete, so a
    retry must reuse the original idempotency key.
    """
    if isinstance(error, StripeError):
        return getattr(error, "is_retryable", False)
    return False


# =============================================================================
# Stripe Adapter
# =============================================================================


def _to_dict(stripe_object: Any) -> dict[str, Any]:
    if hasattr(stripe_object, "to_dict"):
        return stripe_object.to_dict()
    return dict(stripe_object)


class StripeAdapter:
    """
    Adapter for Stripe API operations.

    All methods are classmethods; no instance state is kept, so the adapter
    is safe to call from Celery workers.

    Usage:
        intent = StripeAdapter.retrieve_payment_intent("pi_xxx")
        account = StripeAdapter.retrieve_account("acct_xxx")
    """

    # =========================================================================
    # Configuration
    # =========================================================================

    @staticmethod
    def _configure_stripe() -> None:
        """Configure Stripe client with API key, timeout and retries."""
        stripe.api_key = settings.STRIPE_SECRET_KEY
        stripe.max_network_retries = getattr(settings, "STRIPE_MAX_RETRIES", 3)
        timeout = getattr(settings, "STRIPE_API_TIMEOUT_SECONDS", 10)
        stripe.default_http_client = stripe.RequestsClient(timeout=timeout)

    @classmethod
    def get_logger(cls) -> logging.Logger:
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    def _call(
        cls,
        log_context: dict[str, Any],
        func: Callable[[], Any],
        result_context: Callable[[Any], dict[str, Any]] | None = None,
        level: int = logging.INFO,
    ) -> Any:
        """
        Run one Stripe SDK call with timing logs and error translation.

        Args:
            log_context: Structured context; must include "operation"
            func: Zero-argument callable performing the SDK call
            result_context: Extracts extra log fields from the response
            level: Log level for the start/completed messages

        Raises:
            StripeError: Translated from any SDK exception
        """
        cls._configure_stripe()
        logger = cls.get_logger()

        start_time = time.time()
        logger.log(level, "Starting Stripe operation", extra=log_context)

        try:
            response = func()
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            cls._handle_stripe_error(e, log_context, duration_ms)
            raise

        duration_ms = (time.time() - start_time) * 1000
        extra = dict(result_context(response)) if result_context else {}
        logger.log(
            level,
            "Stripe operation completed",
            extra={**log_context, **extra, "duration_ms": duration_ms},
        )
        return response

    # =========================================================================
    # Payment Intents
    # =========================================================================

    @classmethod
    def create_payment_intent(
        cls,
        params: CreatePaymentIntentParams,
        trace_id: str | None = None,
    ) -> PaymentIntentResult:
        """
        Create a PaymentIntent charged to the platform account.

        No transfer_data or on_behalf_of is sent: the platform is the
        merchant of record and pays wholesalers with separate transfers.

        Raises:
            StripeCardDeclinedError: Card was declined
            StripeInvalidRequestError: Invalid parameters
            StripeAPIUnavailableError: Stripe service unavailable
            StripeTimeoutError: Request timed out
        """
        log_context = {
            "operation": "create_payment_intent",
            "amount_cents": params.amount_cents,
            "currency": params.currency,
            "idempotency_key": params.idempotency_key,
            "trace_id": trace_id,
        }

        create_params: dict[str, Any] = {
            "amount": params.amount_cents,
            "currency": params.currency,
            "metadata": params.metadata,
            "payment_method_types": params.payment_method_types,
        }
        if params.description:
            create_params["description"] = params.description
        if params.customer_id:
            create_params["customer"] = params.customer_id

        intent = cls._call(
            log_context,
            lambda: stripe.PaymentIntent.create(
                idempotency_key=params.idempotency_key,
                **create_params,
            ),
            lambda pi: {"payment_intent_id": pi.id, "status": pi.status},
        )
        return cls._payment_intent_result(intent)

    @classmethod
    def retrieve_payment_intent(
        cls,
        payment_intent_id: str,
        trace_id: str | None = None,
    ) -> PaymentIntentResult:
        """
        Retrieve a PaymentIntent by ID.

        Raises:
            StripeInvalidRequestError: PaymentIntent not found
        """
        log_context = {
            "operation": "retrieve_payment_intent",
            "payment_intent_id": payment_intent_id,
            "trace_id": trace_id,
        }
        intent = cls._call(
            log_context,
            lambda: stripe.PaymentIntent.retrieve(payment_intent_id),
            lambda pi: {"status": pi.status},
            level=logging.DEBUG,
        )
        return cls._payment_intent_result(intent)

    @staticmethod
    def _payment_intent_result(intent: Any) -> PaymentIntentResult:
        data = _to_dict(intent)
        latest_charge = data.get("latest_charge")
        if isinstance(latest_charge, dict):
            latest_charge = latest_charge.get("id")
        return PaymentIntentResult(
            id=data["id"],
            status=data["status"],
            amount_cents=data["amount"],
            currency=data["currency"],
            client_secret=data.get("client_secret"),
            latest_charge=latest_charge,
            metadata=dict(data.get("metadata") or {}),
            raw_response=data,
        )

    # =========================================================================
    # Transfers
    # =========================================================================

    @classmethod
    def create_transfer(
        cls,
        amount_cents: int,
        destination_account: str,
        idempotency_key: str,
        currency: str = "gbp",
        description: str | None = None,
        metadata: dict[str, str] | None = None,
        source_transaction: str | None = None,
        trace_id: str | None = None,
    ) -> TransferResult:
        """
        Transfer funds from the platform balance to a connected account.

        Args:
            amount_cents: Amount to transfer in cents
            destination_account: Stripe Connect account ID (acct_xxx)
            idempotency_key: Unique key for idempotent transfer
            currency: Currency code (default: 'gbp')
            description: Shown to the wholesaler in their dashboard
            metadata: Optional metadata dict
            source_transaction: Charge the funds come from; lets the transfer
                go out before the charge settles into the available balance
            trace_id: Optional trace ID for distributed tracing

        Raises:
            StripeInvalidAccountError: Invalid destination account
            StripeInsufficientFundsError: Insufficient platform balance
        """
        log_context = {
            "operation": "create_transfer",
            "amount_cents": amount_cents,
            "destination_account": destination_account,
            "idempotency_key": idempotency_key,
            "trace_id": trace_id,
        }

        transfer_params: dict[str, Any] = {
            "amount": amount_cents,
            "currency": currency,
            "destination": destination_account,
            "metadata": metadata or {},
        }
        if description:
            transfer_params["description"] = description
        if source_transaction:
            transfer_params["source_transaction"] = source_transaction

        transfer = cls._call(
            log_context,
            lambda: stripe.Transfer.create(
                idempotency_key=idempotency_key,
                **transfer_params,
            ),
            lambda tr: {"transfer_id": tr.id},
        )
        return cls._transfer_result(transfer)

    @classmethod
    def list_transfers(
        cls,
        limit: int = 10,
        trace_id: str | None = None,
    ) -> list[TransferResult]:
        """Most recent transfers from the platform, newest first (max 100)."""
        limit = max(1, min(limit, MAX_LIST_LIMIT))
        log_context = {
            "operation": "list_transfers",
            "limit": limit,
            "trace_id": trace_id,
        }
        transfers = cls._call(
            log_context,
            lambda: stripe.Transfer.list(limit=limit),
            lambda page: {"count": len(page.data)},
        )
        return [cls._transfer_result(transfer) for transfer in transfers.data]

    @staticmethod
    def _transfer_result(transfer: Any) -> TransferResult:
        data = _to_dict(transfer)
        return TransferResult(
            id=data["id"],
            amount_cents=data["amount"],
            currency=data["currency"],
            destination_account=data.get("destination") or "",
            created=data.get("created"),
            reversed=bool(data.get("reversed")),
            metadata=dict(data.get("metadata") or {}),
            raw_response=data,
        )

    # =========================================================================
    # Connected Accounts
    # =========================================================================

    @classmethod
    def create_express_account(
        cls,
        email: str,
        country: str,
        idempotency_key: str,
        business_name: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> AccountResult:
        """Create an Express account with the transfers capability requested."""
        log_context = {
            "operation": "create_express_account",
            "country": country,
            "idempotency_key": idempotency_key,
        }

        account_params: dict[str, Any] = {
            "type": "express",
            "country": country,
            "email": email,
            "capabilities": {"transfers": {"requested": True}},
            "metadata": metadata or {},
        }
        if business_name:
            account_params["business_profile"] = {"name": business_name}

        account = cls._call(
            log_context,
            lambda: stripe.Account.create(
                idempotency_key=idempotency_key,
                **account_params,
            ),
            lambda acct: {"account_id": acct.id},
        )
        return AccountResult.from_dict(_to_dict(account))

    @classmethod
    def create_account_link(
        cls,
        account_id: str,
        return_url: str,
        refresh_url: str,
    ) -> AccountLinkResult:
        """Create a hosted onboarding link (type account_onboarding)."""
        log_context = {
            "operation": "create_account_link",
            "account_id": account_id,
        }
        link = cls._call(
            log_context,
            lambda: stripe.AccountLink.create(
                account=account_id,
                return_url=return_url,
                refresh_url=refresh_url,
                type="account_onboarding",
            ),
        )
        data = _to_dict(link)
        return AccountLinkResult(
            url=data["url"],
            expires_at=data["expires_at"],
            raw_response=data,
        )

    @classmethod
    def retrieve_account(cls, account_id: str) -> AccountResult:
        log_context = {
            "operation": "retrieve_account",
            "account_id": account_id,
        }
        account = cls._call(
            log_context,
            lambda: stripe.Account.retrieve(account_id),
            level=logging.DEBUG,
        )
        return AccountResult.from_dict(_to_dict(account))

    # =========================================================================
    # Balance
    # =========================================================================

    @classmethod
    def retrieve_balance(cls) -> BalanceResult:
        balance = cls._call(
            {"operation": "retrieve_balance"},
            lambda: stripe.Balance.retrieve(),
        )
        data = _to_dict(balance)
        return BalanceResult(
            available=list(data.get("available") or []),
            pending=list(data.get("pending") or []),
            livemode=bool(data.get("livemode")),
            raw_response=data,
        )

    # =========================================================================
    # Webhook Verification
    # =========================================================================

    @classmethod
    def verify_webhook_signature(
        cls,
        payload: bytes,
        signature: str,
    ) -> dict[str, Any]:
        """
        Verify and parse a Stripe webhook event.

        Raises:
            StripeInvalidRequestError: Invalid signature or malformed payload
        """
        try:
            event = stripe.Webhook.construct_event(
                payload,
                signature,
                settings.STRIPE_WEBHOOK_SECRET,
            )
        except stripe.SignatureVerificationError as e:
            raise StripeInvalidRequestError(
                "Invalid webhook signature",
                stripe_code="signature_verification_failed",
                details={"error": str(e)},
            )
        except ValueError as e:
            raise StripeInvalidRequestError(
                "Invalid webhook payload",
                stripe_code="invalid_payload",
                details={"error": str(e)},
            )
        return _to_dict(event)

    # =========================================================================
    # Error Handling
    # =========================================================================

    @classmethod
    def _handle_stripe_error(
        cls,
        error: Exception,
        log_context: dict[str, Any],
        duration_ms: float,
    ) -> None:
        """
        Translate Stripe SDK exceptions to domain exceptions.

        Raises:
            StripeCardDeclinedError: Card was declined
            StripeInsufficientFundsError: Insufficient funds
            StripeInvalidAccountError: Invalid Connect account
            StripeInvalidRequestError: Invalid request or authentication
            StripeRateLimitError: Rate limited
            StripeTimeoutError: Request timed out
            StripeAPIUnavailableError: API unreachable or unknown failure
        """
        logger = cls.get_logger()
        log_context = {**log_context, "duration_ms": duration_ms}

        if isinstance(error, StripeError):
            raise error

        if isinstance(error, stripe.CardError):
            decline_code = getattr(error, "decline_code", None)
            logger.warning(
                "Card error from Stripe",
                extra={**log_context, "decline_code": decline_code},
            )
            message = str(getattr(error, "user_message", None) or error)
            if decline_code == "insufficient_funds":
                raise StripeInsufficientFundsError(
                    message,
                    stripe_code=error.code,
                    decline_code=decline_code,
                )
            raise StripeCardDeclinedError(
                message,
                stripe_code=error.code,
                decline_code=decline_code,
            )

        if isinstance(error, stripe.InvalidRequestError):
            logger.error(
                "Invalid request to Stripe",
                extra={**log_context, "stripe_code": error.code},
            )
            if error.code == "balance_insufficient":
                raise StripeInsufficientFundsError(
                    str(getattr(error, "user_message", None) or error),
                    stripe_code=error.code,
                )
            if "account" in str(error).lower():
                raise StripeInvalidAccountError(str(error), stripe_code=error.code)
            raise StripeInvalidRequestError(str(error), stripe_code=error.code)

        if isinstance(error, stripe.RateLimitError):
            logger.warning("Rate limited by Stripe", extra=log_context)
            raise StripeRateLimitError(
                "Stripe rate limit exceeded. Please retry.",
                stripe_code="rate_limit",
            )

        if isinstance(error, stripe.APIConnectionError):
            logger.error("Connection error to Stripe", extra=log_context, exc_info=True)
            if "timed out" in str(error).lower() or "timeout" in str(error).lower():
                raise StripeTimeoutError(
                    "Stripe request timed out. Please retry.",
                    stripe_code="timeout",
                )
            raise StripeAPIUnavailableError(
                "Could not connect to Stripe. Please retry.",
                stripe_code="api_connection_error",
            )

        if isinstance(error, stripe.AuthenticationError):
            logger.critical(
                "Stripe authentication failed - check API key",
                extra=log_context,
            )
            raise StripeInvalidRequestError(
                "Stripe authentication failed",
                stripe_code="authentication_error",
            )

        if isinstance(error, stripe.PermissionError):
            logger.error("Stripe permission denied", extra=log_context)
            raise StripeInvalidAccountError(
                str(error),
                stripe_code="permission_error",
            )

        if isinstance(error, stripe.APIError):
            logger.error("Stripe API error", extra=log_context, exc_info=True)
            raise StripeAPIUnavailableError(
                "Stripe service error. Please retry.",
                stripe_code="api_error",
            )

        logger.error(
            f"Unexpected error from Stripe: {type(error).__name__}",
            extra=log_context,
            exc_info=True,
        )
        raise StripeAPIUnavailableError(
            f"Unexpected Stripe error: {error}",
            stripe_code="unknown_error",
        )
