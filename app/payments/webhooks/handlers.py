"""
Webhook event handlers for Stripe events.

Handlers are registered per event type and called by the
process_webhook_event Celery task inside a transaction.

Handlers return a failed ServiceResult only for errors worth retrying.
Events that can never succeed (missing metadata, unknown order or
wholesaler) are logged at ERROR and acknowledged, so Stripe and the retry
task do not replay them forever.

Usage:
    from payments.webhooks.handlers import dispatch_webhook, register_handler

    @register_handler("custom.event")
    def handle_custom_event(webhook_event: WebhookEvent) -> ServiceResult:
        ...

    result = dispatch_webhook(webhook_event)
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils import timezone

from core.services import ServiceResult

from orders.models import Order, OrderPaymentStatus
from payments.exceptions import PaymentValidationError
from payments.fees import PAYMENT_TYPE_PLATFORM_FIRST
from payments.models import ConnectedAccount, Transfer, WebhookEvent
from payments.services import (
    OnboardingService,
    TransferService,
    split_amounts_from_metadata,
)
from payments.state_machines import TransferStatus

logger = logging.getLogger(__name__)


# =============================================================================
# Handler Registry
# =============================================================================


# Maps event type strings to handler functions
WEBHOOK_HANDLERS: dict[str, Callable[[WebhookEvent], ServiceResult]] = {}


def register_handler(event_type: str) -> Callable:
    """
    Decorator to register a webhook event handler.

    Usage:
        @register_handler("payment_intent.succeeded")
        def handle_payment_succeeded(webhook_event: WebhookEvent) -> ServiceResult:
            ...
    """

    def decorator(func: Callable[[WebhookEvent], ServiceResult]) -> Callable:
        WEBHOOK_HANDLERS[event_type] = func
        return func

    return decorator


def dispatch_webhook(webhook_event: WebhookEvent) -> ServiceResult:
    """
    Route a webhook event to its handler.

    Unknown event types are acknowledged with a successful result.
    """
    handler = WEBHOOK_HANDLERS.get(webhook_event.event_type)

    if not handler:
        logger.info(
            f"No handler registered for event type: {webhook_event.event_type}",
            extra={"stripe_event_id": webhook_event.stripe_event_id},
        )
        return ServiceResult.success(None)

    logger.info(
        f"Dispatching {webhook_event.event_type} to handler",
        extra={"stripe_event_id": webhook_event.stripe_event_id},
    )
    return handler(webhook_event)


# =============================================================================
# Helpers
# =============================================================================


def _metadata_value(metadata: dict[str, Any], *keys: str) -> str | None:
    """First non-empty value among snake_case and camelCase spellings."""
    for key in keys:
        value = metadata.get(key)
        if value not in (None, ""):
            return str(value)
    return None


def _as_pk(value: str | None) -> int | None:
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def _acknowledge_invalid(message: str, log_context: dict[str, Any]) -> ServiceResult:
    """Log an unrecoverable event and acknowledge it without action."""
    logger.error(message, extra=log_context)
    return ServiceResult.success(None)


# =============================================================================
# Payment Intent Handlers
# =============================================================================


@register_handler("payment_intent.succeeded")
def handle_payment_intent_succeeded(webhook_event: WebhookEvent) -> ServiceResult:
    """
    Transfer the wholesaler share once a platform-first payment succeeds.

    Steps:
        1. Ignore intents without payment_type=platform_first_v2
        2. Validate order, wholesaler, connected account and share
        3. Mark the order paid
        4. Delegate to TransferService.transfer_for_payment_intent

    A failed Stripe transfer is recorded on the Transfer and the order
    (transfer_failed) and the event is still acknowledged.
    """
    intent = webhook_event.data_object
    payment_intent_id = intent.get("id")
    metadata = intent.get("metadata") or {}

    if metadata.get("payment_type") != PAYMENT_TYPE_PLATFORM_FIRST:
        logger.info(
            "Skipping payment intent without platform-first metadata",
            extra={
                "stripe_event_id": webhook_event.stripe_event_id,
                "payment_intent_id": payment_intent_id,
            },
        )
        return ServiceResult.success(None)

    order_id = _metadata_value(metadata, "order_id", "orderId")
    wholesaler_id = _metadata_value(metadata, "wholesaler_id", "wholesalerId")
    customer_id = _metadata_value(metadata, "customer_id", "customerId")

    log_context = {
        "stripe_event_id": webhook_event.stripe_event_id,
        "payment_intent_id": payment_intent_id,
        "order_id": order_id,
        "wholesaler_id": wholesaler_id,
    }

    if not payment_intent_id or not order_id or not wholesaler_id:
        return _acknowledge_invalid(
            "Platform payment missing order or wholesaler metadata", log_context
        )

    order = Order.objects.filter(pk=_as_pk(order_id)).first() if _as_pk(order_id) else None
    if not order:
        return _acknowledge_invalid("Order not found for platform payment", log_context)

    User = get_user_model()
    wholesaler_pk = _as_pk(wholesaler_id)
    wholesaler = User.objects.filter(pk=wholesaler_pk).first() if wholesaler_pk else None
    if not wholesaler:
        return _acknowledge_invalid(
            "Wholesaler not found for platform payment", log_context
        )
    if order.wholesaler_id != wholesaler.pk:
        return _acknowledge_invalid(
            "Order does not belong to wholesaler in metadata", log_context
        )
    if not ConnectedAccount.objects.filter(wholesaler=wholesaler).exists():
        return _acknowledge_invalid(
            "Wholesaler has no Stripe Connect account", log_context
        )

    try:
        share_cents, platform_cents = split_amounts_from_metadata(metadata, order)
    except PaymentValidationError as e:
        return _acknowledge_invalid(
            f"Invalid split metadata: {e.message}", log_context
        )
    if share_cents <= 0:
        return _acknowledge_invalid("Wholesaler share must be positive", log_context)

    with transaction.atomic():
        locked_order = Order.objects.select_for_update().get(pk=order.pk)
        if locked_order.payment_status == OrderPaymentStatus.UNPAID:
            locked_order.mark_paid()
            if not locked_order.stripe_payment_intent_id:
                locked_order.stripe_payment_intent_id = payment_intent_id
            locked_order.save()

    latest_charge = intent.get("latest_charge")
    if isinstance(latest_charge, dict):
        latest_charge = latest_charge.get("id")

    result = TransferService.transfer_for_payment_intent(
        payment_intent_id=payment_intent_id,
        order=order,
        wholesaler=wholesaler,
        amount_cents=share_cents,
        platform_fee_cents=platform_cents,
        customer_id=customer_id,
        source_transaction=latest_charge,
    )

    if not result.success:
        logger.error(
            "Wholesaler transfer failed, order left for manual reconciliation",
            extra={**log_context, "error": result.error, "error_code": result.error_code},
        )
        return ServiceResult.success(None)

    return result


# =============================================================================
# Transfer Handlers
# =============================================================================


def _find_transfer(transfer_data: dict[str, Any]) -> Transfer | None:
    """
    Locate the local Transfer for a Stripe transfer object.

    Falls back to the payment_intent metadata when the event arrives before
    the Stripe transfer ID was stored.
    """
    transfer_id = transfer_data.get("id")
    transfer = (
        Transfer.objects.select_for_update()
        .filter(stripe_transfer_id=transfer_id)
        .first()
    )
    if transfer:
        return transfer

    payment_intent_id = (transfer_data.get("metadata") or {}).get("payment_intent")
    if not payment_intent_id:
        return None
    return (
        Transfer.objects.select_for_update()
        .filter(
            stripe_payment_intent_id=payment_intent_id,
            stripe_transfer_id__isnull=True,
        )
        .first()
    )


def _mark_order_transferred(transfer: Transfer) -> None:
    order = Order.objects.select_for_update().get(pk=transfer.order_id)
    if order.payment_status in (
        OrderPaymentStatus.PAID,
        OrderPaymentStatus.TRANSFER_FAILED,
    ):
        order.mark_transferred()
        order.save()


@register_handler("transfer.created")
def handle_transfer_created(webhook_event: WebhookEvent) -> ServiceResult:
    """Confirm a pending Transfer once Stripe reports it created."""
    transfer_data = webhook_event.data_object
    transfer_id = transfer_data.get("id")
    log_context = {
        "stripe_event_id": webhook_event.stripe_event_id,
        "stripe_transfer_id": transfer_id,
    }

    if not transfer_id:
        return _acknowledge_invalid("transfer.created without transfer id", log_context)

    with transaction.atomic():
        transfer = _find_transfer(transfer_data)
        if not transfer:
            logger.info("Transfer not found (may be external)", extra=log_context)
            return ServiceResult.success(None)

        if transfer.status == TransferStatus.PENDING:
            transfer.mark_succeeded(transfer_id)
            transfer.save()
            _mark_order_transferred(transfer)
            logger.info(
                "Transfer confirmed by webhook",
                extra={**log_context, "transfer_id": str(transfer.id)},
            )
        elif transfer.is_failed:
            logger.warning(
                "transfer.created for a transfer recorded as failed",
                extra={**log_context, "transfer_id": str(transfer.id)},
            )

        return ServiceResult.success(transfer)


@register_handler("transfer.updated")
def handle_transfer_updated(webhook_event: WebhookEvent) -> ServiceResult:
    """
    Sync a Transfer with Stripe's latest view of it.

    A transfer that Stripe reports reversed (fully or flagged reversed) is
    marked failed; anything else is treated as succeeded.
    """
    transfer_data = webhook_event.data_object
    transfer_id = transfer_data.get("id")
    log_context = {
        "stripe_event_id": webhook_event.stripe_event_id,
        "stripe_transfer_id": transfer_id,
    }

    if not transfer_id:
        return _acknowledge_invalid("transfer.updated without transfer id", log_context)

    amount = transfer_data.get("amount") or 0
    amount_reversed = transfer_data.get("amount_reversed") or 0
    fully_reversed = bool(transfer_data.get("reversed")) or (
        amount > 0 and amount_reversed >= amount
    )
    if fully_reversed:
        stripe_status = "reversed"
    elif amount_reversed:
        stripe_status = "partially_reversed"
    else:
        stripe_status = "succeeded"

    with transaction.atomic():
        transfer = _find_transfer(transfer_data)
        if not transfer:
            logger.info("Transfer not found (may be external)", extra=log_context)
            return ServiceResult.success(None)

        if fully_reversed:
            if not transfer.is_failed:
                transfer.mark_failed("Transfer reversed")
                logger.warning(
                    "Transfer reversed by Stripe",
                    extra={**log_context, "transfer_id": str(transfer.id)},
                )
        elif transfer.status == TransferStatus.PENDING:
            transfer.mark_succeeded(transfer_id)
            _mark_order_transferred(transfer)

        transfer.metadata = {
            **(transfer.metadata or {}),
            "last_updated": timezone.now().isoformat(),
            "stripe_status": stripe_status,
        }
        transfer.save()

        return ServiceResult.success(transfer)


# =============================================================================
# Connect Account Handlers
# =============================================================================


@register_handler("account.updated")
def handle_account_updated(webhook_event: WebhookEvent) -> ServiceResult:
    """Refresh the local ConnectedAccount from the event payload."""
    account_data = webhook_event.data_object

    if not account_data.get("id"):
        return _acknowledge_invalid(
            "account.updated without account id",
            {"stripe_event_id": webhook_event.stripe_event_id},
        )

    logger.info(
        "Processing account.updated",
        extra={
            "stripe_event_id": webhook_event.stripe_event_id,
            "stripe_account_id": account_data.get("id"),
        },
    )
    return OnboardingService.sync_account(account_data)
