"""
Transfer service for paying wholesalers their share.

After a platform-first PaymentIntent succeeds, the wholesaler's share is
sent from the platform balance to their Express account. Stripe delivers
webhooks at least once, so the transfer must happen exactly once per
PaymentIntent no matter how often it is requested.

Exactly-once is enforced in two layers:
1. The Transfer row is claimed with get_or_create on the unique
   stripe_payment_intent_id, inside a transaction holding a row lock.
2. The Stripe call carries an idempotency key derived from the
   PaymentIntent ID and attempt number, so a worker that dies after Stripe
   accepted the transfer replays onto the same Stripe transfer.

Usage:
    from payments.services import TransferService

    result = TransferService.transfer_for_payment_intent(
        payment_intent_id="pi_123",
        order=order,
        wholesaler=order.wholesaler,
        amount_cents=9670,
        platform_fee_cents=1430,
    )

    # Manual path used by the process-payment endpoint and the admin
    result = TransferService.process_complete_payment("pi_123", order_id=42)
"""

from __future__ import annotations

import dataclasses
import logging
from typing import Any

from django.conf import settings

from core.services import ServiceResult

from orders.models import Order, OrderPaymentStatus
from payments.adapters import IdempotencyKeyGenerator, is_retryable_stripe_error
from payments.exceptions import PaymentValidationError, StripeError
from payments.fees import calculate_payment_split, parse_amount_to_cents
from payments.models import ConnectedAccount, PaymentCalculation, Transfer
from payments.services.base import PaymentService
from payments.services.onboarding_service import OnboardingService
from payments.services.payment_intent_service import record_payment_calculation

logger = logging.getLogger(__name__)

TRANSFER_TYPE = "wholesaler_payment_v2"


def split_amounts_from_metadata(
    metadata: dict[str, Any], order: Order
) -> tuple[int, int]:
    """
    Wholesaler share and platform total for a PaymentIntent, in cents.

    Taken from the intent's metadata when present, otherwise recomputed
    from the order with the configured fee rates.

    Raises:
        PaymentValidationError: If the metadata amounts are not numbers
    """
    share = metadata.get("wholesaler_share")
    platform_total = metadata.get("platform_total")
    if share not in (None, "") and platform_total not in (None, ""):
        return parse_amount_to_cents(share), parse_amount_to_cents(platform_total)

    split = calculate_payment_split(order.subtotal_cents, order.delivery_cost_cents)
    return split.wholesaler_share_cents, split.platform_total_cents


class TransferService(PaymentService):
    """
    Idempotent transfers of the wholesaler share.

    Claim outcomes for an existing Transfer row:
        SUCCEEDED            returned as-is (duplicate delivery)
        PENDING with tr_ id  returned as-is (Stripe already has it)
        FAILED               returned as-is unless retry_failed=True
        PENDING without id   attempted again with the same attempt number
    """

    @classmethod
    def transfer_for_payment_intent(
        cls,
        payment_intent_id: str,
        order: Order,
        wholesaler,
        amount_cents: int,
        platform_fee_cents: int = 0,
        customer_id: str | None = None,
        source_transaction: str | None = None,
        retry_failed: bool = False,
    ) -> ServiceResult[Transfer]:
        """
        Transfer the wholesaler share for a PaymentIntent at most once.

        Args:
            payment_intent_id: Succeeded platform PaymentIntent
            order: Order being paid out
            wholesaler: Receiving wholesaler
            amount_cents: Wholesaler share
            platform_fee_cents: Amount the platform keeps
            customer_id: Paying customer reference for transfer metadata
            source_transaction: Charge behind the PaymentIntent
            retry_failed: Reopen a FAILED transfer (manual paths only)

        Returns:
            ServiceResult with the Transfer, or a failure with
            INVALID_AMOUNT, ACCOUNT_NOT_FOUND or TRANSFER_FAILED
        """
        log_context = {
            "payment_intent_id": payment_intent_id,
            "order_id": order.pk,
            "wholesaler_id": wholesaler.pk,
            "amount_cents": amount_cents,
        }

        if amount_cents <= 0:
            logger.error("Wholesaler share must be positive", extra=log_context)
            return ServiceResult.failure(
                "Wholesaler share must be positive",
                error_code="INVALID_AMOUNT",
            )

        account = ConnectedAccount.objects.filter(wholesaler=wholesaler).first()
        if not account:
            logger.error("Wholesaler has no connected account", extra=log_context)
            return ServiceResult.failure(
                "Wholesaler has no Stripe Connect account",
                error_code="ACCOUNT_NOT_FOUND",
            )

        with cls.atomic():
            transfer, created = Transfer.objects.select_for_update().get_or_create(
                stripe_payment_intent_id=payment_intent_id,
                defaults={
                    "order": order,
                    "wholesaler": wholesaler,
                    "destination_account": account.stripe_account_id,
                    "amount_cents": amount_cents,
                    "platform_fee_cents": platform_fee_cents,
                    "delivery_fee_cents": order.delivery_cost_cents,
                    "currency": order.currency or settings.PAYMENT_CURRENCY,
                },
            )

            if not created:
                if transfer.is_succeeded or transfer.is_in_flight:
                    logger.info(
                        "Transfer already exists for payment intent",
                        extra={
                            **log_context,
                            "transfer_id": str(transfer.id),
                            "status": transfer.status,
                        },
                    )
                    return ServiceResult.success(transfer)

                if transfer.is_failed:
                    if not retry_failed:
                        logger.info(
                            "Transfer previously failed, awaiting manual retry",
                            extra={**log_context, "transfer_id": str(transfer.id)},
                        )
                        return ServiceResult.success(transfer)
                    # Replaying a transient failure must repeat the same request
                    if not transfer.failure_retryable:
                        transfer.destination_account = account.stripe_account_id
                    transfer.retry()

            # New rows start at attempt 1; an orphaned PENDING row keeps its key
            transfer.attempt_count = max(transfer.attempt_count, 1)

            return cls._send_transfer(
                transfer,
                order=order,
                customer_id=customer_id or order.customer_reference,
                source_transaction=source_transaction,
            )

    @classmethod
    def _send_transfer(
        cls,
        transfer: Transfer,
        order: Order,
        customer_id: str,
        source_transaction: str | None,
    ) -> ServiceResult[Transfer]:
        """Call Stripe for a claimed PENDING transfer. Runs inside the claim."""
        log_context = {
            "transfer_id": str(transfer.id),
            "payment_intent_id": transfer.stripe_payment_intent_id,
            "order_id": order.pk,
            "attempt": transfer.attempt_count,
        }
        locked_order = Order.objects.select_for_update().get(pk=order.pk)

        try:
            result = cls.get_stripe_adapter().create_transfer(
                amount_cents=transfer.amount_cents,
                destination_account=transfer.destination_account,
                idempotency_key=IdempotencyKeyGenerator.generate(
                    "transfer_to_wholesaler",
                    transfer.stripe_payment_intent_id,
                    transfer.attempt_count,
                ),
                currency=transfer.currency,
                description=f"Payment for Order #{order.pk}",
                metadata={
                    "order_id": str(order.pk),
                    "transfer_type": TRANSFER_TYPE,
                    "payment_intent": transfer.stripe_payment_intent_id,
                    "wholesaler_id": str(transfer.wholesaler_id),
                    "customer_id": str(customer_id or ""),
                },
                source_transaction=source_transaction,
            )
        except StripeError as e:
            transfer.mark_failed(e.message, retryable=is_retryable_stripe_error(e))
            transfer.save()
            if locked_order.payment_status == OrderPaymentStatus.PAID:
                locked_order.mark_transfer_failed()
                locked_order.save()

            logger.error(
                "Transfer to wholesaler failed",
                extra={
                    **log_context,
                    "error_code": e.error_code,
                    "is_retryable": e.is_retryable,
                },
            )
            return ServiceResult.failure(e.message, error_code="TRANSFER_FAILED")

        transfer.mark_succeeded(result.id)
        transfer.metadata = {**(transfer.metadata or {}), "stripe_status": "created"}
        transfer.save()

        if locked_order.payment_status in (
            OrderPaymentStatus.PAID,
            OrderPaymentStatus.TRANSFER_FAILED,
        ):
            locked_order.mark_transferred()
            locked_order.save()

        ensure_result = cls.ensure_payment_calculation(
            transfer.stripe_payment_intent_id,
            locked_order,
            wholesaler_share_cents=transfer.amount_cents,
            platform_total_cents=transfer.platform_fee_cents,
        )
        if not ensure_result.success:
            logger.warning(
                "Could not record payment calculation",
                extra={**log_context, "error": ensure_result.error},
            )

        logger.info(
            "Transfer to wholesaler succeeded",
            extra={
                **log_context,
                "stripe_transfer_id": result.id,
                "amount_cents": transfer.amount_cents,
            },
        )
        return ServiceResult.success(transfer)

    @classmethod
    def ensure_payment_calculation(
        cls,
        payment_intent_id: str,
        order: Order,
        wholesaler_share_cents: int | None = None,
        platform_total_cents: int | None = None,
    ) -> ServiceResult[PaymentCalculation]:
        """
        Make sure an audit row exists for a PaymentIntent.

        Intents created by the issuer already have one. For others the
        split is rebuilt from the order, keeping the share and platform
        total that were actually used.
        """
        existing = PaymentCalculation.objects.filter(
            stripe_payment_intent_id=payment_intent_id
        ).first()
        if existing:
            return ServiceResult.success(existing)

        try:
            split = calculate_payment_split(
                order.subtotal_cents, order.delivery_cost_cents
            )
        except PaymentValidationError as e:
            return ServiceResult.from_exception(e)

        if wholesaler_share_cents is not None and platform_total_cents is not None:
            split = dataclasses.replace(
                split,
                wholesaler_share_cents=wholesaler_share_cents,
                platform_total_cents=platform_total_cents,
                total_amount_cents=wholesaler_share_cents + platform_total_cents,
            )

        calculation, _ = record_payment_calculation(
            split,
            payment_intent_id,
            order,
            order.currency or settings.PAYMENT_CURRENCY,
        )
        return ServiceResult.success(calculation)

    @classmethod
    def process_complete_payment(
        cls,
        payment_intent_id: str,
        order_id: int | str,
    ) -> ServiceResult[Transfer]:
        """
        Transfer the share for a paid order on demand.

        Verifies with Stripe that the PaymentIntent succeeded. A transfer
        that was already made is returned without checking the account;
        otherwise the wholesaler must be able to receive transfers, and the
        same idempotent transfer runs with retry_failed=True.

        Returns:
            ServiceResult with the Transfer, or a failure with
            ORDER_NOT_FOUND, ORDER_MISMATCH, PAYMENT_NOT_COMPLETED,
            ACCOUNT_NOT_FOUND, ACCOUNT_NOT_READY, INVALID_AMOUNT,
            TRANSFER_FAILED, STRIPE_ERROR or STRIPE_UNAVAILABLE
        """
        order = Order.objects.select_related("wholesaler").filter(pk=order_id).first()
        if not order:
            return ServiceResult.failure(
                f"Order {order_id} not found",
                error_code="ORDER_NOT_FOUND",
            )

        try:
            intent = cls.get_stripe_adapter().retrieve_payment_intent(payment_intent_id)
        except StripeError as e:
            return cls.stripe_failure(e, "Failed to retrieve payment intent")

        if intent.status != "succeeded":
            return ServiceResult.failure(
                f"Payment not completed (status: {intent.status})",
                error_code="PAYMENT_NOT_COMPLETED",
            )

        metadata_order_id = intent.metadata.get("order_id") or intent.metadata.get(
            "orderId"
        )
        if metadata_order_id and str(metadata_order_id) != str(order.pk):
            return ServiceResult.failure(
                "Payment intent belongs to a different order",
                error_code="ORDER_MISMATCH",
            )

        existing = Transfer.objects.filter(
            stripe_payment_intent_id=payment_intent_id
        ).first()
        if existing and (existing.is_succeeded or existing.is_in_flight):
            logger.info(
                "Transfer already made for payment intent",
                extra={
                    "payment_intent_id": payment_intent_id,
                    "transfer_id": str(existing.id),
                },
            )
            return ServiceResult.success(existing)

        status_result = OnboardingService.check_account_status(order.wholesaler)
        if not status_result.success:
            return status_result
        if not status_result.data.can_receive_transfers:
            return ServiceResult.failure(
                "Wholesaler account cannot receive transfers yet",
                error_code="ACCOUNT_NOT_READY",
                errors={"requirements": status_result.data.requirements},
            )

        try:
            share_cents, platform_cents = split_amounts_from_metadata(
                intent.metadata, order
            )
        except PaymentValidationError as e:
            return ServiceResult.from_exception(e, "INVALID_AMOUNT")

        with cls.atomic():
            locked_order = Order.objects.select_for_update().get(pk=order.pk)
            if locked_order.payment_status == OrderPaymentStatus.UNPAID:
                locked_order.mark_paid()
                locked_order.save()

        return cls.transfer_for_payment_intent(
            payment_intent_id=payment_intent_id,
            order=order,
            wholesaler=order.wholesaler,
            amount_cents=share_cents,
            platform_fee_cents=platform_cents,
            customer_id=intent.metadata.get("customer_id")
            or intent.metadata.get("customerId"),
            source_transaction=intent.latest_charge,
            retry_failed=True,
        )
