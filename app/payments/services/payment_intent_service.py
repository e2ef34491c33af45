"""
Payment intent issuing for platform-first checkout.

The platform is the merchant of record: the customer is charged the full
total on the platform account, and the wholesaler's share is transferred
after the payment succeeds (see TransferService).

Usage:
    from payments.fees import calculate_payment_split
    from payments.services import PaymentIntentService

    split = calculate_payment_split(order.subtotal_cents, order.delivery_cost_cents)
    result = PaymentIntentService.issue_payment_intent(
        split,
        order_id=order.id,
        wholesaler_id=order.wholesaler_id,
        customer_id=order.customer_reference,
    )
    if result.success:
        client_secret = result.data.client_secret
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from django.conf import settings
from django.db import IntegrityError, transaction

from core.services import ServiceResult

from orders.models import Order, OrderPaymentStatus
from payments.adapters import CreatePaymentIntentParams, IdempotencyKeyGenerator
from payments.exceptions import StripeError
from payments.fees import PaymentSplit
from payments.models import PaymentCalculation
from payments.services.base import PaymentService


@dataclass
class IssuedPaymentIntent:
    """What the checkout front-end needs to confirm the payment."""

    client_secret: str
    payment_intent_id: str
    amount_cents: int
    currency: str


def record_payment_calculation(
    split: PaymentSplit,
    payment_intent_id: str,
    order: Order,
    currency: str,
) -> tuple[PaymentCalculation, bool]:
    """
    Write the audit row for a PaymentIntent unless one exists already.

    Returns:
        (row, created)
    """
    existing = PaymentCalculation.objects.filter(
        stripe_payment_intent_id=payment_intent_id
    ).first()
    if existing:
        return existing, False

    try:
        with transaction.atomic():
            calculation = PaymentCalculation.from_split(
                split,
                payment_intent_id=payment_intent_id,
                order=order,
                currency=currency,
            )
            calculation.save()
    except IntegrityError:
        # Written concurrently by the webhook
        return (
            PaymentCalculation.objects.get(stripe_payment_intent_id=payment_intent_id),
            False,
        )
    return calculation, True


class PaymentIntentService(PaymentService):
    """
    Issues the platform PaymentIntent for an order.

    The intent carries the split metadata the webhook handler needs to pay
    the wholesaler: payment_type, wholesaler_share, platform_total and the
    order, wholesaler and customer ids.
    """

    @classmethod
    def issue_payment_intent(
        cls,
        split: PaymentSplit,
        order_id: int | str,
        wholesaler_id: int | str,
        customer_id: str | None = None,
        extra_metadata: dict[str, Any] | None = None,
        attempt: int = 1,
    ) -> ServiceResult[IssuedPaymentIntent]:
        """
        Create the PaymentIntent for the full customer total.

        Args:
            split: Fee split for the order
            order_id: Order being paid
            wholesaler_id: Wholesaler the order belongs to
            customer_id: Paying customer reference
            extra_metadata: Caller metadata; the split keys always win
            attempt: Idempotency attempt number

        Returns:
            ServiceResult with IssuedPaymentIntent, or a failure with
            ORDER_NOT_FOUND, ORDER_MISMATCH, ORDER_ALREADY_PAID,
            STRIPE_ERROR or STRIPE_UNAVAILABLE
        """
        logger = cls.get_logger()

        order = Order.objects.filter(pk=order_id).first()
        if not order:
            return ServiceResult.failure(
                f"Order {order_id} not found",
                error_code="ORDER_NOT_FOUND",
            )
        if str(order.wholesaler_id) != str(wholesaler_id):
            logger.warning(
                "Order does not belong to wholesaler",
                extra={"order_id": order.pk, "wholesaler_id": str(wholesaler_id)},
            )
            return ServiceResult.failure(
                "Order does not belong to this wholesaler",
                error_code="ORDER_MISMATCH",
            )
        if order.payment_status != OrderPaymentStatus.UNPAID:
            return ServiceResult.failure(
                "Order has already been paid",
                error_code="ORDER_ALREADY_PAID",
            )

        currency = settings.PAYMENT_CURRENCY
        metadata = {str(k): str(v) for k, v in (extra_metadata or {}).items()}
        metadata.update(
            {
                "order_id": str(order.pk),
                "wholesaler_id": str(order.wholesaler_id),
                "customer_id": str(customer_id or order.customer_reference),
            }
        )
        metadata.update(split.metadata())

        params = CreatePaymentIntentParams(
            amount_cents=split.total_amount_cents,
            currency=currency,
            idempotency_key=IdempotencyKeyGenerator.generate(
                "create_platform_intent", order.pk, attempt
            ),
            metadata=metadata,
            description=f"Order {order.pk} - Platform Payment",
        )

        try:
            intent = cls.get_stripe_adapter().create_payment_intent(params)
        except StripeError as e:
            return cls.stripe_failure(e, "Failed to create platform payment intent")

        with cls.atomic():
            record_payment_calculation(split, intent.id, order, currency)

            order = Order.objects.select_for_update().get(pk=order.pk)
            order.stripe_payment_intent_id = intent.id
            order.total_cents = split.total_amount_cents
            order.platform_fee_cents = split.platform_total_cents
            order.currency = currency
            order.save(
                update_fields=[
                    "stripe_payment_intent_id",
                    "total_cents",
                    "platform_fee_cents",
                    "currency",
                    "version",
                    "updated_at",
                ]
            )

        logger.info(
            "Platform payment intent issued",
            extra={
                "order_id": order.pk,
                "payment_intent_id": intent.id,
                "amount_cents": split.total_amount_cents,
                "wholesaler_share_cents": split.wholesaler_share_cents,
                "platform_total_cents": split.platform_total_cents,
            },
        )

        return ServiceResult.success(
            IssuedPaymentIntent(
                client_secret=intent.client_secret,
                payment_intent_id=intent.id,
                amount_cents=intent.amount_cents,
                currency=intent.currency,
            )
        )
