"""
PaymentCalculation audit row.

Records the split a PaymentIntent was issued with. One row per intent,
written once and never modified, so finance can reconcile what the
customer was charged against what the wholesaler was sent.
"""

from __future__ import annotations

from django.db import models

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin

from payments.exceptions import PaymentValidationError


class PaymentCalculation(UUIDPrimaryKeyMixin, BaseModel):
    """
    Immutable fee breakdown for one platform PaymentIntent.

    Raises PaymentValidationError on any attempt to update or delete an
    existing row.
    """

    stripe_payment_intent_id = models.CharField(
        max_length=255,
        unique=True,
        help_text="Stripe PaymentIntent ID (pi_xxx)",
    )
    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.PROTECT,
        related_name="payment_calculations",
    )

    # ==========================================================================
    # Split
    # ==========================================================================

    total_amount_cents = models.PositiveBigIntegerField()
    product_subtotal_cents = models.PositiveBigIntegerField()
    delivery_fee_cents = models.PositiveBigIntegerField(default=0)
    transaction_fee_cents = models.PositiveBigIntegerField(default=0)
    customer_platform_fee_cents = models.PositiveBigIntegerField(default=0)
    wholesaler_platform_fee_cents = models.PositiveBigIntegerField(default=0)
    platform_total_cents = models.PositiveBigIntegerField()
    wholesaler_share_cents = models.PositiveBigIntegerField()

    customer_platform_fee_rate = models.DecimalField(max_digits=5, decimal_places=4)
    wholesaler_platform_fee_rate = models.DecimalField(max_digits=5, decimal_places=4)
    currency = models.CharField(max_length=3, default="gbp")

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Payment Calculation"
        verbose_name_plural = "Payment Calculations"

    def __str__(self) -> str:
        return f"PaymentCalculation({self.stripe_payment_intent_id})"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise PaymentValidationError(
                "Payment calculations are immutable",
                error_code="CALCULATION_IMMUTABLE",
                details={"stripe_payment_intent_id": self.stripe_payment_intent_id},
            )
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise PaymentValidationError(
            "Payment calculations cannot be deleted",
            error_code="CALCULATION_IMMUTABLE",
            details={"stripe_payment_intent_id": self.stripe_payment_intent_id},
        )

    @classmethod
    def from_split(cls, split, *, payment_intent_id: str, order, currency: str):
        """Build an unsaved row from a PaymentSplit."""
        return cls(
            stripe_payment_intent_id=payment_intent_id,
            order=order,
            total_amount_cents=split.total_amount_cents,
            product_subtotal_cents=split.product_subtotal_cents,
            delivery_fee_cents=split.delivery_fee_cents,
            transaction_fee_cents=split.transaction_fee_cents,
            customer_platform_fee_cents=split.customer_platform_fee_cents,
            wholesaler_platform_fee_cents=split.wholesaler_platform_fee_cents,
            platform_total_cents=split.platform_total_cents,
            wholesaler_share_cents=split.wholesaler_share_cents,
            customer_platform_fee_rate=split.customer_platform_fee_rate,
            wholesaler_platform_fee_rate=split.wholesaler_platform_fee_rate,
            currency=currency,
        )
