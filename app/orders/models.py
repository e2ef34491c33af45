"""
Order model for wholesale purchases.

Only the parts of an order the payment flow reads and writes are modelled
here: the parties, the amounts, and the payment lifecycle. Catalog lines
and fulfilment details are out of scope.

Usage:
    from orders.models import Order, OrderPaymentStatus

    order = Order.objects.create(
        wholesaler=wholesaler,
        retailer=retailer,
        customer_email="shop@example.com",
        subtotal_cents=10000,
        delivery_cost_cents=500,
    )

    # State transitions using django-fsm
    order.mark_paid()  # unpaid -> paid
    order.save()
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.db.models import F
from django.utils import timezone
from django_fsm import FSMField, transition

from core.models import BaseModel


class OrderStatus(models.TextChoices):
    """Fulfilment status shown to wholesalers and customers."""

    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    SHIPPED = "shipped", "Shipped"
    COMPLETED = "completed", "Completed"
    CANCELLED = "cancelled", "Cancelled"


class OrderPaymentStatus(models.TextChoices):
    """
    Money movement for a platform-first order.

    State Flow:
        UNPAID -> PAID -> TRANSFERRED

    Failure Flow:
        PAID -> TRANSFER_FAILED -> TRANSFERRED (manual retry only)
    """

    UNPAID = "unpaid", "Unpaid"
    PAID = "paid", "Paid"
    TRANSFERRED = "transferred", "Transferred"
    TRANSFER_FAILED = "transfer_failed", "Transfer Failed"


class Order(BaseModel):
    """
    A retailer's order from a single wholesaler.

    Fields:
        wholesaler: Seller who receives the transfer
        retailer: Buying account (optional for guest checkouts)
        customer_name/email/phone: Contact details captured at checkout
        status: Fulfilment status
        subtotal_cents: Product subtotal before any fees
        delivery_cost_cents: Delivery charged to the customer
        platform_fee_cents: Everything the platform keeps (set at checkout)
        total_cents: Customer-facing total (set at checkout)
        stripe_payment_intent_id: Platform PaymentIntent for this order
        payment_status: FSM-managed payment lifecycle
        version: Optimistic locking version

    Note:
        The version field is auto-incremented on save so concurrent
        webhook workers can detect stale writes.
    """

    # ==========================================================================
    # Parties
    # ==========================================================================

    wholesaler = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="orders_received",
        help_text="Wholesaler fulfilling the order",
    )
    retailer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="orders_placed",
        help_text="Retailer account that placed the order, if signed in",
    )
    customer_name = models.CharField(max_length=255, blank=True)
    customer_email = models.EmailField(blank=True)
    customer_phone = models.CharField(max_length=32, blank=True)

    status = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING,
        db_index=True,
    )

    # ==========================================================================
    # Amounts
    # ==========================================================================

    subtotal_cents = models.PositiveBigIntegerField(
        help_text="Product subtotal in smallest currency unit",
    )
    delivery_cost_cents = models.PositiveBigIntegerField(
        default=0,
        help_text="Delivery fee charged to the customer",
    )
    platform_fee_cents = models.PositiveBigIntegerField(
        default=0,
        help_text="Total retained by the platform, set when the payment intent is issued",
    )
    total_cents = models.PositiveBigIntegerField(
        default=0,
        help_text="Amount charged to the customer, set when the payment intent is issued",
    )
    currency = models.CharField(
        max_length=3,
        default="gbp",
        help_text="ISO 4217 currency code (lowercase)",
    )

    # ==========================================================================
    # Payment Lifecycle
    # ==========================================================================

    stripe_payment_intent_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        unique=True,
        help_text="Stripe PaymentIntent ID (pi_xxx)",
    )
    payment_status = FSMField(
        default=OrderPaymentStatus.UNPAID,
        choices=OrderPaymentStatus.choices,
        db_index=True,
        protected=True,
        help_text="Payment lifecycle state (managed by FSM)",
    )
    paid_at = models.DateTimeField(null=True, blank=True)
    transferred_at = models.DateTimeField(null=True, blank=True)

    version = models.PositiveIntegerField(
        default=1,
        help_text="Version for optimistic locking - incremented on each save",
    )

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["wholesaler", "payment_status"],
                name="order_wholesaler_status_idx",
            ),
        ]
        constraints = [
            models.CheckConstraint(
                check=models.Q(subtotal_cents__gt=0),
                name="order_subtotal_positive",
            ),
        ]

    def __str__(self) -> str:
        return f"Order #{self.pk} ({self.payment_status})"

    def save(self, *args, **kwargs):
        """Save with version auto-increment for optimistic locking."""
        is_update = not self._state.adding and not kwargs.get("force_insert", False)
        if is_update:
            self.version = F("version") + 1
        super().save(*args, **kwargs)
        if is_update:
            self.refresh_from_db(fields=["version"])

    @property
    def customer_reference(self) -> str:
        """Identifier of the paying customer for Stripe metadata."""
        if self.retailer_id:
            return str(self.retailer_id)
        return self.customer_email or ""

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=payment_status,
        source=OrderPaymentStatus.UNPAID,
        target=OrderPaymentStatus.PAID,
    )
    def mark_paid(self):
        """Customer payment succeeded on the platform account."""
        self.paid_at = timezone.now()

    @transition(
        field=payment_status,
        source=[OrderPaymentStatus.PAID, OrderPaymentStatus.TRANSFER_FAILED],
        target=OrderPaymentStatus.TRANSFERRED,
    )
    def mark_transferred(self):
        """Wholesaler share reached their connected account."""
        self.transferred_at = timezone.now()

    @transition(
        field=payment_status,
        source=OrderPaymentStatus.PAID,
        target=OrderPaymentStatus.TRANSFER_FAILED,
    )
    def mark_transfer_failed(self):
        """
        Transfer to the wholesaler failed.

        Left for manual reconciliation; nothing retries it automatically.
        """
        pass
