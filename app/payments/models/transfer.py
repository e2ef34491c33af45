"""
Transfer model for wholesaler shares sent from the platform balance.

A Transfer is created when a platform-first PaymentIntent succeeds. The
unique stripe_payment_intent_id column is what makes the webhook handler
idempotent: two deliveries of the same event can never produce two rows.

Usage:
    from payments.models import Transfer

    transfer, created = Transfer.objects.get_or_create(
        stripe_payment_intent_id="pi_123",
        defaults={...},
    )

    transfer.mark_succeeded("tr_456")
    transfer.save()
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.db.models import F
from django.utils import timezone

from django_fsm import FSMField, transition

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin

from payments.state_machines import TransferStatus


class Transfer(UUIDPrimaryKeyMixin, BaseModel):
    """
    Funds moved from the platform balance to a wholesaler's account.

    State Flow:
        PENDING -> SUCCEEDED
        PENDING -> FAILED -> PENDING (manual retry)
        SUCCEEDED -> FAILED (transfer reversed)

    Fields:
        stripe_payment_intent_id: Source PaymentIntent, unique per transfer
        order: Order being paid out
        wholesaler: Wholesaler receiving the funds
        stripe_transfer_id: Stripe Transfer ID (tr_xxx) once created
        destination_account: Connected account ID (acct_xxx)
        amount_cents: Wholesaler share
        platform_fee_cents: Amount retained by the platform
        delivery_fee_cents: Delivery portion of the platform total
        currency: ISO 4217 currency code
        status: FSM-managed transfer status
        failure_reason: Error text from the last failed attempt
        failure_retryable: Last failure was a timeout or outage, not a rejection
        attempt_count: Attempt number in the Stripe idempotency key
        transferred_at: When Stripe accepted the transfer
        metadata: Stripe status and bookkeeping
    """

    # ==========================================================================
    # Relationships
    # ==========================================================================

    stripe_payment_intent_id = models.CharField(
        max_length=255,
        unique=True,
        help_text="Stripe PaymentIntent ID (pi_xxx) - one transfer per intent",
    )
    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.PROTECT,
        related_name="transfers",
    )
    wholesaler = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="transfers",
    )

    # ==========================================================================
    # Stripe Integration
    # ==========================================================================

    stripe_transfer_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        unique=True,
        help_text="Stripe Transfer ID (tr_xxx)",
    )
    destination_account = models.CharField(
        max_length=255,
        help_text="Connected account the funds were sent to (acct_xxx)",
    )

    # ==========================================================================
    # Amounts
    # ==========================================================================

    amount_cents = models.PositiveBigIntegerField(
        help_text="Wholesaler share in smallest currency unit",
    )
    platform_fee_cents = models.PositiveBigIntegerField(default=0)
    delivery_fee_cents = models.PositiveBigIntegerField(default=0)
    currency = models.CharField(max_length=3, default="gbp")

    # ==========================================================================
    # State
    # ==========================================================================

    status = FSMField(
        default=TransferStatus.PENDING,
        choices=TransferStatus.choices,
        db_index=True,
        protected=True,
        help_text="Current transfer status (managed by FSM)",
    )
    failure_reason = models.TextField(null=True, blank=True)
    failure_retryable = models.BooleanField(
        default=False,
        help_text="Last failure was transient; Stripe may already hold the transfer",
    )
    attempt_count = models.PositiveSmallIntegerField(default=0)
    transferred_at = models.DateTimeField(null=True, blank=True)

    version = models.PositiveIntegerField(
        default=1,
        help_text="Version for optimistic locking - incremented on each save",
    )
    metadata = models.JSONField(default=dict, blank=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Transfer"
        verbose_name_plural = "Transfers"
        indexes = [
            models.Index(
                fields=["wholesaler", "status"],
                name="payments_tr_wholesa_5c1f0d_idx",
            ),
            models.Index(
                fields=["order", "status"],
                name="payments_tr_order_i_8a2e47_idx",
            ),
        ]
        constraints = [
            models.CheckConstraint(
                check=models.Q(amount_cents__gt=0),
                name="transfer_amount_positive",
            ),
        ]

    def __str__(self) -> str:
        amount_display = f"{self.amount_cents / 100:.2f} {self.currency.upper()}"
        return f"Transfer({self.stripe_payment_intent_id}, {self.status}, {amount_display})"

    def save(self, *args, **kwargs):
        """Save with version auto-increment for optimistic locking."""
        is_update = not self._state.adding and not kwargs.get("force_insert", False)
        if is_update:
            self.version = F("version") + 1
        super().save(*args, **kwargs)
        if is_update:
            self.refresh_from_db(fields=["version"])

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=status,
        source=TransferStatus.PENDING,
        target=TransferStatus.SUCCEEDED,
    )
    def mark_succeeded(self, stripe_transfer_id: str | None = None):
        """
        Stripe accepted the transfer.

        Args:
            stripe_transfer_id: Transfer ID, if not already recorded
        """
        if stripe_transfer_id:
            self.stripe_transfer_id = stripe_transfer_id
        self.transferred_at = self.transferred_at or timezone.now()
        self.failure_reason = None

    @transition(
        field=status,
        source=[TransferStatus.PENDING, TransferStatus.SUCCEEDED],
        target=TransferStatus.FAILED,
    )
    def mark_failed(self, reason: str | None = None, retryable: bool = False):
        """
        Stripe rejected the transfer, or reversed it afterwards.

        Args:
            reason: Error text to record
            retryable: The call timed out or Stripe was unavailable, so the
                transfer may exist on Stripe even though no response arrived
        """
        if reason:
            self.failure_reason = reason
        self.failure_retryable = retryable

    @transition(
        field=status,
        source=TransferStatus.FAILED,
        target=TransferStatus.PENDING,
    )
    def retry(self):
        """
        Reopen a failed transfer for another attempt.

        After a transient failure the attempt number is kept, so the retry
        replays the original request under the same idempotency key and
        Stripe returns the transfer it may already have made. After a
        rejection or reversal the attempt number moves on and Stripe sees
        a new request.
        """
        if not self.failure_retryable:
            self.attempt_count += 1
        self.failure_reason = None
        self.failure_retryable = False
        self.stripe_transfer_id = None

    # ==========================================================================
    # Properties
    # ==========================================================================

    @property
    def is_succeeded(self) -> bool:
        return self.status == TransferStatus.SUCCEEDED

    @property
    def is_failed(self) -> bool:
        return self.status == TransferStatus.FAILED

    @property
    def is_in_flight(self) -> bool:
        """Pending with a Stripe ID: Stripe has it, confirmation not yet applied."""
        return self.status == TransferStatus.PENDING and bool(self.stripe_transfer_id)
