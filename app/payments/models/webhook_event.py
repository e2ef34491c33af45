"""
WebhookEvent model for idempotent Stripe webhook ingestion.

The HTTP endpoint only verifies the signature and stores the event; a
Celery task dispatches it later. The unique stripe_event_id collapses
duplicate deliveries from Stripe.

Usage:
    event, created = WebhookEvent.objects.get_or_create(
        stripe_event_id=stripe_event["id"],
        defaults={"event_type": stripe_event["type"], "payload": stripe_event},
    )
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.utils import timezone

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin

from payments.state_machines import WebhookEventStatus

DEFAULT_MAX_WEBHOOK_RETRIES = 5


class WebhookEvent(UUIDPrimaryKeyMixin, BaseModel):
    """
    A Stripe event received on the webhook endpoint.

    Processing Flow:
        1. Signature verified, row inserted or fetched by stripe_event_id
        2. Duplicate already PROCESSED -> acknowledged without work
        3. Task marks PROCESSING and routes to the registered handler
        4. Handler result marks PROCESSED or FAILED
        5. FAILED rows are picked up by retry_failed_webhooks

    Fields:
        stripe_event_id: Unique Stripe Event ID (evt_xxx)
        event_type: e.g. "payment_intent.succeeded"
        payload: Full event JSON
        status: Processing status
        processed_at: When processing finished
        error_message: Error from the last failed attempt
        retry_count: Number of processing attempts
    """

    stripe_event_id = models.CharField(
        max_length=255,
        unique=True,
        db_index=True,
        help_text="Stripe Event ID (evt_xxx) - unique constraint for idempotency",
    )
    event_type = models.CharField(max_length=100, db_index=True)
    payload = models.JSONField(help_text="Full webhook payload from Stripe")

    status = models.CharField(
        max_length=20,
        choices=WebhookEventStatus.choices,
        default=WebhookEventStatus.PENDING,
        db_index=True,
    )
    processed_at = models.DateTimeField(null=True, blank=True)
    error_message = models.TextField(null=True, blank=True)
    retry_count = models.PositiveSmallIntegerField(default=0)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Webhook Event"
        verbose_name_plural = "Webhook Events"
        indexes = [
            models.Index(
                fields=["status", "created_at"],
                name="payments_we_status_3b9d61_idx",
            ),
            models.Index(
                fields=["status", "retry_count"],
                name="payments_we_status_f07c2a_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"WebhookEvent({self.stripe_event_id}, {self.event_type})"

    @property
    def is_processed(self) -> bool:
        return self.status == WebhookEventStatus.PROCESSED

    @classmethod
    def max_retries(cls) -> int:
        """Processing attempts allowed before a failed event is left for review."""
        return getattr(settings, "WEBHOOK_MAX_RETRIES", DEFAULT_MAX_WEBHOOK_RETRIES)

    # ==========================================================================
    # Status Helpers (caller saves)
    # ==========================================================================

    def mark_processing(self) -> None:
        self.status = WebhookEventStatus.PROCESSING
        self.retry_count += 1

    def mark_processed(self) -> None:
        self.status = WebhookEventStatus.PROCESSED
        self.processed_at = timezone.now()
        self.error_message = None

    def mark_failed(self, error_message: str) -> None:
        self.status = WebhookEventStatus.FAILED
        self.error_message = error_message

    # ==========================================================================
    # Payload Accessors
    # ==========================================================================

    @property
    def data_object(self) -> dict:
        """The event's data.object, or an empty dict for malformed payloads."""
        try:
            obj = self.payload.get("data", {}).get("object", {})
        except (AttributeError, TypeError):
            return {}
        return obj if isinstance(obj, dict) else {}

    def get_object_id(self) -> str | None:
        return self.data_object.get("id")

    def get_object_type(self) -> str | None:
        return self.data_object.get("object")
