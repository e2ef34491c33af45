"""
Celery tasks for Stripe webhook processing.

process_webhook_event is queued by the webhook view. The remaining tasks
run from the beat schedule in config/celery.py and keep the WebhookEvent
table moving: failed events are re-queued, events abandoned by a crashed
worker are reset, and old processed events are deleted.

Usage:
    from payments.tasks import process_webhook_event

    process_webhook_event.delay(str(webhook_event.id))
"""

from __future__ import annotations

import logging
from datetime import timedelta

from celery import shared_task
from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from payments.models import WebhookEvent
from payments.state_machines import WebhookEventStatus

logger = logging.getLogger(__name__)


STUCK_PROCESSING_THRESHOLD_MINUTES = 30
RETRY_BATCH_SIZE = 100
OLD_WEBHOOK_RETENTION_DAYS = 90


@shared_task(
    bind=True,
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_backoff_max=300,
    retry_kwargs={"max_retries": 5},
    acks_late=True,
)
def process_webhook_event(self, webhook_event_id: str) -> dict:
    """
    Dispatch a stored webhook event to its handler.

    The handler runs in a transaction. A failed result marks the event
    failed for retry_failed_webhooks; an exception also marks it failed
    and is re-raised so Celery retries with backoff.
    """
    from payments.webhooks.handlers import dispatch_webhook

    webhook_event = WebhookEvent.objects.filter(pk=webhook_event_id).first()
    if not webhook_event:
        logger.error(
            "WebhookEvent not found",
            extra={"webhook_event_id": str(webhook_event_id)},
        )
        return {"status": "not_found", "webhook_event_id": str(webhook_event_id)}

    log_context = {
        "webhook_event_id": str(webhook_event.id),
        "stripe_event_id": webhook_event.stripe_event_id,
        "event_type": webhook_event.event_type,
        "object_id": webhook_event.get_object_id(),
        "object_type": webhook_event.get_object_type(),
    }

    if webhook_event.is_processed:
        logger.info("WebhookEvent already processed, skipping", extra=log_context)
        return {"status": "already_processed", **log_context}

    webhook_event.mark_processing()
    webhook_event.save()

    try:
        with transaction.atomic():
            result = dispatch_webhook(webhook_event)
    except Exception as e:
        webhook_event.mark_failed(f"{type(e).__name__}: {e}")
        webhook_event.save()
        logger.exception(
            "Webhook processing raised",
            extra={**log_context, "retry_count": webhook_event.retry_count},
        )
        raise

    if not result.success:
        error = result.error or "Handler returned failure"
        webhook_event.mark_failed(error)
        webhook_event.save()
        logger.warning(
            f"Webhook handler failed: {error}",
            extra={**log_context, "error_code": result.error_code},
        )
        return {"status": "handler_failed", "error": error, **log_context}

    webhook_event.mark_processed()
    webhook_event.save()
    logger.info("Webhook processed", extra=log_context)
    return {"status": "processed", **log_context}


@shared_task
def retry_failed_webhooks() -> dict:
    """
    Re-queue failed events that still have retries left.

    Pending events older than the stuck threshold were never queued and
    are picked up too.
    """
    never_queued_before = timezone.now() - timedelta(
        minutes=STUCK_PROCESSING_THRESHOLD_MINUTES
    )
    max_retries = WebhookEvent.max_retries()
    retryable = WebhookEvent.objects.filter(
        Q(status=WebhookEventStatus.FAILED, retry_count__lt=max_retries)
        | Q(status=WebhookEventStatus.PENDING, created_at__lt=never_queued_before)
    ).order_by("created_at")[:RETRY_BATCH_SIZE]

    queued_count = 0
    for webhook_event in retryable:
        try:
            process_webhook_event.delay(str(webhook_event.id))
        except Exception as e:
            logger.error(
                f"Failed to queue webhook for retry: {e}",
                extra={"webhook_event_id": str(webhook_event.id)},
            )
            continue
        queued_count += 1

    exhausted = WebhookEvent.objects.filter(
        status=WebhookEventStatus.FAILED,
        retry_count__gte=max_retries,
    ).count()
    if exhausted:
        logger.warning(
            "Webhook events out of retries",
            extra={"exhausted_count": exhausted},
        )

    logger.info(
        f"Queued {queued_count} failed webhooks for retry",
        extra={"queued_count": queued_count},
    )
    return {"queued_count": queued_count, "exhausted_count": exhausted}


@shared_task
def cleanup_stuck_webhooks() -> dict:
    """Mark events stuck in processing as failed so they are retried."""
    threshold = timezone.now() - timedelta(minutes=STUCK_PROCESSING_THRESHOLD_MINUTES)

    reset_count = WebhookEvent.objects.filter(
        status=WebhookEventStatus.PROCESSING,
        updated_at__lt=threshold,
    ).update(
        status=WebhookEventStatus.FAILED,
        error_message="Processing timed out",
        updated_at=timezone.now(),
    )

    if reset_count:
        logger.warning(
            f"Reset {reset_count} stuck webhooks",
            extra={"reset_count": reset_count},
        )
    return {"reset_count": reset_count}


@shared_task
def cleanup_old_webhooks(days: int = OLD_WEBHOOK_RETENTION_DAYS) -> dict:
    """
    Delete processed events older than ``days``.

    Failed events are kept for inspection.
    """
    cutoff = timezone.now() - timedelta(days=days)
    deleted_count, _ = WebhookEvent.objects.filter(
        status=WebhookEventStatus.PROCESSED,
        processed_at__lt=cutoff,
    ).delete()

    if deleted_count:
        logger.info(
            f"Deleted {deleted_count} old webhook events",
            extra={"deleted_count": deleted_count, "cutoff": cutoff.isoformat()},
        )
    return {"deleted_count": deleted_count}
