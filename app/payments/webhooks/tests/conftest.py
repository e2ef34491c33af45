"""
Pytest fixtures for webhook tests.

Provides stored WebhookEvent rows in each status and Stripe event
envelopes for the platform-first flow. Orders, accounts and the mocked
Stripe adapter come from payments/conftest.py.
"""

import pytest
from django.utils import timezone

from payments.state_machines import WebhookEventStatus
from payments.tests.factories import WebhookEventFactory
from payments.tests.stripe_fakes import payment_intent_object, stripe_event


# =============================================================================
# Webhook Event Fixtures
# =============================================================================


@pytest.fixture
def pending_webhook_event(db):
    """Create a WebhookEvent in PENDING status."""
    return WebhookEventFactory(
        stripe_event_id="evt_test_pending_123",
        data_object={"id": "pi_test_pending", "object": "payment_intent"},
    )


@pytest.fixture
def processing_webhook_event(db):
    """Create a WebhookEvent in PROCESSING status."""
    return WebhookEventFactory(
        stripe_event_id="evt_test_processing_456",
        status=WebhookEventStatus.PROCESSING,
        retry_count=1,
    )


@pytest.fixture
def processed_webhook_event(db):
    """Create a WebhookEvent in PROCESSED status."""
    return WebhookEventFactory(
        stripe_event_id="evt_test_processed_789",
        status=WebhookEventStatus.PROCESSED,
        retry_count=1,
        processed_at=timezone.now(),
    )


@pytest.fixture
def failed_webhook_event(db):
    """Create a WebhookEvent in FAILED status."""
    return WebhookEventFactory(
        stripe_event_id="evt_test_failed_101",
        status=WebhookEventStatus.FAILED,
        error_message="Previous processing failed",
        retry_count=1,
    )


# =============================================================================
# Payload Fixtures
# =============================================================================


@pytest.fixture
def payment_succeeded_event(paid_order):
    """payment_intent.succeeded for the paid order's intent."""
    return stripe_event(
        "payment_intent.succeeded",
        payment_intent_object(paid_order, pi_id="pi_test_123"),
        event_id="evt_pi_succeeded",
    )
