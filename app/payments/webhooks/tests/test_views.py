"""
Tests for the Stripe webhook endpoint.

Tests cover:
- Stripe signature verification
- Webhook event storage and duplicate deliveries
- Task queuing
- HTTP method restrictions
"""

import json
from unittest.mock import patch

import pytest
from django.test import RequestFactory
from django.urls import reverse

from payments.exceptions import StripeInvalidRequestError
from payments.models import WebhookEvent
from payments.state_machines import WebhookEventStatus
from payments.tests.stripe_fakes import stripe_event
from payments.webhooks.views import stripe_webhook

VERIFY = "payments.webhooks.views.StripeAdapter.verify_webhook_signature"
DELAY = "payments.tasks.process_webhook_event.delay"


# =============================================================================
# Setup
# =============================================================================


@pytest.fixture
def rf():
    """Request factory for creating test requests."""
    return RequestFactory()


def make_webhook_request(rf, payload: dict, signature: str = "t=1,v1=test_sig"):
    """Create a POST request to the webhook endpoint."""
    return rf.post(
        "/api/stripe-v2/webhook/",
        data=json.dumps(payload),
        content_type="application/json",
        HTTP_STRIPE_SIGNATURE=signature,
    )


def deliver(rf, payload: dict):
    """Deliver a verified payload with the task queue patched out."""
    with patch(VERIFY, return_value=payload), patch(DELAY) as mock_delay:
        response = stripe_webhook(make_webhook_request(rf, payload))
    return response, mock_delay


# =============================================================================
# Signature Verification
# =============================================================================


class TestStripeWebhookSignature:
    def test_missing_signature_returns_400(self, rf, db):
        request = rf.post(
            "/api/stripe-v2/webhook/",
            data=json.dumps({"id": "evt_test"}),
            content_type="application/json",
        )

        response = stripe_webhook(request)

        assert response.status_code == 400
        assert b"Missing signature" in response.content
        assert WebhookEvent.objects.count() == 0

    def test_invalid_signature_returns_400(self, rf, db):
        """Nothing is stored when verification fails."""
        payload = stripe_event("payment_intent.succeeded", {"id": "pi_123"})

        with patch(VERIFY, side_effect=StripeInvalidRequestError("Invalid signature")):
            response = stripe_webhook(make_webhook_request(rf, payload, signature="bad"))

        assert response.status_code == 400
        assert b"Invalid signature" in response.content
        assert WebhookEvent.objects.count() == 0

    def test_raw_body_is_verified(self, rf, db):
        """The signature is checked against the exact bytes Stripe sent."""
        payload = stripe_event("payment_intent.succeeded", {"id": "pi_123"})
        request = make_webhook_request(rf, payload, signature="t=1,v1=abc")

        with patch(VERIFY, return_value=payload) as mock_verify, patch(DELAY):
            stripe_webhook(request)

        mock_verify.assert_called_once_with(request.body, "t=1,v1=abc")


# =============================================================================
# Event Storage
# =============================================================================


class TestStripeWebhookEventCreation:
    def test_creates_new_webhook_event(self, rf, db):
        payload = stripe_event(
            "payment_intent.succeeded", {"id": "pi_123"}, event_id="evt_new_event_123"
        )

        response, _ = deliver(rf, payload)

        assert response.status_code == 200
        assert b"Accepted" in response.content
        event = WebhookEvent.objects.get(stripe_event_id="evt_new_event_123")
        assert event.event_type == "payment_intent.succeeded"
        assert event.status == WebhookEventStatus.PENDING
        assert event.payload == payload

    def test_duplicate_of_processed_event(self, rf, processed_webhook_event):
        """Duplicate deliveries of processed events are not re-queued."""
        response, mock_delay = deliver(rf, processed_webhook_event.payload)

        assert response.status_code == 200
        assert b"Already processed" in response.content
        mock_delay.assert_not_called()
        assert WebhookEvent.objects.count() == 1

    def test_duplicate_of_unfinished_event_is_requeued(self, rf, failed_webhook_event):
        response, mock_delay = deliver(rf, failed_webhook_event.payload)

        assert response.status_code == 200
        mock_delay.assert_called_once_with(str(failed_webhook_event.id))
        assert WebhookEvent.objects.count() == 1

    @pytest.mark.parametrize("missing", ["id", "type"])
    def test_invalid_event(self, rf, db, missing):
        payload = stripe_event("payment_intent.succeeded", {"id": "pi_123"})
        del payload[missing]

        response, mock_delay = deliver(rf, payload)

        assert response.status_code == 400
        assert b"Invalid event" in response.content
        mock_delay.assert_not_called()


# =============================================================================
# Task Queuing
# =============================================================================


class TestStripeWebhookTaskQueuing:
    def test_queues_task_for_new_event(self, rf, db):
        payload = stripe_event("transfer.created", {"id": "tr_123"}, event_id="evt_queue_1")

        response, mock_delay = deliver(rf, payload)

        event = WebhookEvent.objects.get(stripe_event_id="evt_queue_1")
        assert response.status_code == 200
        mock_delay.assert_called_once_with(str(event.id))

    def test_task_queuing_failure_returns_200(self, rf, db):
        """The event stays stored as pending for the retry sweep."""
        payload = stripe_event("transfer.created", {"id": "tr_123"}, event_id="evt_queue_fail")

        with patch(VERIFY, return_value=payload), patch(DELAY) as mock_delay:
            mock_delay.side_effect = Exception("Celery connection error")
            response = stripe_webhook(make_webhook_request(rf, payload))

        assert response.status_code == 200
        assert b"Accepted" in response.content
        event = WebhookEvent.objects.get(stripe_event_id="evt_queue_fail")
        assert event.status == WebhookEventStatus.PENDING

    def test_routed_under_api(self, client, db):
        """The endpoint is mounted under /api/stripe-v2/ without auth or CSRF."""
        payload = stripe_event("account.updated", {"id": "acct_1"}, event_id="evt_routed")

        with patch(VERIFY, return_value=payload), patch(DELAY):
            response = client.post(
                reverse("payments:stripe_webhook"),
                data=json.dumps(payload),
                content_type="application/json",
                HTTP_STRIPE_SIGNATURE="t=1,v1=abc",
            )

        assert response.status_code == 200
        assert reverse("payments:stripe_webhook") == "/api/stripe-v2/webhook/"


# =============================================================================
# HTTP Methods
# =============================================================================


class TestStripeWebhookHttpMethods:
    @pytest.mark.parametrize("method", ["get", "put", "delete"])
    def test_only_post_allowed(self, rf, db, method):
        request = getattr(rf, method)("/api/stripe-v2/webhook/")

        response = stripe_webhook(request)

        assert response.status_code == 405
