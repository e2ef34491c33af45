"""
State enums for payment models.

This module defines the state enums used by payment models with django-fsm.
These are Django TextChoices for database storage and admin integration.

State Machines Overview:

Transfer States:
    pending → succeeded
    pending → failed → pending (manual retry)
    succeeded → failed (reversed by Stripe)

ConnectedAccount Onboarding:
    not_started → in_progress → complete
    in_progress/complete → rejected (Stripe disabled the account)

WebhookEvent States:
    pending → processing → processed
    processing → failed → processing (retry)
"""

from django.db import models


class TransferStatus(models.TextChoices):
    """
    States for a funds transfer to a wholesaler's connected account.

    Values mirror what the platform reports to wholesalers:
    - PENDING: Row claimed, Stripe transfer not yet confirmed
    - SUCCEEDED: Stripe accepted the transfer
    - FAILED: Stripe rejected or reversed the transfer
    """

    PENDING = "pending", "Pending"
    SUCCEEDED = "succeeded", "Succeeded"
    FAILED = "failed", "Failed"


class OnboardingStatus(models.TextChoices):
    """
    Stripe Connect onboarding status for a wholesaler.

    - NOT_STARTED: No Express account yet
    - IN_PROGRESS: Account exists, requirements outstanding
    - COMPLETE: Transfers capability active and nothing currently due
    - REJECTED: Stripe disabled the account
    """

    NOT_STARTED = "not_started", "Not Started"
    IN_PROGRESS = "in_progress", "In Progress"
    COMPLETE = "complete", "Complete"
    REJECTED = "rejected", "Rejected"


class WebhookEventStatus(models.TextChoices):
    """
    Processing status for stored Stripe webhook events.

    - PENDING: Stored, waiting for a worker
    - PROCESSING: A worker is dispatching it
    - PROCESSED: Handler finished (including deliberate no-ops)
    - FAILED: Handler raised or returned failure; eligible for retry
    """

    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    PROCESSED = "processed", "Processed"
    FAILED = "failed", "Failed"
