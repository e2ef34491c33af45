"""
ConnectedAccount model for wholesaler Stripe Express accounts.

Each wholesaler has at most one Express account. Transfers of their share
are only sent once Stripe reports the transfers capability active and an
empty list of requirements currently due.

Usage:
    from payments.models import ConnectedAccount

    account = ConnectedAccount.objects.create(
        wholesaler=wholesaler,
        stripe_account_id="acct_1234567890",
        onboarding_status=OnboardingStatus.IN_PROGRESS,
    )

    if account.can_receive_transfers:
        ...
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.db.models import F

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin

from payments.state_machines import OnboardingStatus


class ConnectedAccount(UUIDPrimaryKeyMixin, BaseModel):
    """
    Stripe Express account receiving a wholesaler's transfers.

    Fields:
        wholesaler: OneToOne link to the wholesaler user
        stripe_account_id: Unique Stripe Account ID (acct_xxx)
        onboarding_status: Onboarding progress as last reported by Stripe
        onboarding_completed: True once the account can receive transfers
        details_submitted: Stripe's details_submitted flag
        charges_enabled: Stripe's charges_enabled flag
        payouts_enabled: Stripe's payouts_enabled flag
        capabilities: Capability name -> status ("active", "pending", ...)
        requirements_due: Requirements currently due, null until Stripe reports them
        country: Two-letter country the account was created in
        version: Optimistic locking version field
        metadata: Flexible JSON storage

    Note:
        The account is refreshed from Stripe on every account.updated
        webhook and on every status check.
    """

    wholesaler = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="connected_account",
        help_text="Wholesaler this connected account belongs to",
    )

    stripe_account_id = models.CharField(
        max_length=255,
        unique=True,
        db_index=True,
        help_text="Stripe Account ID (acct_xxx)",
    )

    # ==========================================================================
    # Onboarding State
    # ==========================================================================

    onboarding_status = models.CharField(
        max_length=20,
        choices=OnboardingStatus.choices,
        default=OnboardingStatus.NOT_STARTED,
        db_index=True,
        help_text="Current Stripe Connect onboarding status",
    )
    onboarding_completed = models.BooleanField(
        default=False,
        help_text="Whether the account can receive transfers",
    )
    details_submitted = models.BooleanField(default=False)
    charges_enabled = models.BooleanField(default=False)
    payouts_enabled = models.BooleanField(default=False)

    capabilities = models.JSONField(
        default=dict,
        blank=True,
        help_text="Capability statuses as reported by Stripe",
    )
    requirements_due = models.JSONField(
        null=True,
        blank=True,
        default=None,
        help_text="Requirements Stripe lists as currently due; null until reported",
    )
    country = models.CharField(max_length=2, blank=True)

    version = models.PositiveIntegerField(
        default=1,
        help_text="Version for optimistic locking - incremented on each save",
    )
    metadata = models.JSONField(default=dict, blank=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Connected Account"
        verbose_name_plural = "Connected Accounts"

    def __str__(self) -> str:
        return f"ConnectedAccount({self.stripe_account_id}, {self.onboarding_status})"

    def save(self, *args, **kwargs):
        """Save with version auto-increment for optimistic locking."""
        is_update = not self._state.adding and not kwargs.get("force_insert", False)
        if is_update:
            self.version = F("version") + 1
        super().save(*args, **kwargs)
        if is_update:
            self.refresh_from_db(fields=["version"])

    @property
    def transfers_capability(self) -> str | None:
        """Status of the transfers capability, if Stripe reported one."""
        return (self.capabilities or {}).get("transfers")

    @property
    def can_receive_transfers(self) -> bool:
        """
        Check if the platform may transfer funds to this account.

        Requires the transfers capability to be active and Stripe to have
        reported an empty currently_due list.
        """
        return self.transfers_capability == "active" and self.requirements_due == []
