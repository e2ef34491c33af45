"""
Onboarding service for wholesaler Stripe Express accounts.

Wholesalers are onboarded with Stripe-hosted Express onboarding. The local
ConnectedAccount mirrors what Stripe reports and is refreshed on every
account.updated webhook and every status check.

Usage:
    from payments.services import OnboardingService

    result = OnboardingService.create_express_account(wholesaler)
    link = OnboardingService.create_account_link(wholesaler)

    status = OnboardingService.check_account_status(wholesaler)
    if status.success and status.data.can_receive_transfers:
        ...
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from django.conf import settings

from core.services import ServiceResult

from payments.adapters import AccountLinkResult, AccountResult, IdempotencyKeyGenerator
from payments.exceptions import StripeError
from payments.models import ConnectedAccount
from payments.services.base import PaymentService
from payments.state_machines import OnboardingStatus


ACCOUNT_CREATED_VIA = "wholesale_connect_v2"


@dataclass
class AccountStatus:
    """
    Result of an account status check.

    Attributes:
        can_receive_transfers: Transfers capability active and nothing due
        requirements: Requirements Stripe lists as currently due
        account: The refreshed local ConnectedAccount
    """

    can_receive_transfers: bool
    requirements: list[str] = field(default_factory=list)
    account: ConnectedAccount | None = None


def get_connected_account(wholesaler) -> ConnectedAccount | None:
    return ConnectedAccount.objects.filter(wholesaler=wholesaler).first()


class OnboardingService(PaymentService):
    """
    Service for Express account creation and status tracking.

    Methods:
        create_express_account: Create the wholesaler's Express account
        create_account_link: Hosted onboarding link for the account
        check_account_status: Retrieve from Stripe and refresh locally
        apply_account_data: Copy a Stripe account snapshot onto the local row
        sync_account: Refresh a local account from a webhook payload
    """

    @classmethod
    def create_express_account(cls, wholesaler) -> ServiceResult[ConnectedAccount]:
        """
        Create an Express account for a wholesaler.

        Returns:
            ServiceResult with the new ConnectedAccount, or a failure with
            ACCOUNT_EXISTS, NOT_A_WHOLESALER, STRIPE_ERROR or STRIPE_UNAVAILABLE
        """
        if not wholesaler.is_wholesaler:
            return ServiceResult.failure(
                "Only wholesalers can receive transfers",
                error_code="NOT_A_WHOLESALER",
            )

        existing = get_connected_account(wholesaler)
        if existing:
            return ServiceResult.failure(
                "Wholesaler already has a Stripe Connect account",
                error_code="ACCOUNT_EXISTS",
            )

        country = settings.CONNECT_DEFAULT_COUNTRY
        try:
            result = cls.get_stripe_adapter().create_express_account(
                email=wholesaler.email,
                country=country,
                idempotency_key=IdempotencyKeyGenerator.generate(
                    "create_express_account", wholesaler.pk
                ),
                business_name=wholesaler.business_name or None,
                metadata={
                    "created_via": ACCOUNT_CREATED_VIA,
                    "wholesaler_email": wholesaler.email,
                },
            )
        except StripeError as e:
            return cls.stripe_failure(e, "Failed to create Express account")

        account = ConnectedAccount(
            wholesaler=wholesaler,
            stripe_account_id=result.id,
            onboarding_status=OnboardingStatus.IN_PROGRESS,
            country=result.country or country,
        )
        cls._copy_account_fields(account, result)
        account.save()

        cls.get_logger().info(
            "Express account created",
            extra={
                "wholesaler_id": wholesaler.pk,
                "stripe_account_id": result.id,
            },
        )
        return ServiceResult.success(account)

    @classmethod
    def create_account_link(cls, wholesaler) -> ServiceResult[AccountLinkResult]:
        """
        Create a hosted onboarding link.

        Return and refresh URLs point at the front-end onboarding pages for
        this wholesaler under BASE_URL.
        """
        account = get_connected_account(wholesaler)
        if not account:
            return ServiceResult.failure(
                "Wholesaler has no Stripe Connect account",
                error_code="ACCOUNT_NOT_FOUND",
            )

        base_url = settings.BASE_URL.rstrip("/")
        try:
            link = cls.get_stripe_adapter().create_account_link(
                account_id=account.stripe_account_id,
                return_url=f"{base_url}/onboarding/stripe-v2/return/{wholesaler.pk}",
                refresh_url=f"{base_url}/onboarding/stripe-v2/refresh/{wholesaler.pk}",
            )
        except StripeError as e:
            return cls.stripe_failure(e, "Failed to create account link")

        return ServiceResult.success(link)

    @classmethod
    def check_account_status(cls, wholesaler) -> ServiceResult[AccountStatus]:
        """Retrieve the account from Stripe and refresh the local copy."""
        account = get_connected_account(wholesaler)
        if not account:
            return ServiceResult.failure(
                "Wholesaler has no Stripe Connect account",
                error_code="ACCOUNT_NOT_FOUND",
            )

        try:
            result = cls.get_stripe_adapter().retrieve_account(account.stripe_account_id)
        except StripeError as e:
            return cls.stripe_failure(e, "Failed to retrieve account status")

        account = cls.apply_account_data(account, result)
        return ServiceResult.success(
            AccountStatus(
                can_receive_transfers=account.can_receive_transfers,
                requirements=list(account.requirements_due or []),
                account=account,
            )
        )

    @classmethod
    def apply_account_data(
        cls,
        account: ConnectedAccount,
        data: AccountResult | dict[str, Any],
    ) -> ConnectedAccount:
        """
        Copy a Stripe account snapshot onto the local row and save it.

        Onboarding status:
            rejected     if Stripe set requirements.disabled_reason
            complete     if the account can receive transfers
            in_progress  otherwise
        """
        if isinstance(data, dict):
            data = AccountResult.from_dict(data)

        cls._copy_account_fields(account, data)

        if data.disabled_reason:
            account.onboarding_status = OnboardingStatus.REJECTED
        elif account.can_receive_transfers:
            account.onboarding_status = OnboardingStatus.COMPLETE
        else:
            account.onboarding_status = OnboardingStatus.IN_PROGRESS
        account.onboarding_completed = account.can_receive_transfers

        account.save()

        cls.get_logger().info(
            "Connected account refreshed",
            extra={
                "stripe_account_id": account.stripe_account_id,
                "onboarding_status": account.onboarding_status,
                "requirements_due": len(account.requirements_due or []),
            },
        )
        return account

    @classmethod
    def sync_account(
        cls, account_data: dict[str, Any]
    ) -> ServiceResult[ConnectedAccount | None]:
        """
        Refresh a local account from an account.updated payload.

        Accounts that are not ours are ignored.
        """
        account_id = account_data.get("id")
        account = ConnectedAccount.objects.filter(stripe_account_id=account_id).first()
        if not account:
            cls.get_logger().info(
                "ConnectedAccount not found, may be external account",
                extra={"stripe_account_id": account_id},
            )
            return ServiceResult.success(None)

        return ServiceResult.success(cls.apply_account_data(account, account_data))

    @staticmethod
    def _copy_account_fields(account: ConnectedAccount, data: AccountResult) -> None:
        account.details_submitted = data.details_submitted
        account.charges_enabled = data.charges_enabled
        account.payouts_enabled = data.payouts_enabled
        account.capabilities = data.capabilities
        account.requirements_due = data.requirements_due
        if data.country:
            account.country = data.country
        metadata = dict(account.metadata or {})
        if data.business_profile:
            metadata["business_profile"] = data.business_profile
        if data.disabled_reason:
            metadata["disabled_reason"] = data.disabled_reason
        else:
            metadata.pop("disabled_reason", None)
        account.metadata = metadata
