"""
DRF serializers for the platform-first Stripe Connect API.

Request serializers validate input and convert major-unit amounts to
integer minor units. Response serializers shape models and adapter
results for the JSON bodies returned by payments.views.

Usage:
    serializer = CalculatePaymentSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    split = serializer.validated_data["split"]
"""

from __future__ import annotations

from typing import Any

from rest_framework import serializers

from payments.exceptions import PaymentValidationError
from payments.fees import calculate_payment_split, parse_amount_to_cents


# =============================================================================
# Requests
# =============================================================================


class WholesalerRequestSerializer(serializers.Serializer):
    """Body for create-account and create-account-link."""

    wholesaler_id = serializers.IntegerField(min_value=1)


class CalculatePaymentSerializer(serializers.Serializer):
    """
    Inputs for the payment split, in major units.

    Omitted rates and fixed fee fall back to the configured defaults.
    The computed PaymentSplit is exposed as validated_data["split"].
    """

    product_subtotal = serializers.DecimalField(max_digits=12, decimal_places=2)
    delivery_fee = serializers.DecimalField(
        max_digits=12, decimal_places=2, required=False, default=0
    )
    customer_platform_fee_rate = serializers.DecimalField(
        max_digits=5, decimal_places=4, required=False
    )
    wholesaler_platform_fee_rate = serializers.DecimalField(
        max_digits=5, decimal_places=4, required=False
    )
    transaction_fee_fixed = serializers.DecimalField(
        max_digits=8, decimal_places=2, required=False
    )

    def validate(self, attrs: dict[str, Any]) -> dict[str, Any]:
        transaction_fee = attrs.get("transaction_fee_fixed")
        try:
            attrs["split"] = calculate_payment_split(
                parse_amount_to_cents(attrs["product_subtotal"]),
                parse_amount_to_cents(attrs.get("delivery_fee", 0)),
                customer_platform_fee_rate=attrs.get("customer_platform_fee_rate"),
                wholesaler_platform_fee_rate=attrs.get("wholesaler_platform_fee_rate"),
                transaction_fee_cents=(
                    parse_amount_to_cents(transaction_fee)
                    if transaction_fee is not None
                    else None
                ),
            )
        except PaymentValidationError as e:
            raise serializers.ValidationError(e.message)
        return attrs


class CreatePaymentIntentSerializer(serializers.Serializer):
    order_id = serializers.IntegerField(min_value=1)
    metadata = serializers.DictField(
        child=serializers.CharField(allow_blank=True),
        required=False,
        default=dict,
    )


class ProcessPaymentSerializer(serializers.Serializer):
    payment_intent_id = serializers.RegexField(r"^pi_\w+$", max_length=255)
    order_id = serializers.IntegerField(min_value=1)


class RecentTransfersQuerySerializer(serializers.Serializer):
    limit = serializers.IntegerField(
        min_value=1, max_value=100, required=False, default=10
    )


# =============================================================================
# Responses
# =============================================================================


class ConnectedAccountSerializer(serializers.Serializer):
    """Stripe-facing view of a ConnectedAccount."""

    id = serializers.CharField(source="stripe_account_id")
    business_profile = serializers.SerializerMethodField()
    requirements = serializers.SerializerMethodField()
    capabilities = serializers.JSONField()
    onboarding_status = serializers.CharField()
    charges_enabled = serializers.BooleanField()
    payouts_enabled = serializers.BooleanField()
    details_submitted = serializers.BooleanField()

    def get_business_profile(self, obj) -> dict:
        return (obj.metadata or {}).get("business_profile", {})

    def get_requirements(self, obj) -> dict:
        requirements = {"currently_due": list(obj.requirements_due or [])}
        disabled_reason = (obj.metadata or {}).get("disabled_reason")
        if disabled_reason:
            requirements["disabled_reason"] = disabled_reason
        return requirements


class TransferSummarySerializer(serializers.Serializer):
    """Local Transfer as returned by process-payment."""

    id = serializers.CharField(source="stripe_transfer_id")
    amount = serializers.IntegerField(source="amount_cents")
    currency = serializers.CharField()
    destination = serializers.CharField(source="destination_account")
    status = serializers.CharField()


class StripeTransferSerializer(serializers.Serializer):
    """TransferResult from the Stripe transfer list."""

    id = serializers.CharField()
    amount = serializers.IntegerField(source="amount_cents")
    currency = serializers.CharField()
    destination = serializers.CharField(source="destination_account")
    description = serializers.SerializerMethodField()
    created = serializers.IntegerField(allow_null=True)
    reversed = serializers.BooleanField()
    metadata = serializers.DictField()

    def get_description(self, obj) -> str | None:
        return obj.raw_response.get("description")


class BalanceSerializer(serializers.Serializer):
    available = serializers.ListField(child=serializers.DictField())
    pending = serializers.ListField(child=serializers.DictField())
    livemode = serializers.BooleanField()
