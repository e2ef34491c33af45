"""
Factory Boy factories for payment test data.

Usage:
    from payments.tests.factories import (
        ConnectedAccountFactory,
        PaymentCalculationFactory,
        TransferFactory,
        WebhookEventFactory,
    )

    # Account that can receive transfers
    account = ConnectedAccountFactory(wholesaler=wholesaler)

    # Failed transfer for an order
    transfer = TransferFactory(order=order, status=TransferStatus.FAILED)

    # Stored payment_intent.succeeded event
    event = WebhookEventFactory(event_type="payment_intent.succeeded")
"""

import uuid
from decimal import Decimal

import factory

from accounts.tests.factories import WholesalerFactory
from orders.tests.factories import OrderFactory
from payments.models import ConnectedAccount, PaymentCalculation, Transfer, WebhookEvent
from payments.state_machines import (
    OnboardingStatus,
    TransferStatus,
    WebhookEventStatus,
)


class ConnectedAccountFactory(factory.django.DjangoModelFactory):
    """
    Factory for ConnectedAccount.

    Default is a fully onboarded account with the transfers capability
    active and nothing due.

    Example:
        account = ConnectedAccountFactory(
            onboarding_status=OnboardingStatus.IN_PROGRESS,
            capabilities={"transfers": "inactive"},
            requirements_due=["external_account"],
        )
    """

    class Meta:
        model = ConnectedAccount

    wholesaler = factory.SubFactory(WholesalerFactory)
    stripe_account_id = factory.Sequence(
        lambda n: f"acct_test_{n}_{uuid.uuid4().hex[:8]}"
    )
    onboarding_status = OnboardingStatus.COMPLETE
    onboarding_completed = True
    details_submitted = True
    charges_enabled = True
    payouts_enabled = True
    capabilities = factory.LazyFunction(lambda: {"transfers": "active"})
    requirements_due = factory.LazyFunction(list)
    country = "GB"
    metadata = factory.LazyFunction(dict)


class TransferFactory(factory.django.DjangoModelFactory):
    """
    Factory for Transfer.

    Default is a PENDING 96.70 GBP transfer with no Stripe transfer yet.
    status is FSM-protected, so pick it at creation.
    """

    class Meta:
        model = Transfer

    stripe_payment_intent_id = factory.Sequence(lambda n: f"pi_test_{n}")
    order = factory.SubFactory(OrderFactory)
    wholesaler = factory.SelfAttribute("order.wholesaler")
    destination_account = factory.Sequence(lambda n: f"acct_dest_{n}")
    amount_cents = 9670
    platform_fee_cents = 1430
    delivery_fee_cents = 500
    currency = "gbp"
    status = TransferStatus.PENDING
    attempt_count = 1
    metadata = factory.LazyFunction(dict)


class PaymentCalculationFactory(factory.django.DjangoModelFactory):
    """Audit row matching the 100.00 + 5.00 delivery worked example."""

    class Meta:
        model = PaymentCalculation

    stripe_payment_intent_id = factory.Sequence(lambda n: f"pi_calc_{n}")
    order = factory.SubFactory(OrderFactory)
    total_amount_cents = 11100
    product_subtotal_cents = 10000
    delivery_fee_cents = 500
    transaction_fee_cents = 50
    customer_platform_fee_cents = 550
    wholesaler_platform_fee_cents = 330
    platform_total_cents = 1430
    wholesaler_share_cents = 9670
    customer_platform_fee_rate = Decimal("0.0550")
    wholesaler_platform_fee_rate = Decimal("0.0330")
    currency = "gbp"


class WebhookEventFactory(factory.django.DjangoModelFactory):
    """
    Factory for WebhookEvent.

    The payload mirrors a Stripe event envelope; pass data_object to set
    payload["data"]["object"].
    """

    class Meta:
        model = WebhookEvent

    class Params:
        data_object = factory.LazyFunction(lambda: {"id": "pi_test_default"})

    stripe_event_id = factory.Sequence(lambda n: f"evt_test_{n}_{uuid.uuid4().hex[:8]}")
    event_type = "payment_intent.succeeded"
    status = WebhookEventStatus.PENDING
    retry_count = 0
    payload = factory.LazyAttribute(
        lambda o: {
            "id": o.stripe_event_id,
            "type": o.event_type,
            "data": {"object": o.data_object},
        }
    )
