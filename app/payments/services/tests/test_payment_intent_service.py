"""
Tests for PaymentIntentService.

Tests cover:
- Issuing the platform PaymentIntent for the full customer total
- Split metadata sent to Stripe
- PaymentCalculation audit row and order bookkeeping
- Order validation and Stripe failure mapping
"""

import pytest

from orders.models import Order, OrderPaymentStatus
from orders.tests.factories import OrderFactory
from payments.adapters import IdempotencyKeyGenerator
from payments.exceptions import StripeAPIUnavailableError, StripeInvalidRequestError
from payments.fees import calculate_payment_split
from payments.models import PaymentCalculation
from payments.services import PaymentIntentService
from payments.services.payment_intent_service import record_payment_calculation
from payments.tests.factories import PaymentCalculationFactory
from payments.tests.stripe_fakes import payment_intent_result


@pytest.fixture
def split():
    return calculate_payment_split(
        10000,
        500,
        customer_platform_fee_rate="0.055",
        wholesaler_platform_fee_rate="0.033",
        transaction_fee_cents=50,
    )


def _issue(split, order, **kwargs):
    return PaymentIntentService.issue_payment_intent(
        split,
        order_id=order.pk,
        wholesaler_id=order.wholesaler_id,
        **kwargs,
    )


@pytest.mark.django_db
class TestIssuePaymentIntent:
    def test_issues_intent(self, split, order, mock_stripe_adapter):
        """Client secret and total come back to the caller."""
        mock_stripe_adapter.create_payment_intent.return_value = payment_intent_result(
            pi_id="pi_new", status="requires_payment_method"
        )

        result = _issue(split, order)

        assert result.success is True
        assert result.data.payment_intent_id == "pi_new"
        assert result.data.client_secret == "pi_new_secret_abc"
        assert result.data.amount_cents == 11100
        assert result.data.currency == "gbp"

    def test_sends_split_metadata(self, split, order, mock_stripe_adapter):
        """The intent carries everything the webhook needs."""
        mock_stripe_adapter.create_payment_intent.return_value = payment_intent_result(
            pi_id="pi_new"
        )

        _issue(split, order, customer_id="cust_9", extra_metadata={"source": "web"})

        params = mock_stripe_adapter.create_payment_intent.call_args.args[0]
        assert params.amount_cents == 11100
        assert params.currency == "gbp"
        assert params.metadata == {
            "source": "web",
            "order_id": str(order.pk),
            "wholesaler_id": str(order.wholesaler_id),
            "customer_id": "cust_9",
            "payment_type": "platform_first_v2",
            "wholesaler_share": "96.70",
            "platform_total": "14.30",
        }
        assert params.idempotency_key == IdempotencyKeyGenerator.generate(
            "create_platform_intent", order.pk, 1
        )

    def test_split_keys_override_caller_metadata(self, split, order, mock_stripe_adapter):
        mock_stripe_adapter.create_payment_intent.return_value = payment_intent_result()

        _issue(split, order, extra_metadata={"wholesaler_share": "999.00", "order_id": "1"})

        params = mock_stripe_adapter.create_payment_intent.call_args.args[0]
        assert params.metadata["wholesaler_share"] == "96.70"
        assert params.metadata["order_id"] == str(order.pk)

    def test_customer_defaults_to_order_reference(self, split, order, mock_stripe_adapter):
        mock_stripe_adapter.create_payment_intent.return_value = payment_intent_result()

        _issue(split, order)

        params = mock_stripe_adapter.create_payment_intent.call_args.args[0]
        assert params.metadata["customer_id"] == order.customer_reference

    def test_records_calculation(self, split, order, mock_stripe_adapter):
        """The audit row is written once the intent exists."""
        mock_stripe_adapter.create_payment_intent.return_value = payment_intent_result(
            pi_id="pi_new"
        )

        _issue(split, order)

        calculation = PaymentCalculation.objects.get(stripe_payment_intent_id="pi_new")
        assert calculation.order_id == order.pk
        assert calculation.total_amount_cents == 11100
        assert calculation.wholesaler_share_cents == 9670
        assert calculation.platform_total_cents == 1430

    def test_updates_order(self, split, order, mock_stripe_adapter):
        mock_stripe_adapter.create_payment_intent.return_value = payment_intent_result(
            pi_id="pi_new"
        )

        _issue(split, order)

        order = Order.objects.get(pk=order.pk)
        assert order.stripe_payment_intent_id == "pi_new"
        assert order.total_cents == 11100
        assert order.platform_fee_cents == 1430
        assert order.payment_status == OrderPaymentStatus.UNPAID

    def test_reissue_keeps_single_calculation(self, split, order, mock_stripe_adapter):
        """Stripe replays the same intent for the same key; one audit row."""
        mock_stripe_adapter.create_payment_intent.return_value = payment_intent_result(
            pi_id="pi_new"
        )

        _issue(split, order)
        _issue(split, order)

        assert PaymentCalculation.objects.filter(stripe_payment_intent_id="pi_new").count() == 1


@pytest.mark.django_db
class TestIssuePaymentIntentFailures:
    def test_order_not_found(self, split, wholesaler, mock_stripe_adapter):
        result = PaymentIntentService.issue_payment_intent(
            split, order_id=999999, wholesaler_id=wholesaler.pk
        )

        assert result.success is False
        assert result.error_code == "ORDER_NOT_FOUND"
        mock_stripe_adapter.create_payment_intent.assert_not_called()

    def test_wrong_wholesaler(self, split, order, mock_stripe_adapter):
        """Orders can only be paid to the wholesaler they belong to."""
        other = OrderFactory()

        result = PaymentIntentService.issue_payment_intent(
            split, order_id=order.pk, wholesaler_id=other.wholesaler_id
        )

        assert result.error_code == "ORDER_MISMATCH"
        mock_stripe_adapter.create_payment_intent.assert_not_called()

    def test_already_paid(self, split, paid_order, mock_stripe_adapter):
        result = _issue(split, paid_order)

        assert result.error_code == "ORDER_ALREADY_PAID"
        mock_stripe_adapter.create_payment_intent.assert_not_called()

    def test_stripe_rejects(self, split, order, mock_stripe_adapter):
        """Refused requests map to STRIPE_ERROR and nothing is recorded."""
        mock_stripe_adapter.create_payment_intent.side_effect = StripeInvalidRequestError(
            "Amount must be at least 30 pence"
        )

        result = _issue(split, order)

        assert result.success is False
        assert result.error_code == "STRIPE_ERROR"
        assert PaymentCalculation.objects.count() == 0
        assert Order.objects.get(pk=order.pk).stripe_payment_intent_id is None

    def test_stripe_unavailable(self, split, order, mock_stripe_adapter):
        mock_stripe_adapter.create_payment_intent.side_effect = StripeAPIUnavailableError(
            "Stripe is down"
        )

        result = _issue(split, order)

        assert result.error_code == "STRIPE_UNAVAILABLE"


@pytest.mark.django_db
class TestRecordPaymentCalculation:
    def test_returns_existing(self, split, order):
        existing = PaymentCalculationFactory(stripe_payment_intent_id="pi_dup", order=order)

        calculation, created = record_payment_calculation(split, "pi_dup", order, "gbp")

        assert created is False
        assert calculation.pk == existing.pk

    def test_creates(self, split, order):
        calculation, created = record_payment_calculation(split, "pi_fresh", order, "gbp")

        assert created is True
        assert calculation.currency == "gbp"
