"""
Tests for the payment split calculator.

Tests cover:
- The 100.00 + 5.00 delivery worked example
- Conservation: wholesaler share + platform total == customer total
- Input validation and amount parsing
"""

from decimal import Decimal

import pytest
from django.test import override_settings

from payments.exceptions import PaymentValidationError
from payments.fees import (
    PAYMENT_TYPE_PLATFORM_FIRST,
    calculate_payment_split,
    format_amount,
    parse_amount_to_cents,
    parse_rate,
)


class TestWorkedExample:
    """100.00 subtotal, 5.00 delivery, 5.5% / 3.3% rates, 0.50 fixed fee."""

    @pytest.fixture
    def split(self):
        return calculate_payment_split(
            10000,
            500,
            customer_platform_fee_rate="0.055",
            wholesaler_platform_fee_rate="0.033",
            transaction_fee_cents=50,
        )

    def test_components(self, split):
        """Each fee component is computed on the product subtotal."""
        assert split.customer_platform_fee_cents == 550
        assert split.wholesaler_platform_fee_cents == 330
        assert split.transaction_fee_cents == 50

    def test_totals(self, split):
        """Customer pays 111.00; wholesaler gets 96.70; platform keeps 14.30."""
        assert split.total_amount_cents == 11100
        assert split.wholesaler_share_cents == 9670
        assert split.platform_total_cents == 1430

    def test_as_dict_uses_major_units(self, split):
        """API breakdown is two-decimal strings."""
        data = split.as_dict()

        assert data["total_amount"] == "111.00"
        assert data["wholesaler_share"] == "96.70"
        assert data["platform_total"] == "14.30"
        assert data["breakdown"]["delivery_fee"] == "5.00"
        assert data["rates"]["customer_platform_fee_rate"] == "0.0550"

    def test_metadata(self, split):
        """PaymentIntent metadata carries the split for the webhook."""
        assert split.metadata() == {
            "payment_type": PAYMENT_TYPE_PLATFORM_FIRST,
            "wholesaler_share": "96.70",
            "platform_total": "14.30",
        }


class TestSplitProperties:
    @pytest.mark.parametrize("subtotal", [1, 99, 1000, 3333, 10000, 123457, 10_000_000])
    @pytest.mark.parametrize("delivery", [0, 1, 499, 2500])
    @pytest.mark.parametrize(
        "customer_rate,wholesaler_rate",
        [("0", "0"), ("0.055", "0.033"), ("0.1", "0.25"), ("0.5", "0.0001")],
    )
    def test_share_plus_platform_equals_total(
        self, subtotal, delivery, customer_rate, wholesaler_rate
    ):
        """Every penny the customer pays is accounted for."""
        split = calculate_payment_split(
            subtotal,
            delivery,
            customer_platform_fee_rate=customer_rate,
            wholesaler_platform_fee_rate=wholesaler_rate,
            transaction_fee_cents=50,
        )

        assert split.wholesaler_share_cents + split.platform_total_cents == (
            split.total_amount_cents
        )
        assert split.total_amount_cents >= subtotal + delivery
        assert 0 < split.wholesaler_share_cents <= subtotal

    def test_rounds_half_up(self):
        """Fractional pennies round half up."""
        split = calculate_payment_split(
            10,
            customer_platform_fee_rate="0.05",
            wholesaler_platform_fee_rate="0.05",
            transaction_fee_cents=0,
        )

        assert split.customer_platform_fee_cents == 1
        assert split.wholesaler_platform_fee_cents == 1

    def test_rates_rounded_to_recorded_precision(self):
        """Fees are charged at the four-place rate that gets recorded."""
        split = calculate_payment_split(
            10000,
            customer_platform_fee_rate="0.05555",
            wholesaler_platform_fee_rate="0.00005",
            transaction_fee_cents=0,
        )

        assert split.customer_platform_fee_rate == Decimal("0.0556")
        assert split.wholesaler_platform_fee_rate == Decimal("0.0001")
        assert split.customer_platform_fee_cents == 556
        assert split.wholesaler_platform_fee_cents == 1

    @override_settings(
        CUSTOMER_PLATFORM_FEE_RATE=Decimal("0.1"),
        WHOLESALER_PLATFORM_FEE_RATE=Decimal("0.2"),
        TRANSACTION_FEE_FIXED_CENTS=0,
    )
    def test_defaults_from_settings(self):
        """Omitted rates and fixed fee come from settings."""
        split = calculate_payment_split(10000)

        assert split.customer_platform_fee_cents == 1000
        assert split.wholesaler_platform_fee_cents == 2000
        assert split.transaction_fee_cents == 0


class TestSplitValidation:
    @pytest.mark.parametrize("subtotal", [0, -100])
    def test_subtotal_must_be_positive(self, subtotal):
        """Zero or negative subtotals are rejected."""
        with pytest.raises(PaymentValidationError) as exc_info:
            calculate_payment_split(subtotal)

        assert exc_info.value.error_code == "INVALID_SUBTOTAL"

    def test_negative_delivery(self):
        """Negative delivery fees are rejected."""
        with pytest.raises(PaymentValidationError):
            calculate_payment_split(1000, -1)

    def test_negative_transaction_fee(self):
        """Negative fixed fees are rejected."""
        with pytest.raises(PaymentValidationError):
            calculate_payment_split(1000, transaction_fee_cents=-1)

    @pytest.mark.parametrize("rate", ["1", "1.5", "-0.01", "0.99995", "1e30", "-1e30"])
    def test_rate_out_of_range(self, rate):
        """Rates must be in [0, 1) after rounding to four places."""
        with pytest.raises(PaymentValidationError):
            calculate_payment_split(1000, customer_platform_fee_rate=rate)

    def test_share_rounded_to_zero(self):
        """A share that rounds to nothing still balances."""
        split = calculate_payment_split(
            1,
            delivery_fee_cents=0,
            customer_platform_fee_rate="0.055",
            wholesaler_platform_fee_rate="0.5",
            transaction_fee_cents=50,
        )

        assert split.wholesaler_share_cents == 0
        assert split.wholesaler_platform_fee_cents == 1
        assert split.total_amount_cents == 51
        assert split.platform_total_cents == 51


class TestAmountHelpers:
    @pytest.mark.parametrize(
        "value,expected",
        [("96.70", 9670), (96.7, 9670), (5, 500), ("0.1", 10), (Decimal("14.305"), 1431)],
    )
    def test_parse_amount_to_cents(self, value, expected):
        """Major units convert to integer pennies."""
        assert parse_amount_to_cents(value) == expected

    @pytest.mark.parametrize("value", [None, True, "abc", "NaN", "Infinity"])
    def test_parse_amount_rejects_non_numbers(self, value):
        """Non-numeric amounts raise a validation error."""
        with pytest.raises(PaymentValidationError):
            parse_amount_to_cents(value)

    def test_parse_rate(self):
        """Rates parse to Decimal without float drift."""
        assert parse_rate(0.055) == Decimal("0.055")

    def test_parse_rate_rejects_text(self):
        with pytest.raises(PaymentValidationError):
            parse_rate("five percent")

    def test_format_amount(self):
        assert format_amount(9670) == "96.70"
        assert format_amount(5) == "0.05"
