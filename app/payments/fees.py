"""
Fee calculation for platform-first payments.

The platform charges the customer the full amount and later transfers the
wholesaler's share, so every checkout is split in three layers:

    customer platform fee  = subtotal x customer rate      (added to the total)
    transaction fee        = fixed amount                  (added to the total)
    wholesaler platform fee = subtotal x wholesaler rate   (deducted from the share)

    customer total   = subtotal + delivery + customer fee + transaction fee
    wholesaler share = subtotal - wholesaler fee
    platform total   = customer total - wholesaler share

All amounts are integer minor units (pence/cents). Percentage fees are
rounded half-up to the nearest minor unit. Rates are rounded half-up to four
decimal places before they are applied, the precision the audit row keeps.
The platform total is derived by subtraction, so share + platform total
always equals the customer total.

This module has no database access and no side effects.

Usage:
    from payments.fees import calculate_payment_split

    split = calculate_payment_split(
        product_subtotal_cents=10000,
        delivery_fee_cents=500,
    )
    split.total_amount_cents      # 11100
    split.wholesaler_share_cents  # 9670
    split.platform_total_cents    # 1430
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from django.conf import settings

from payments.exceptions import PaymentValidationError

PAYMENT_TYPE_PLATFORM_FIRST = "platform_first_v2"

CENTS_PER_UNIT = Decimal("100")
TWO_PLACES = Decimal("0.01")
RATE_PLACES = Decimal("0.0001")


# =============================================================================
# Amount Helpers
# =============================================================================


def round_cents(value: Decimal) -> int:
    """Round a fractional minor-unit amount half-up to an integer."""
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def format_amount(cents: int) -> str:
    """
    Format minor units as a two-decimal major-unit string.

    Example:
        format_amount(9670)  # "96.70"
    """
    return str((Decimal(cents) / CENTS_PER_UNIT).quantize(TWO_PLACES))


def parse_amount_to_cents(value: Any) -> int:
    """
    Convert a major-unit amount ("96.70", 96.7, 5) to integer minor units.

    Floats are converted through their string form so 0.1 stays 10 pence.

    Raises:
        PaymentValidationError: If the value is not a finite number
    """
    if isinstance(value, bool) or value is None:
        raise PaymentValidationError(
            "Amount must be a number",
            details={"value": value},
        )
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise PaymentValidationError(
            "Amount must be a number",
            details={"value": str(value)},
        )
    if not amount.is_finite():
        raise PaymentValidationError(
            "Amount must be a finite number",
            details={"value": str(value)},
        )
    return round_cents(amount * CENTS_PER_UNIT)


def parse_rate(value: Any) -> Decimal:
    """
    Convert a fee rate (0.055, "0.055") to a Decimal.

    Raises:
        PaymentValidationError: If the value is not a number
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool) or value is None:
        raise PaymentValidationError("Fee rate must be a number", details={"value": value})
    try:
        rate = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise PaymentValidationError(
            "Fee rate must be a number",
            details={"value": str(value)},
        )
    if not rate.is_finite():
        raise PaymentValidationError(
            "Fee rate must be a finite number",
            details={"value": str(value)},
        )
    return rate


# =============================================================================
# Payment Split
# =============================================================================


@dataclass(frozen=True)
class PaymentSplit:
    """
    Breakdown of one checkout under the platform-first model.

    Attributes:
        product_subtotal_cents: Products only, before any fee
        delivery_fee_cents: Delivery charged to the customer (kept by platform)
        transaction_fee_cents: Fixed fee charged to the customer
        customer_platform_fee_rate: Rate applied to the subtotal for the customer fee
        wholesaler_platform_fee_rate: Rate applied to the subtotal for the wholesaler fee
        customer_platform_fee_cents: Fee added to the customer total
        wholesaler_platform_fee_cents: Fee deducted from the wholesaler share
        total_amount_cents: What the customer pays
        wholesaler_share_cents: What is transferred to the wholesaler
        platform_total_cents: What the platform keeps
    """

    product_subtotal_cents: int
    delivery_fee_cents: int
    transaction_fee_cents: int
    customer_platform_fee_rate: Decimal
    wholesaler_platform_fee_rate: Decimal
    customer_platform_fee_cents: int
    wholesaler_platform_fee_cents: int
    total_amount_cents: int
    wholesaler_share_cents: int
    platform_total_cents: int

    def as_dict(self) -> dict[str, Any]:
        """
        JSON-friendly breakdown in major units for API responses.

        Amounts are two-decimal strings so clients never see float drift.
        """
        return {
            "total_amount": format_amount(self.total_amount_cents),
            "customer_platform_fee": format_amount(self.customer_platform_fee_cents),
            "wholesaler_platform_fee": format_amount(
                self.wholesaler_platform_fee_cents
            ),
            "platform_total": format_amount(self.platform_total_cents),
            "wholesaler_share": format_amount(self.wholesaler_share_cents),
            "breakdown": {
                "product_subtotal": format_amount(self.product_subtotal_cents),
                "delivery_fee": format_amount(self.delivery_fee_cents),
                "transaction_fee": format_amount(self.transaction_fee_cents),
                "customer_platform_fee": format_amount(
                    self.customer_platform_fee_cents
                ),
                "wholesaler_platform_fee": format_amount(
                    self.wholesaler_platform_fee_cents
                ),
            },
            "rates": {
                "customer_platform_fee_rate": str(self.customer_platform_fee_rate),
                "wholesaler_platform_fee_rate": str(
                    self.wholesaler_platform_fee_rate
                ),
            },
        }

    def metadata(self) -> dict[str, str]:
        """Split keys attached to the platform PaymentIntent."""
        return {
            "payment_type": PAYMENT_TYPE_PLATFORM_FIRST,
            "wholesaler_share": format_amount(self.wholesaler_share_cents),
            "platform_total": format_amount(self.platform_total_cents),
        }


def _applied_rate(name: str, rate: Decimal) -> Decimal:
    """Validate a rate and round it half-up to the four places it is recorded with."""
    if Decimal("0") <= rate < Decimal("1"):
        applied = rate.quantize(RATE_PLACES, rounding=ROUND_HALF_UP)
        if applied < Decimal("1"):
            return applied
    raise PaymentValidationError(
        f"{name} must be in the range [0, 1)",
        details={name: str(rate)},
    )


def calculate_payment_split(
    product_subtotal_cents: int,
    delivery_fee_cents: int = 0,
    customer_platform_fee_rate: Decimal | float | str | None = None,
    wholesaler_platform_fee_rate: Decimal | float | str | None = None,
    transaction_fee_cents: int | None = None,
) -> PaymentSplit:
    """
    Split a checkout between wholesaler and platform.

    Rates and the fixed fee default to the CUSTOMER_PLATFORM_FEE_RATE,
    WHOLESALER_PLATFORM_FEE_RATE and TRANSACTION_FEE_FIXED_CENTS settings.

    Args:
        product_subtotal_cents: Product subtotal, must be > 0
        delivery_fee_cents: Delivery fee, must be >= 0
        customer_platform_fee_rate: Rate in [0, 1) charged on top of the subtotal
        wholesaler_platform_fee_rate: Rate in [0, 1) deducted from the subtotal
        transaction_fee_cents: Fixed fee, must be >= 0

    Returns:
        PaymentSplit with every component in minor units

    Raises:
        PaymentValidationError: On any out-of-range input
    """
    if customer_platform_fee_rate is None:
        customer_platform_fee_rate = settings.CUSTOMER_PLATFORM_FEE_RATE
    if wholesaler_platform_fee_rate is None:
        wholesaler_platform_fee_rate = settings.WHOLESALER_PLATFORM_FEE_RATE
    if transaction_fee_cents is None:
        transaction_fee_cents = settings.TRANSACTION_FEE_FIXED_CENTS

    customer_rate = parse_rate(customer_platform_fee_rate)
    wholesaler_rate = parse_rate(wholesaler_platform_fee_rate)

    if product_subtotal_cents <= 0:
        raise PaymentValidationError(
            "Product subtotal must be positive",
            error_code="INVALID_SUBTOTAL",
            details={"product_subtotal_cents": product_subtotal_cents},
        )
    if delivery_fee_cents < 0:
        raise PaymentValidationError(
            "Delivery fee cannot be negative",
            details={"delivery_fee_cents": delivery_fee_cents},
        )
    if transaction_fee_cents < 0:
        raise PaymentValidationError(
            "Transaction fee cannot be negative",
            details={"transaction_fee_cents": transaction_fee_cents},
        )
    customer_rate = _applied_rate("customer_platform_fee_rate", customer_rate)
    wholesaler_rate = _applied_rate("wholesaler_platform_fee_rate", wholesaler_rate)

    subtotal = Decimal(product_subtotal_cents)
    customer_fee = round_cents(subtotal * customer_rate)
    wholesaler_fee = round_cents(subtotal * wholesaler_rate)

    total = product_subtotal_cents + delivery_fee_cents + customer_fee + transaction_fee_cents
    share = product_subtotal_cents - wholesaler_fee

    return PaymentSplit(
        product_subtotal_cents=product_subtotal_cents,
        delivery_fee_cents=delivery_fee_cents,
        transaction_fee_cents=transaction_fee_cents,
        customer_platform_fee_rate=customer_rate,
        wholesaler_platform_fee_rate=wholesaler_rate,
        customer_platform_fee_cents=customer_fee,
        wholesaler_platform_fee_cents=wholesaler_fee,
        total_amount_cents=total,
        wholesaler_share_cents=share,
        platform_total_cents=total - share,
    )
