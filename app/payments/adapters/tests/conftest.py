"""
Pytest fixtures for Stripe adapter tests.

Sections:
    - Mock Stripe Objects
    - Mock Stripe Errors
    - Mock Stripe Clients
"""

from dataclasses import dataclass
from typing import Any
from unittest.mock import patch

import pytest
import stripe


# =============================================================================
# Mock Stripe Objects
# =============================================================================


@dataclass
class MockStripeObject:
    """Stripe API object stand-in with attribute access and to_dict."""

    payload: dict[str, Any]

    def __getattr__(self, name: str) -> Any:
        if name == "payload":
            return self.__dict__["payload"]
        return self.payload.get(name)

    def to_dict(self) -> dict[str, Any]:
        return self.payload


@dataclass
class MockStripeList:
    """Stripe list page with a data attribute."""

    items: list[MockStripeObject]
    has_more: bool = False

    @property
    def data(self) -> list[MockStripeObject]:
        return self.items


@pytest.fixture
def mock_payment_intent():
    """Factory for PaymentIntent responses."""

    def _create(
        id: str = "pi_test123456",
        status: str = "requires_payment_method",
        amount: int = 11100,
        currency: str = "gbp",
        client_secret: str = "pi_test123456_secret_abc123",
        latest_charge: str | None = None,
        metadata: dict | None = None,
    ) -> MockStripeObject:
        return MockStripeObject(
            {
                "id": id,
                "object": "payment_intent",
                "status": status,
                "amount": amount,
                "currency": currency,
                "client_secret": client_secret,
                "latest_charge": latest_charge,
                "metadata": metadata or {},
            }
        )

    return _create


@pytest.fixture
def mock_transfer():
    """Factory for Transfer responses."""

    def _create(
        id: str = "tr_test123456",
        amount: int = 9670,
        currency: str = "gbp",
        destination: str = "acct_dest123",
        reversed: bool = False,
        metadata: dict | None = None,
    ) -> MockStripeObject:
        return MockStripeObject(
            {
                "id": id,
                "object": "transfer",
                "amount": amount,
                "currency": currency,
                "destination": destination,
                "created": 1700000000,
                "reversed": reversed,
                "metadata": metadata or {},
            }
        )

    return _create


@pytest.fixture
def mock_account():
    """Factory for Account responses."""

    def _create(
        id: str = "acct_test123",
        transfers: str = "active",
        currently_due: list | None = None,
        disabled_reason: str | None = None,
        details_submitted: bool = True,
    ) -> MockStripeObject:
        return MockStripeObject(
            {
                "id": id,
                "object": "account",
                "country": "GB",
                "details_submitted": details_submitted,
                "charges_enabled": True,
                "payouts_enabled": True,
                "business_profile": {"name": "Acme Wholesale"},
                "capabilities": {"transfers": transfers},
                "requirements": {
                    "currently_due": currently_due or [],
                    "disabled_reason": disabled_reason,
                },
            }
        )

    return _create


# =============================================================================
# Mock Stripe Errors
# =============================================================================


@pytest.fixture
def card_error():
    """Factory for CardError with an optional decline code."""

    def _create(
        message: str = "Your card was declined.",
        code: str = "card_declined",
        decline_code: str | None = "generic_decline",
    ) -> stripe.CardError:
        error = stripe.CardError(message=message, param=None, code=code)
        error.decline_code = decline_code
        return error

    return _create


@pytest.fixture
def invalid_request_error():
    """Factory for InvalidRequestError."""

    def _create(
        message: str = "Invalid payment intent ID",
        param: str | None = "payment_intent",
        code: str = "resource_missing",
    ) -> stripe.InvalidRequestError:
        return stripe.InvalidRequestError(message=message, param=param, code=code)

    return _create


# =============================================================================
# Mock Stripe Clients
# =============================================================================


@pytest.fixture(autouse=True)
def mock_stripe_http_client():
    """Keep the adapter from building a real HTTP client."""
    with patch("stripe.RequestsClient") as mock:
        yield mock


@pytest.fixture
def mock_stripe_payment_intent(mock_payment_intent):
    with patch("stripe.PaymentIntent") as mock:
        mock.create.return_value = mock_payment_intent()
        mock.retrieve.return_value = mock_payment_intent(
            status="succeeded", latest_charge="ch_test123"
        )
        yield mock


@pytest.fixture
def mock_stripe_transfer(mock_transfer):
    with patch("stripe.Transfer") as mock:
        mock.create.return_value = mock_transfer()
        mock.list.return_value = MockStripeList(
            items=[mock_transfer(id=f"tr_{i}") for i in range(3)]
        )
        yield mock


@pytest.fixture
def mock_stripe_account(mock_account):
    with patch("stripe.Account") as mock:
        mock.create.return_value = mock_account(
            transfers="inactive", currently_due=["external_account"]
        )
        mock.retrieve.return_value = mock_account()
        yield mock
