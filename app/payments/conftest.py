"""
Pytest fixtures shared by the payments test suites.

Usage:
    def test_transfer(paid_order, connected_account, mock_stripe_adapter):
        mock_stripe_adapter.create_transfer.return_value = transfer_result()
        ...
"""

from unittest.mock import MagicMock

import pytest
from rest_framework.test import APIClient

from accounts.tests.factories import UserFactory, WholesalerFactory
from orders.models import OrderPaymentStatus
from orders.tests.factories import OrderFactory
from payments.services import PaymentService
from payments.tests.factories import ConnectedAccountFactory


# =============================================================================
# Users
# =============================================================================


@pytest.fixture
def wholesaler(db):
    return WholesalerFactory(business_name="Fresh Farms Ltd")


@pytest.fixture
def retailer(db):
    return UserFactory()


@pytest.fixture
def staff_user(db):
    return UserFactory(is_staff=True)


# =============================================================================
# Connected Accounts and Orders
# =============================================================================


@pytest.fixture
def connected_account(db, wholesaler):
    """Fully onboarded account for the wholesaler."""
    return ConnectedAccountFactory(wholesaler=wholesaler, stripe_account_id="acct_test")


@pytest.fixture
def order(db, wholesaler, retailer):
    """Unpaid order: 100.00 subtotal, 5.00 delivery."""
    return OrderFactory(wholesaler=wholesaler, retailer=retailer)


@pytest.fixture
def paid_order(db, wholesaler, retailer):
    return OrderFactory(
        wholesaler=wholesaler,
        retailer=retailer,
        payment_status=OrderPaymentStatus.PAID,
        stripe_payment_intent_id="pi_test_123",
    )


# =============================================================================
# Stripe
# =============================================================================


@pytest.fixture
def mock_stripe_adapter():
    """Replace the Stripe adapter used by every payment service."""
    adapter = MagicMock()
    PaymentService.set_stripe_adapter(adapter)
    yield adapter
    PaymentService.set_stripe_adapter(None)


# =============================================================================
# API Clients
# =============================================================================


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def wholesaler_client(api_client, wholesaler):
    api_client.force_authenticate(user=wholesaler)
    return api_client


@pytest.fixture
def retailer_client(api_client, retailer):
    api_client.force_authenticate(user=retailer)
    return api_client


@pytest.fixture
def staff_client(api_client, staff_user):
    api_client.force_authenticate(user=staff_user)
    return api_client
