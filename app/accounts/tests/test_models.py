"""
Tests for the accounts User model.
"""

import pytest

from accounts.models import User, UserRole
from accounts.tests.factories import UserFactory, WholesalerFactory


@pytest.mark.django_db
class TestUserModel:
    def test_defaults_to_retailer(self):
        """New users are retailers unless stated otherwise."""
        user = UserFactory()

        assert user.role == UserRole.RETAILER
        assert user.is_wholesaler is False

    def test_wholesaler_flag(self):
        """is_wholesaler follows the role."""
        assert WholesalerFactory().is_wholesaler is True

    def test_str_prefers_business_name(self):
        """Business name is shown when set."""
        user = WholesalerFactory(business_name="Fresh Farms Ltd")

        assert str(user) == "Fresh Farms Ltd"
        assert user.get_full_name() == "Fresh Farms Ltd"

    def test_str_falls_back_to_email(self):
        """Email is shown without a business name."""
        user = UserFactory(email="shop@example.com", business_name="")

        assert str(user) == "shop@example.com"
        assert user.get_short_name() == "shop"

    def test_stripe_account_id_without_account(self):
        """No connected account means no Stripe account ID."""
        assert WholesalerFactory().stripe_account_id is None

    def test_stripe_account_id_from_connected_account(self):
        """Stripe account ID comes from the connected account."""
        from payments.tests.factories import ConnectedAccountFactory

        wholesaler = WholesalerFactory()
        ConnectedAccountFactory(wholesaler=wholesaler, stripe_account_id="acct_123")

        wholesaler = User.objects.get(pk=wholesaler.pk)
        assert wholesaler.stripe_account_id == "acct_123"
