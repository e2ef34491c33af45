"""
Tests for the Order payment_status state machine.

State Flow:
    UNPAID -> PAID -> TRANSFERRED
    PAID -> TRANSFER_FAILED -> TRANSFERRED
"""

import pytest
from django_fsm import TransitionNotAllowed

from orders.models import Order, OrderPaymentStatus
from orders.tests.factories import OrderFactory


@pytest.mark.django_db
class TestOrderPaymentTransitions:
    def test_mark_paid(self):
        """UNPAID -> PAID stamps paid_at."""
        order = OrderFactory()

        order.mark_paid()
        order.save()

        order = Order.objects.get(pk=order.pk)
        assert order.payment_status == OrderPaymentStatus.PAID
        assert order.paid_at is not None

    def test_mark_transferred_from_paid(self):
        """PAID -> TRANSFERRED stamps transferred_at."""
        order = OrderFactory(payment_status=OrderPaymentStatus.PAID)

        order.mark_transferred()
        order.save()

        assert order.payment_status == OrderPaymentStatus.TRANSFERRED
        assert order.transferred_at is not None

    def test_mark_transfer_failed(self):
        """PAID -> TRANSFER_FAILED."""
        order = OrderFactory(payment_status=OrderPaymentStatus.PAID)

        order.mark_transfer_failed()

        assert order.payment_status == OrderPaymentStatus.TRANSFER_FAILED

    def test_manual_retry_after_failure(self):
        """TRANSFER_FAILED -> TRANSFERRED after a manual retry."""
        order = OrderFactory(payment_status=OrderPaymentStatus.TRANSFER_FAILED)

        order.mark_transferred()

        assert order.payment_status == OrderPaymentStatus.TRANSFERRED

    def test_cannot_transfer_unpaid(self):
        """Unpaid orders cannot be marked transferred."""
        order = OrderFactory()

        with pytest.raises(TransitionNotAllowed):
            order.mark_transferred()

    def test_cannot_pay_twice(self):
        """PAID -> PAID is not allowed."""
        order = OrderFactory(payment_status=OrderPaymentStatus.PAID)

        with pytest.raises(TransitionNotAllowed):
            order.mark_paid()

    def test_status_is_protected(self):
        """payment_status cannot be assigned directly."""
        order = OrderFactory()

        with pytest.raises(AttributeError):
            order.payment_status = OrderPaymentStatus.TRANSFERRED
