"""
DRF views for the platform-first Stripe Connect API.

Endpoints (prefixed with /api/stripe-v2/):
    POST create-account/                 - Create a wholesaler's Express account
    POST create-account-link/            - Hosted onboarding link
    GET  account-status/<wholesaler_id>/ - Refresh and report account status
    POST calculate-payment/              - Payment split for given amounts
    POST create-payment-intent/          - Platform PaymentIntent for an order
    POST process-payment/                - Transfer a paid order's share now
    GET  platform-balance/               - Platform Stripe balance (staff)
    GET  recent-transfers/               - Recent Stripe transfers (staff)

The Stripe webhook lives in payments.webhooks.views.

Every response body carries ``success``. Failures add ``error`` and
``error_code``; Stripe outages are reported as 502.
"""

from __future__ import annotations

import logging

from django.contrib.auth import get_user_model
from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAdminUser, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.services import ServiceResult

from orders.models import Order
from payments.exceptions import PaymentValidationError, StripeError
from payments.fees import calculate_payment_split
from payments.permissions import IsOrderParticipant, IsWholesalerOrStaff
from payments.serializers import (
    BalanceSerializer,
    CalculatePaymentSerializer,
    ConnectedAccountSerializer,
    CreatePaymentIntentSerializer,
    ProcessPaymentSerializer,
    RecentTransfersQuerySerializer,
    StripeTransferSerializer,
    TransferSummarySerializer,
    WholesalerRequestSerializer,
)
from payments.services import (
    STRIPE_UNAVAILABLE,
    OnboardingService,
    PaymentIntentService,
    PaymentService,
    TransferService,
)

logger = logging.getLogger(__name__)


# Error codes that are not plain 400s
ERROR_STATUS = {
    "ORDER_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "ACCOUNT_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "WHOLESALER_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    STRIPE_UNAVAILABLE: status.HTTP_502_BAD_GATEWAY,
}


def failure_response(result: ServiceResult) -> Response:
    return Response(
        result.to_response(),
        status=ERROR_STATUS.get(result.error_code, status.HTTP_400_BAD_REQUEST),
    )


def invalid_response(errors) -> Response:
    return Response(
        {
            "success": False,
            "error": "Invalid request",
            "error_code": "VALIDATION_ERROR",
            "errors": errors,
        },
        status=status.HTTP_400_BAD_REQUEST,
    )


def not_found_response(message: str, error_code: str) -> Response:
    return failure_response(ServiceResult.failure(message, error_code=error_code))


class WholesalerAccountView(APIView):
    """Base for endpoints that act on one wholesaler's Connect account."""

    permission_classes = [IsAuthenticated, IsWholesalerOrStaff]

    def get_wholesaler(self, request, wholesaler_id):
        wholesaler = get_user_model().objects.filter(pk=wholesaler_id).first()
        if wholesaler:
            self.check_object_permissions(request, wholesaler)
        return wholesaler


# =============================================================================
# Onboarding
# =============================================================================


class CreateAccountView(WholesalerAccountView):
    """
    Create a Stripe Express account for a wholesaler.

    POST /api/stripe-v2/create-account/

    Response:
        200: {success, account_id, account}
        400: Account already exists or user is not a wholesaler
        404: Unknown wholesaler
    """

    @extend_schema(
        operation_id="create_connect_account",
        summary="Create Express account",
        request=WholesalerRequestSerializer,
        responses={
            200: OpenApiResponse(description="Account created"),
            400: OpenApiResponse(description="Account exists or not a wholesaler"),
            404: OpenApiResponse(description="Wholesaler not found"),
            502: OpenApiResponse(description="Stripe unavailable"),
        },
        tags=["Stripe Connect - Onboarding"],
    )
    def post(self, request):
        serializer = WholesalerRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_response(serializer.errors)

        wholesaler = self.get_wholesaler(
            request, serializer.validated_data["wholesaler_id"]
        )
        if not wholesaler:
            return not_found_response("Wholesaler not found", "WHOLESALER_NOT_FOUND")

        result = OnboardingService.create_express_account(wholesaler)
        if not result.success:
            return failure_response(result)

        account = result.data
        return Response(
            {
                "success": True,
                "account_id": account.stripe_account_id,
                "account": ConnectedAccountSerializer(account).data,
            }
        )


class CreateAccountLinkView(WholesalerAccountView):
    """
    Create a hosted onboarding link.

    POST /api/stripe-v2/create-account-link/
    """

    @extend_schema(
        operation_id="create_connect_account_link",
        summary="Create onboarding link",
        request=WholesalerRequestSerializer,
        responses={
            200: OpenApiResponse(description="{success, url, expires_at}"),
            404: OpenApiResponse(description="Wholesaler or account not found"),
            502: OpenApiResponse(description="Stripe unavailable"),
        },
        tags=["Stripe Connect - Onboarding"],
    )
    def post(self, request):
        serializer = WholesalerRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_response(serializer.errors)

        wholesaler = self.get_wholesaler(
            request, serializer.validated_data["wholesaler_id"]
        )
        if not wholesaler:
            return not_found_response("Wholesaler not found", "WHOLESALER_NOT_FOUND")

        result = OnboardingService.create_account_link(wholesaler)
        if not result.success:
            return failure_response(result)

        return Response(
            {
                "success": True,
                "url": result.data.url,
                "expires_at": result.data.expires_at,
            }
        )


class AccountStatusView(WholesalerAccountView):
    """
    Refresh a wholesaler's account from Stripe and report whether it can
    receive transfers.

    GET /api/stripe-v2/account-status/<wholesaler_id>/
    """

    @extend_schema(
        operation_id="get_connect_account_status",
        summary="Account status",
        responses={
            200: OpenApiResponse(description="Account status"),
            404: OpenApiResponse(description="Wholesaler or account not found"),
            502: OpenApiResponse(description="Stripe unavailable"),
        },
        tags=["Stripe Connect - Onboarding"],
    )
    def get(self, request, wholesaler_id: int):
        wholesaler = self.get_wholesaler(request, wholesaler_id)
        if not wholesaler:
            return not_found_response("Wholesaler not found", "WHOLESALER_NOT_FOUND")

        result = OnboardingService.check_account_status(wholesaler)
        if not result.success:
            return failure_response(result)

        account = result.data.account
        return Response(
            {
                "success": True,
                "account_id": account.stripe_account_id,
                "can_receive_transfers": result.data.can_receive_transfers,
                "requirements": result.data.requirements,
                "onboarding_completed": account.onboarding_completed,
                "account": ConnectedAccountSerializer(account).data,
            }
        )


# =============================================================================
# Payments
# =============================================================================


class CalculatePaymentView(APIView):
    """
    Compute the payment split for amounts in major units.

    POST /api/stripe-v2/calculate-payment/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="calculate_payment",
        summary="Calculate payment split",
        request=CalculatePaymentSerializer,
        responses={
            200: OpenApiResponse(description="{success, calculation}"),
            400: OpenApiResponse(description="Invalid amounts or rates"),
        },
        tags=["Stripe Connect - Payments"],
    )
    def post(self, request):
        serializer = CalculatePaymentSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_response(serializer.errors)

        split = serializer.validated_data["split"]
        return Response({"success": True, "calculation": split.as_dict()})


class CreatePaymentIntentView(APIView):
    """
    Issue the platform PaymentIntent for an order.

    POST /api/stripe-v2/create-payment-intent/

    The split is computed from the order's stored subtotal and delivery
    cost; amounts supplied by the client are never trusted.
    """

    permission_classes = [IsAuthenticated, IsOrderParticipant]

    @extend_schema(
        operation_id="create_platform_payment_intent",
        summary="Create platform payment intent",
        request=CreatePaymentIntentSerializer,
        responses={
            200: OpenApiResponse(
                description="{success, client_secret, payment_intent_id, amount, currency}"
            ),
            400: OpenApiResponse(description="Order already paid or invalid"),
            404: OpenApiResponse(description="Order not found"),
            502: OpenApiResponse(description="Stripe unavailable"),
        },
        tags=["Stripe Connect - Payments"],
    )
    def post(self, request):
        serializer = CreatePaymentIntentSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_response(serializer.errors)

        order = Order.objects.filter(pk=serializer.validated_data["order_id"]).first()
        if not order:
            return not_found_response("Order not found", "ORDER_NOT_FOUND")
        self.check_object_permissions(request, order)

        try:
            split = calculate_payment_split(
                order.subtotal_cents, order.delivery_cost_cents
            )
        except PaymentValidationError as e:
            return failure_response(ServiceResult.from_exception(e))

        result = PaymentIntentService.issue_payment_intent(
            split,
            order_id=order.pk,
            wholesaler_id=order.wholesaler_id,
            customer_id=order.customer_reference,
            extra_metadata=serializer.validated_data["metadata"],
        )
        if not result.success:
            return failure_response(result)

        intent = result.data
        return Response(
            {
                "success": True,
                "client_secret": intent.client_secret,
                "payment_intent_id": intent.payment_intent_id,
                "amount": intent.amount_cents,
                "currency": intent.currency,
            }
        )


class ProcessPaymentView(APIView):
    """
    Transfer the wholesaler's share for a succeeded PaymentIntent.

    POST /api/stripe-v2/process-payment/

    Safe to call after the webhook already transferred: the existing
    transfer is returned. A failed transfer is retried.
    """

    permission_classes = [IsAuthenticated, IsOrderParticipant]

    @extend_schema(
        operation_id="process_platform_payment",
        summary="Process payment and transfer share",
        request=ProcessPaymentSerializer,
        responses={
            200: OpenApiResponse(description="{success, transfer}"),
            400: OpenApiResponse(description="Payment or account not ready"),
            404: OpenApiResponse(description="Order or account not found"),
            502: OpenApiResponse(description="Stripe unavailable"),
        },
        tags=["Stripe Connect - Payments"],
    )
    def post(self, request):
        serializer = ProcessPaymentSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_response(serializer.errors)

        order = Order.objects.filter(pk=serializer.validated_data["order_id"]).first()
        if not order:
            return not_found_response("Order not found", "ORDER_NOT_FOUND")
        self.check_object_permissions(request, order)

        result = TransferService.process_complete_payment(
            serializer.validated_data["payment_intent_id"],
            order_id=order.pk,
        )
        if not result.success:
            return failure_response(result)

        return Response(
            {
                "success": True,
                "transfer": TransferSummarySerializer(result.data).data,
            }
        )


# =============================================================================
# Platform Reporting
# =============================================================================


class PlatformBalanceView(APIView):
    """GET /api/stripe-v2/platform-balance/"""

    permission_classes = [IsAdminUser]

    @extend_schema(
        operation_id="get_platform_balance",
        summary="Platform balance",
        responses={200: BalanceSerializer, 502: OpenApiResponse(description="Stripe unavailable")},
        tags=["Stripe Connect - Platform"],
    )
    def get(self, request):
        try:
            balance = PaymentService.get_stripe_adapter().retrieve_balance()
        except StripeError as e:
            return failure_response(
                PaymentService.stripe_failure(e, "Failed to retrieve platform balance")
            )

        return Response({"success": True, "balance": BalanceSerializer(balance).data})


class RecentTransfersView(APIView):
    """GET /api/stripe-v2/recent-transfers/?limit=10"""

    permission_classes = [IsAdminUser]

    @extend_schema(
        operation_id="list_recent_transfers",
        summary="Recent transfers",
        parameters=[RecentTransfersQuerySerializer],
        responses={
            200: StripeTransferSerializer(many=True),
            502: OpenApiResponse(description="Stripe unavailable"),
        },
        tags=["Stripe Connect - Platform"],
    )
    def get(self, request):
        query = RecentTransfersQuerySerializer(data=request.query_params)
        if not query.is_valid():
            return invalid_response(query.errors)

        try:
            transfers = PaymentService.get_stripe_adapter().list_transfers(
                limit=query.validated_data["limit"]
            )
        except StripeError as e:
            return failure_response(
                PaymentService.stripe_failure(e, "Failed to list transfers")
            )

        return Response(
            {
                "success": True,
                "transfers": StripeTransferSerializer(transfers, many=True).data,
            }
        )
