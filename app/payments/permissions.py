"""
Permission classes for the Stripe Connect API.

- IsWholesalerOrStaff: A wholesaler acting on their own Connect account
- IsOrderParticipant: The order's wholesaler or retailer

Staff pass both checks. Views load the object first and call
check_object_permissions(request, obj).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rest_framework import permissions

if TYPE_CHECKING:
    from rest_framework.request import Request
    from rest_framework.views import APIView


class IsWholesalerOrStaff(permissions.BasePermission):
    """Object is a wholesaler User; only that user or staff may act on it."""

    message = "You can only manage your own Stripe account."

    def has_object_permission(self, request: Request, view: APIView, obj) -> bool:
        user = request.user
        return bool(user.is_staff or user.pk == obj.pk)


class IsOrderParticipant(permissions.BasePermission):
    message = "You are not a participant in this order."

    def has_object_permission(self, request: Request, view: APIView, obj) -> bool:
        user = request.user
        if user.is_staff:
            return True
        return user.pk in (obj.wholesaler_id, obj.retailer_id)
