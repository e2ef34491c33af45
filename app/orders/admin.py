"""
Django admin configuration for orders.
"""

from django.contrib import admin

from orders.models import Order


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    """Read-mostly view of orders and their payment lifecycle."""

    list_display = [
        "id",
        "wholesaler",
        "customer_email",
        "subtotal_cents",
        "total_cents",
        "status",
        "payment_status",
        "created_at",
    ]
    list_filter = ["status", "payment_status", "created_at"]
    search_fields = [
        "id",
        "customer_email",
        "customer_name",
        "stripe_payment_intent_id",
        "wholesaler__email",
    ]
    raw_id_fields = ["wholesaler", "retailer"]
    readonly_fields = [
        "payment_status",
        "stripe_payment_intent_id",
        "platform_fee_cents",
        "total_cents",
        "paid_at",
        "transferred_at",
        "version",
        "created_at",
        "updated_at",
    ]
