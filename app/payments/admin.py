"""
Payment admin configuration.

Transfers and audit rows are read-only here. State changes go through the
service layer, which the admin actions call.
"""

from django.contrib import admin, messages

from payments.fees import format_amount
from payments.models import ConnectedAccount, PaymentCalculation, Transfer, WebhookEvent
from payments.services import TransferService
from payments.state_machines import TransferStatus, WebhookEventStatus

__all__ = [
    "ConnectedAccountAdmin",
    "PaymentCalculationAdmin",
    "TransferAdmin",
    "WebhookEventAdmin",
]


def _money(cents: int, currency: str) -> str:
    return f"{format_amount(cents)} {currency.upper()}"


@admin.register(ConnectedAccount)
class ConnectedAccountAdmin(admin.ModelAdmin):
    """Stripe Express accounts of wholesalers, as last reported by Stripe."""

    list_display = [
        "stripe_account_id",
        "wholesaler",
        "onboarding_status",
        "onboarding_completed",
        "charges_enabled",
        "payouts_enabled",
        "created_at",
    ]
    list_filter = ["onboarding_status", "onboarding_completed", "payouts_enabled"]
    search_fields = ["stripe_account_id", "wholesaler__email", "wholesaler__business_name"]
    raw_id_fields = ["wholesaler"]
    readonly_fields = [
        "id",
        "stripe_account_id",
        "details_submitted",
        "charges_enabled",
        "payouts_enabled",
        "capabilities",
        "requirements_due",
        "version",
        "created_at",
        "updated_at",
    ]
    ordering = ["-created_at"]

    fieldsets = (
        (None, {"fields": ("id", "wholesaler", "stripe_account_id", "country")}),
        (
            "Status",
            {
                "fields": (
                    "onboarding_status",
                    "onboarding_completed",
                    "details_submitted",
                    "charges_enabled",
                    "payouts_enabled",
                ),
            },
        ),
        (
            "Stripe Details",
            {"fields": ("capabilities", "requirements_due")},
        ),
        (
            "Metadata",
            {"fields": ("metadata", "version"), "classes": ("collapse",)},
        ),
        ("Timestamps", {"fields": ("created_at", "updated_at")}),
    )


@admin.register(Transfer)
class TransferAdmin(admin.ModelAdmin):
    """
    Wholesaler transfers, one per PaymentIntent.

    Failed transfers can be retried with the admin action, which runs the
    same path as the process-payment endpoint.
    """

    list_display = [
        "stripe_payment_intent_id",
        "order",
        "wholesaler",
        "amount_display",
        "status",
        "attempt_count",
        "transferred_at",
        "created_at",
    ]
    list_filter = ["status", "currency", "created_at"]
    search_fields = [
        "stripe_payment_intent_id",
        "stripe_transfer_id",
        "destination_account",
        "wholesaler__email",
    ]
    raw_id_fields = ["order", "wholesaler"]
    readonly_fields = [
        "id",
        "stripe_payment_intent_id",
        "stripe_transfer_id",
        "destination_account",
        "amount_cents",
        "platform_fee_cents",
        "delivery_fee_cents",
        "currency",
        "status",
        "failure_reason",
        "failure_retryable",
        "attempt_count",
        "transferred_at",
        "version",
        "created_at",
        "updated_at",
    ]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]
    actions = ["retry_failed_transfers"]

    fieldsets = (
        (None, {"fields": ("id", "order", "wholesaler", "status")}),
        (
            "Amount",
            {
                "fields": (
                    "amount_cents",
                    "platform_fee_cents",
                    "delivery_fee_cents",
                    "currency",
                ),
            },
        ),
        (
            "Stripe Details",
            {
                "fields": (
                    "stripe_payment_intent_id",
                    "stripe_transfer_id",
                    "destination_account",
                    "attempt_count",
                    "transferred_at",
                ),
            },
        ),
        (
            "Failure Info",
            {"fields": ("failure_reason", "failure_retryable"), "classes": ("collapse",)},
        ),
        (
            "Metadata",
            {"fields": ("metadata", "version"), "classes": ("collapse",)},
        ),
        ("Timestamps", {"fields": ("created_at", "updated_at")}),
    )

    @admin.display(description="Amount")
    def amount_display(self, obj: Transfer) -> str:
        return _money(obj.amount_cents, obj.currency)

    @admin.action(description="Retry failed transfers")
    def retry_failed_transfers(self, request, queryset):
        retried = failed = 0
        for transfer in queryset.filter(status=TransferStatus.FAILED):
            result = TransferService.process_complete_payment(
                transfer.stripe_payment_intent_id,
                order_id=transfer.order_id,
            )
            if result.success:
                retried += 1
            else:
                failed += 1
                self.message_user(
                    request,
                    f"{transfer.stripe_payment_intent_id}: {result.error}",
                    level=messages.ERROR,
                )
        self.message_user(request, f"Retried {retried} transfer(s), {failed} failed.")

    def has_delete_permission(self, request, obj=None) -> bool:
        return False

    def has_add_permission(self, request) -> bool:
        return False


@admin.register(PaymentCalculation)
class PaymentCalculationAdmin(admin.ModelAdmin):
    """Immutable fee breakdowns recorded per PaymentIntent."""

    list_display = [
        "stripe_payment_intent_id",
        "order",
        "total_display",
        "wholesaler_share_display",
        "platform_total_display",
        "created_at",
    ]
    search_fields = ["stripe_payment_intent_id", "order__id"]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]

    @admin.display(description="Total")
    def total_display(self, obj: PaymentCalculation) -> str:
        return _money(obj.total_amount_cents, obj.currency)

    @admin.display(description="Wholesaler share")
    def wholesaler_share_display(self, obj: PaymentCalculation) -> str:
        return _money(obj.wholesaler_share_cents, obj.currency)

    @admin.display(description="Platform total")
    def platform_total_display(self, obj: PaymentCalculation) -> str:
        return _money(obj.platform_total_cents, obj.currency)

    def get_readonly_fields(self, request, obj=None):
        return [f.name for f in self.model._meta.fields]

    def has_add_permission(self, request) -> bool:
        return False

    def has_change_permission(self, request, obj=None) -> bool:
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        return False


@admin.register(WebhookEvent)
class WebhookEventAdmin(admin.ModelAdmin):
    """Stored Stripe events and their processing status."""

    list_display = [
        "stripe_event_id",
        "event_type",
        "status",
        "retry_count",
        "processed_at",
        "created_at",
    ]
    list_filter = ["status", "event_type", "created_at"]
    search_fields = ["stripe_event_id", "event_type"]
    readonly_fields = [
        "id",
        "stripe_event_id",
        "event_type",
        "payload",
        "status",
        "processed_at",
        "retry_count",
        "error_message",
        "created_at",
        "updated_at",
    ]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]
    actions = ["requeue_events"]

    @admin.action(description="Queue selected events for processing")
    def requeue_events(self, request, queryset):
        from payments.tasks import process_webhook_event

        queued = 0
        for event in queryset.exclude(status=WebhookEventStatus.PROCESSED):
            process_webhook_event.delay(str(event.id))
            queued += 1
        self.message_user(request, f"Queued {queued} event(s).")

    def has_delete_permission(self, request, obj=None) -> bool:
        return False

    def has_add_permission(self, request) -> bool:
        return False
