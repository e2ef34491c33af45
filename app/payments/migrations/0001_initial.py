import uuid

import django.db.models.deletion
import django_fsm
from django.conf import settings
from django.db import migrations, models


def _timestamps():
    return [
        (
            "created_at",
            models.DateTimeField(
                auto_now_add=True,
                db_index=True,
                help_text="Timestamp when this record was created",
            ),
        ),
        (
            "updated_at",
            models.DateTimeField(
                auto_now=True,
                help_text="Timestamp when this record was last modified",
            ),
        ),
        (
            "id",
            models.UUIDField(
                default=uuid.uuid4,
                editable=False,
                help_text="Unique identifier for this record",
                primary_key=True,
                serialize=False,
            ),
        ),
    ]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("orders", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="ConnectedAccount",
            fields=_timestamps()
            + [
                (
                    "stripe_account_id",
                    models.CharField(
                        db_index=True,
                        help_text="Stripe Account ID (acct_xxx)",
                        max_length=255,
                        unique=True,
                    ),
                ),
                (
                    "onboarding_status",
                    models.CharField(
                        choices=[
                            ("not_started", "Not Started"),
                            ("in_progress", "In Progress"),
                            ("complete", "Complete"),
                            ("rejected", "Rejected"),
                        ],
                        db_index=True,
                        default="not_started",
                        help_text="Current Stripe Connect onboarding status",
                        max_length=20,
                    ),
                ),
                (
                    "onboarding_completed",
                    models.BooleanField(
                        default=False,
                        help_text="Whether the account can receive transfers",
                    ),
                ),
                ("details_submitted", models.BooleanField(default=False)),
                ("charges_enabled", models.BooleanField(default=False)),
                ("payouts_enabled", models.BooleanField(default=False)),
                (
                    "capabilities",
                    models.JSONField(
                        blank=True,
                        default=dict,
                        help_text="Capability statuses as reported by Stripe",
                    ),
                ),
                (
                    "requirements_due",
                    models.JSONField(
                        blank=True,
                        default=None,
                        help_text="Requirements Stripe lists as currently due; null until reported",
                        null=True,
                    ),
                ),
                ("country", models.CharField(blank=True, max_length=2)),
                (
                    "version",
                    models.PositiveIntegerField(
                        default=1,
                        help_text="Version for optimistic locking - incremented on each save",
                    ),
                ),
                ("metadata", models.JSONField(blank=True, default=dict)),
                (
                    "wholesaler",
                    models.OneToOneField(
                        help_text="Wholesaler this connected account belongs to",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="connected_account",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Connected Account",
                "verbose_name_plural": "Connected Accounts",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="PaymentCalculation",
            fields=_timestamps()
            + [
                (
                    "stripe_payment_intent_id",
                    models.CharField(
                        help_text="Stripe PaymentIntent ID (pi_xxx)",
                        max_length=255,
                        unique=True,
                    ),
                ),
                ("total_amount_cents", models.PositiveBigIntegerField()),
                ("product_subtotal_cents", models.PositiveBigIntegerField()),
                ("delivery_fee_cents", models.PositiveBigIntegerField(default=0)),
                ("transaction_fee_cents", models.PositiveBigIntegerField(default=0)),
                (
                    "customer_platform_fee_cents",
                    models.PositiveBigIntegerField(default=0),
                ),
                (
                    "wholesaler_platform_fee_cents",
                    models.PositiveBigIntegerField(default=0),
                ),
                ("platform_total_cents", models.PositiveBigIntegerField()),
                ("wholesaler_share_cents", models.PositiveBigIntegerField()),
                (
                    "customer_platform_fee_rate",
                    models.DecimalField(decimal_places=4, max_digits=5),
                ),
                (
                    "wholesaler_platform_fee_rate",
                    models.DecimalField(decimal_places=4, max_digits=5),
                ),
                ("currency", models.CharField(default="gbp", max_length=3)),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payment_calculations",
                        to="orders.order",
                    ),
                ),
            ],
            options={
                "verbose_name": "Payment Calculation",
                "verbose_name_plural": "Payment Calculations",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="Transfer",
            fields=_timestamps()
            + [
                (
                    "stripe_payment_intent_id",
                    models.CharField(
                        help_text="Stripe PaymentIntent ID (pi_xxx) - one transfer per intent",
                        max_length=255,
                        unique=True,
                    ),
                ),
                (
                    "stripe_transfer_id",
                    models.CharField(
                        blank=True,
                        help_text="Stripe Transfer ID (tr_xxx)",
                        max_length=255,
                        null=True,
                        unique=True,
                    ),
                ),
                (
                    "destination_account",
                    models.CharField(
                        help_text="Connected account the funds were sent to (acct_xxx)",
                        max_length=255,
                    ),
                ),
                (
                    "amount_cents",
                    models.PositiveBigIntegerField(
                        help_text="Wholesaler share in smallest currency unit"
                    ),
                ),
                ("platform_fee_cents", models.PositiveBigIntegerField(default=0)),
                ("delivery_fee_cents", models.PositiveBigIntegerField(default=0)),
                ("currency", models.CharField(default="gbp", max_length=3)),
                (
                    "status",
                    django_fsm.FSMField(
                        choices=[
                            ("pending", "Pending"),
                            ("succeeded", "Succeeded"),
                            ("failed", "Failed"),
                        ],
                        db_index=True,
                        default="pending",
                        help_text="Current transfer status (managed by FSM)",
                        max_length=50,
                        protected=True,
                    ),
                ),
                ("failure_reason", models.TextField(blank=True, null=True)),
                (
                    "failure_retryable",
                    models.BooleanField(
                        default=False,
                        help_text="Last failure was transient; Stripe may already hold the transfer",
                    ),
                ),
                ("attempt_count", models.PositiveSmallIntegerField(default=0)),
                ("transferred_at", models.DateTimeField(blank=True, null=True)),
                (
                    "version",
                    models.PositiveIntegerField(
                        default=1,
                        help_text="Version for optimistic locking - incremented on each save",
                    ),
                ),
                ("metadata", models.JSONField(blank=True, default=dict)),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="transfers",
                        to="orders.order",
                    ),
                ),
                (
                    "wholesaler",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="transfers",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Transfer",
                "verbose_name_plural": "Transfers",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["wholesaler", "status"],
                        name="payments_tr_wholesa_5c1f0d_idx",
                    ),
                    models.Index(
                        fields=["order", "status"],
                        name="payments_tr_order_i_8a2e47_idx",
                    ),
                ],
                "constraints": [
                    models.CheckConstraint(
                        check=models.Q(("amount_cents__gt", 0)),
                        name="transfer_amount_positive",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="WebhookEvent",
            fields=_timestamps()
            + [
                (
                    "stripe_event_id",
                    models.CharField(
                        db_index=True,
                        help_text="Stripe Event ID (evt_xxx) - unique constraint for idempotency",
                        max_length=255,
                        unique=True,
                    ),
                ),
                ("event_type", models.CharField(db_index=True, max_length=100)),
                (
                    "payload",
                    models.JSONField(help_text="Full webhook payload from Stripe"),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("processing", "Processing"),
                            ("processed", "Processed"),
                            ("failed", "Failed"),
                        ],
                        db_index=True,
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("processed_at", models.DateTimeField(blank=True, null=True)),
                ("error_message", models.TextField(blank=True, null=True)),
                ("retry_count", models.PositiveSmallIntegerField(default=0)),
            ],
            options={
                "verbose_name": "Webhook Event",
                "verbose_name_plural": "Webhook Events",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["status", "created_at"],
                        name="payments_we_status_3b9d61_idx",
                    ),
                    models.Index(
                        fields=["status", "retry_count"],
                        name="payments_we_status_f07c2a_idx",
                    ),
                ],
            },
        ),
    ]
