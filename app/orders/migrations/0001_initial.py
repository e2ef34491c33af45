import django.db.models.deletion
import django_fsm
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Order",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
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
                ("customer_name", models.CharField(blank=True, max_length=255)),
                ("customer_email", models.EmailField(blank=True, max_length=254)),
                ("customer_phone", models.CharField(blank=True, max_length=32)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("processing", "Processing"),
                            ("shipped", "Shipped"),
                            ("completed", "Completed"),
                            ("cancelled", "Cancelled"),
                        ],
                        db_index=True,
                        default="pending",
                        max_length=20,
                    ),
                ),
                (
                    "subtotal_cents",
                    models.PositiveBigIntegerField(
                        help_text="Product subtotal in smallest currency unit"
                    ),
                ),
                (
                    "delivery_cost_cents",
                    models.PositiveBigIntegerField(
                        default=0, help_text="Delivery fee charged to the customer"
                    ),
                ),
                (
                    "platform_fee_cents",
                    models.PositiveBigIntegerField(
                        default=0,
                        help_text="Total retained by the platform, set when the payment intent is issued",
                    ),
                ),
                (
                    "total_cents",
                    models.PositiveBigIntegerField(
                        default=0,
                        help_text="Amount charged to the customer, set when the payment intent is issued",
                    ),
                ),
                (
                    "currency",
                    models.CharField(
                        default="gbp",
                        help_text="ISO 4217 currency code (lowercase)",
                        max_length=3,
                    ),
                ),
                (
                    "stripe_payment_intent_id",
                    models.CharField(
                        blank=True,
                        help_text="Stripe PaymentIntent ID (pi_xxx)",
                        max_length=255,
                        null=True,
                        unique=True,
                    ),
                ),
                (
                    "payment_status",
                    django_fsm.FSMField(
                        choices=[
                            ("unpaid", "Unpaid"),
                            ("paid", "Paid"),
                            ("transferred", "Transferred"),
                            ("transfer_failed", "Transfer Failed"),
                        ],
                        db_index=True,
                        default="unpaid",
                        help_text="Payment lifecycle state (managed by FSM)",
                        max_length=50,
                        protected=True,
                    ),
                ),
                ("paid_at", models.DateTimeField(blank=True, null=True)),
                ("transferred_at", models.DateTimeField(blank=True, null=True)),
                (
                    "version",
                    models.PositiveIntegerField(
                        default=1,
                        help_text="Version for optimistic locking - incremented on each save",
                    ),
                ),
                (
                    "wholesaler",
                    models.ForeignKey(
                        help_text="Wholesaler fulfilling the order",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="orders_received",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "retailer",
                    models.ForeignKey(
                        blank=True,
                        help_text="Retailer account that placed the order, if signed in",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="orders_placed",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["wholesaler", "payment_status"],
                        name="order_wholesaler_status_idx",
                    )
                ],
                "constraints": [
                    models.CheckConstraint(
                        check=models.Q(("subtotal_cents__gt", 0)),
                        name="order_subtotal_positive",
                    )
                ],
            },
        ),
    ]
