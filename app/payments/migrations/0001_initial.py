import uuid

import django.db.models.deletion
import django_fsm
from django.conf import settings
from django.db import migrations, models


def timestamp_fields():
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
                auto_now=True, help_text="Timestamp when this record was last modified"
            ),
        ),
    ]


def uuid_pk():
    return (
        "id",
        models.UUIDField(
            default=uuid.uuid4,
            editable=False,
            help_text="Unique identifier for this record",
            primary_key=True,
            serialize=False,
        ),
    )


def auto_pk():
    return (
        "id",
        models.BigAutoField(
            auto_created=True, primary_key=True, serialize=False, verbose_name="ID"
        ),
    )


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="PendingPayment",
            fields=timestamp_fields()
            + [
                uuid_pk(),
                (
                    "checkout_reference",
                    models.CharField(
                        help_text="Gateway checkout/transaction reference",
                        max_length=100,
                        unique=True,
                    ),
                ),
                ("merchant_request_id", models.CharField(blank=True, default="", max_length=100)),
                (
                    "provider",
                    models.CharField(
                        choices=[("mpesa", "M-Pesa"), ("paystack", "Paystack")],
                        db_index=True,
                        max_length=20,
                    ),
                ),
                ("phone_number", models.CharField(blank=True, default="", max_length=20)),
                ("email", models.EmailField(blank=True, default="", max_length=254)),
                ("amount", models.DecimalField(decimal_places=2, max_digits=12)),
                ("currency", models.CharField(default="KES", max_length=3)),
                (
                    "status",
                    django_fsm.FSMField(
                        choices=[
                            ("pending", "Pending"),
                            ("completed", "Completed"),
                            ("failed", "Failed"),
                        ],
                        db_index=True,
                        default="pending",
                        help_text="Current payment status (managed by FSM)",
                        max_length=50,
                        protected=True,
                    ),
                ),
                (
                    "booking_payload",
                    models.JSONField(
                        blank=True,
                        default=dict,
                        help_text="Serialized booking request, materialized on success",
                    ),
                ),
                ("result_code", models.CharField(blank=True, default="", max_length=50)),
                ("result_desc", models.TextField(blank=True, default="")),
                ("receipt_number", models.CharField(blank=True, default="", max_length=100)),
                ("access_code", models.CharField(blank=True, default="", max_length=100)),
                ("authorization_url", models.URLField(blank=True, default="", max_length=500)),
                ("confirmed_at", models.DateTimeField(blank=True, null=True)),
                (
                    "user",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="pending_payments",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Pending Payment",
                "verbose_name_plural": "Pending Payments",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["provider", "status"], name="pending_provider_status_idx"
                    )
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("amount__gte", 0)),
                        name="pending_payment_amount_non_negative",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="Payout",
            fields=timestamp_fields()
            + [
                uuid_pk(),
                ("version", models.PositiveIntegerField(default=1, help_text="Incremented on each save")),
                (
                    "recipient_type",
                    models.CharField(
                        choices=[("host", "Host"), ("referrer", "Referrer")],
                        db_index=True,
                        max_length=20,
                    ),
                ),
                ("amount", models.DecimalField(decimal_places=2, max_digits=12)),
                ("currency", models.CharField(default="KES", max_length=3)),
                (
                    "state",
                    django_fsm.FSMField(
                        choices=[
                            ("pending", "Pending"),
                            ("scheduled", "Scheduled"),
                            ("processing", "Processing"),
                            ("completed", "Completed"),
                            ("failed", "Failed"),
                        ],
                        db_index=True,
                        default="pending",
                        help_text="Current state of the payout (managed by FSM)",
                        max_length=50,
                        protected=True,
                    ),
                ),
                (
                    "scheduled_for",
                    models.DateTimeField(
                        blank=True,
                        db_index=True,
                        help_text="When the payout becomes due",
                        null=True,
                    ),
                ),
                ("bank_name", models.CharField(blank=True, default="", max_length=100)),
                ("bank_code", models.CharField(blank=True, default="", max_length=100)),
                ("account_number", models.CharField(blank=True, default="", max_length=50)),
                ("account_name", models.CharField(blank=True, default="", max_length=150)),
                ("recipient_code", models.CharField(blank=True, default="", max_length=100)),
                (
                    "reference",
                    models.CharField(
                        blank=True,
                        help_text="Our transfer reference (payout_<hex> / withdraw_<hex>)",
                        max_length=100,
                        null=True,
                        unique=True,
                    ),
                ),
                (
                    "transfer_code",
                    models.CharField(
                        blank=True,
                        help_text="Paystack transfer code (TRF_xxx)",
                        max_length=100,
                        null=True,
                        unique=True,
                    ),
                ),
                ("failure_reason", models.TextField(blank=True, default="")),
                ("processed_at", models.DateTimeField(blank=True, null=True)),
                ("failed_at", models.DateTimeField(blank=True, null=True)),
                (
                    "recipient",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payouts",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Payout",
                "verbose_name_plural": "Payouts",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["state", "scheduled_for"], name="payout_state_due_idx"
                    ),
                    models.Index(
                        fields=["recipient", "recipient_type", "state"],
                        name="payout_recipient_state_idx",
                    ),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("amount__gt", 0)),
                        name="payout_amount_positive",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="BankDetails",
            fields=[auto_pk()]
            + timestamp_fields()
            + [
                ("bank_name", models.CharField(max_length=100)),
                ("account_number", models.CharField(max_length=50)),
                ("account_holder_name", models.CharField(max_length=150)),
                (
                    "verification_status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("verified", "Verified"),
                            ("rejected", "Rejected"),
                        ],
                        db_index=True,
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("verified_at", models.DateTimeField(blank=True, null=True)),
                (
                    "user",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="bank_details",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Bank Details",
                "verbose_name_plural": "Bank Details",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="TransferRecipient",
            fields=[auto_pk()]
            + timestamp_fields()
            + [
                ("recipient_code", models.CharField(max_length=100)),
                ("account_name", models.CharField(max_length=150)),
                ("account_number", models.CharField(max_length=50)),
                ("bank_code", models.CharField(max_length=100)),
                ("bank_name", models.CharField(blank=True, default="", max_length=100)),
                (
                    "user",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="transfer_recipient",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Transfer Recipient",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="WebhookEvent",
            fields=timestamp_fields()
            + [
                uuid_pk(),
                (
                    "event_key",
                    models.CharField(
                        help_text="'{event}:{reference}' - unique constraint for idempotency",
                        max_length=255,
                        unique=True,
                    ),
                ),
                (
                    "event_type",
                    models.CharField(
                        db_index=True,
                        help_text="Gateway event type (e.g., 'transfer.success')",
                        max_length=100,
                    ),
                ),
                ("payload", models.JSONField(help_text="Full webhook payload (JSON)")),
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
                (
                    "retry_count",
                    models.PositiveSmallIntegerField(
                        default=0, help_text="Number of processing attempts"
                    ),
                ),
            ],
            options={
                "verbose_name": "Webhook Event",
                "verbose_name_plural": "Webhook Events",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["status", "created_at"], name="webhook_status_created_idx"
                    ),
                    models.Index(
                        fields=["status", "retry_count"], name="webhook_status_retry_idx"
                    ),
                ],
            },
        ),
    ]
