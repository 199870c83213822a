import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("payments", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Booking",
            fields=[
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
                ("item_id", models.UUIDField(db_index=True)),
                (
                    "booking_type",
                    models.CharField(
                        choices=[
                            ("trip", "Trip"),
                            ("event", "Event"),
                            ("hotel", "Hotel"),
                            ("adventure_place", "Adventure Place"),
                            ("attraction", "Attraction"),
                        ],
                        db_index=True,
                        max_length=20,
                    ),
                ),
                ("item_name", models.CharField(blank=True, default="", max_length=200)),
                ("is_guest_booking", models.BooleanField(default=False)),
                ("guest_name", models.CharField(blank=True, default="", max_length=100)),
                ("guest_email", models.EmailField(blank=True, default="", max_length=254)),
                ("guest_phone", models.CharField(blank=True, default="", max_length=20)),
                ("visit_date", models.DateField(blank=True, null=True)),
                ("slots_booked", models.PositiveIntegerField(default=1)),
                ("booking_details", models.JSONField(blank=True, default=dict)),
                ("total_amount", models.DecimalField(decimal_places=2, max_digits=12)),
                (
                    "status",
                    models.CharField(
                        choices=[("pending", "Pending"), ("confirmed", "Confirmed")],
                        default="confirmed",
                        max_length=20,
                    ),
                ),
                (
                    "payment_status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("completed", "Completed"),
                            ("paid", "Paid"),
                        ],
                        default="pending",
                        max_length=20,
                    ),
                ),
                (
                    "payment_method",
                    models.CharField(
                        blank=True,
                        choices=[("mpesa", "M-Pesa"), ("card", "Card"), ("free", "Free")],
                        default="",
                        max_length=20,
                    ),
                ),
                (
                    "checkout_reference",
                    models.CharField(
                        blank=True,
                        help_text="Gateway reference of the payment that created this booking",
                        max_length=100,
                        null=True,
                        unique=True,
                    ),
                ),
                (
                    "service_fee_amount",
                    models.DecimalField(decimal_places=2, default=0, max_digits=12),
                ),
                (
                    "host_payout_amount",
                    models.DecimalField(decimal_places=2, default=0, max_digits=12),
                ),
                (
                    "payout_status",
                    models.CharField(
                        choices=[
                            ("none", "None"),
                            ("scheduled", "Scheduled"),
                            ("processing", "Processing"),
                            ("ready", "Ready"),
                            ("completed", "Completed"),
                            ("failed", "Failed"),
                        ],
                        db_index=True,
                        default="none",
                        max_length=20,
                    ),
                ),
                (
                    "payout_scheduled_at",
                    models.DateTimeField(blank=True, db_index=True, null=True),
                ),
                ("payout_reference", models.CharField(blank=True, default="", max_length=100)),
                ("payout_processed_at", models.DateTimeField(blank=True, null=True)),
                ("referral_tracking_id", models.UUIDField(blank=True, null=True)),
                (
                    "host",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="hosted_bookings",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "pending_payment",
                    models.OneToOneField(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="booking",
                        to="payments.pendingpayment",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="bookings",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Booking",
                "verbose_name_plural": "Bookings",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["host", "payout_status"], name="booking_host_payout_idx"
                    ),
                    models.Index(
                        fields=["payout_status", "payout_scheduled_at"],
                        name="booking_payout_due_idx",
                    ),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(
                            (
                                "total_amount",
                                models.F("service_fee_amount") + models.F("host_payout_amount"),
                            )
                        ),
                        name="booking_settlement_split_balances",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("total_amount__gte", 0)),
                        name="booking_total_non_negative",
                    ),
                ],
            },
        ),
    ]
