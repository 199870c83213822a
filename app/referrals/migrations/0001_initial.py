import uuid
from decimal import Decimal

import django.core.validators
import django.db.models.deletion
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


def percent_field(default, help_text):
    return models.DecimalField(
        decimal_places=2,
        default=Decimal(default),
        help_text=help_text,
        max_digits=5,
        validators=[
            django.core.validators.MinValueValidator(Decimal("0")),
            django.core.validators.MaxValueValidator(Decimal("100")),
        ],
    )


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("bookings", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="ReferralSettings",
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
            ]
            + timestamp_fields()
            + [
                ("version", models.PositiveIntegerField(default=1, help_text="Incremented on each save")),
                ("trip_service_fee", percent_field("20.00", "Service fee % for trips")),
                ("trip_commission_rate", percent_field("5.00", "Commission % for trips")),
                ("event_service_fee", percent_field("20.00", "Service fee % for events")),
                ("event_commission_rate", percent_field("5.00", "Commission % for events")),
                ("hotel_service_fee", percent_field("20.00", "Service fee % for hotels")),
                ("hotel_commission_rate", percent_field("5.00", "Commission % for hotels")),
                (
                    "adventure_place_service_fee",
                    percent_field("20.00", "Service fee % for adventure places"),
                ),
                (
                    "adventure_place_commission_rate",
                    percent_field("5.00", "Commission % for adventure places"),
                ),
                ("attraction_service_fee", percent_field("20.00", "Service fee % for attractions")),
                (
                    "attraction_commission_rate",
                    percent_field("5.00", "Commission % for attractions"),
                ),
            ],
            options={
                "verbose_name": "Referral Settings",
                "verbose_name_plural": "Referral Settings",
            },
        ),
        migrations.CreateModel(
            name="ReferralTracking",
            fields=timestamp_fields()
            + [
                uuid_pk(),
                ("item_id", models.UUIDField()),
                ("item_type", models.CharField(default="unknown", max_length=30)),
                ("referral_type", models.CharField(default="booking", max_length=30)),
                (
                    "status",
                    models.CharField(
                        choices=[("pending", "Pending"), ("converted", "Converted")],
                        db_index=True,
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("converted_at", models.DateTimeField(blank=True, null=True)),
                (
                    "referred_user",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="referred_trackings",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "referrer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="referral_trackings",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Referral Tracking",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="ReferralCommission",
            fields=timestamp_fields()
            + [
                uuid_pk(),
                ("booking_amount", models.DecimalField(decimal_places=2, max_digits=12)),
                ("service_fee_rate", models.DecimalField(decimal_places=2, max_digits=5)),
                ("commission_rate", models.DecimalField(decimal_places=2, max_digits=5)),
                ("commission_amount", models.DecimalField(decimal_places=2, max_digits=12)),
                (
                    "status",
                    models.CharField(
                        choices=[("pending", "Pending"), ("paid", "Paid")],
                        db_index=True,
                        default="paid",
                        max_length=20,
                    ),
                ),
                ("paid_at", models.DateTimeField(blank=True, null=True)),
                (
                    "booking",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="referral_commission",
                        to="bookings.booking",
                    ),
                ),
                (
                    "referral_tracking",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="commissions",
                        to="referrals.referraltracking",
                    ),
                ),
                (
                    "referrer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="referral_commissions",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Referral Commission",
                "ordering": ["-created_at"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("commission_amount__gte", 0)),
                        name="referral_commission_non_negative",
                    )
                ],
            },
        ),
    ]
