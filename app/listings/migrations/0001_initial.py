import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


def listing_fields(related_name):
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
        ("name", models.CharField(max_length=200)),
        ("email", models.EmailField(blank=True, max_length=254)),
        ("location", models.CharField(blank=True, max_length=255)),
        ("is_approved", models.BooleanField(default=False)),
        (
            "created_by",
            models.ForeignKey(
                help_text="Host who owns this listing",
                on_delete=django.db.models.deletion.PROTECT,
                related_name=related_name,
                to=settings.AUTH_USER_MODEL,
            ),
        ),
    ]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Trip",
            fields=listing_fields("trip_listings")
            + [
                ("is_event", models.BooleanField(default=False)),
                ("date", models.DateField(blank=True, null=True)),
            ],
            options={
                "verbose_name": "Trip",
                "ordering": ["-created_at"],
                "abstract": False,
            },
        ),
        migrations.CreateModel(
            name="Hotel",
            fields=listing_fields("hotel_listings"),
            options={
                "verbose_name": "Hotel",
                "ordering": ["-created_at"],
                "abstract": False,
            },
        ),
        migrations.CreateModel(
            name="AdventurePlace",
            fields=listing_fields("adventureplace_listings"),
            options={
                "verbose_name": "Adventure Place",
                "ordering": ["-created_at"],
                "abstract": False,
            },
        ),
        migrations.CreateModel(
            name="Attraction",
            fields=listing_fields("attraction_listings"),
            options={
                "verbose_name": "Attraction",
                "ordering": ["-created_at"],
                "abstract": False,
            },
        ),
    ]
