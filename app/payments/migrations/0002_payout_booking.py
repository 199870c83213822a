import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("bookings", "0001_initial"),
        ("payments", "0001_initial"),
    ]

    operations = [
        migrations.AddField(
            model_name="payout",
            name="booking",
            field=models.ForeignKey(
                blank=True,
                help_text="Booking this payout settles. Null for manual withdrawals.",
                null=True,
                on_delete=django.db.models.deletion.PROTECT,
                related_name="payouts",
                to="bookings.booking",
            ),
        ),
    ]
