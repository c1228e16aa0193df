import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("courts", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Booking",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("guest_name", models.CharField(blank=True, max_length=200)),
                ("guest_email", models.EmailField(blank=True, max_length=254)),
                ("start", models.DateTimeField()),
                ("end", models.DateTimeField()),
                ("price_cents", models.PositiveIntegerField()),
                ("sport_type", models.CharField(blank=True, max_length=20)),
                ("booking_status", models.CharField(choices=[("CONFIRMED", "Confirmed"), ("CANCELLED", "Cancelled"), ("COMPLETED", "Completed")], default="CONFIRMED", max_length=12)),
                ("payment_status", models.CharField(choices=[("UNPAID", "Unpaid"), ("PAID", "Paid"), ("REFUNDED", "Refunded")], default="UNPAID", max_length=12)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("court", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="bookings", to="courts.court")),
                ("user", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="bookings", to=settings.AUTH_USER_MODEL)),
            ],
            options={"ordering": ["start", "id"]},
        ),
        migrations.AddIndex(
            model_name="booking",
            index=models.Index(fields=["court", "start"], name="booking_court_start_idx"),
        ),
    ]
