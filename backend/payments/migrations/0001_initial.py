import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("orgs", "0001_initial"),
        ("bookings", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="PaymentAccount",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("provider", models.CharField(choices=[("WAYFORPAY", "WayForPay")], default="WAYFORPAY", max_length=20)),
                ("scope", models.CharField(choices=[("CLUB", "Club"), ("ORGANIZATION", "Organization")], max_length=20)),
                ("merchant_id", models.TextField()),
                ("secret_key", models.TextField()),
                ("provider_config", models.TextField(blank=True)),
                ("display_name", models.CharField(blank=True, max_length=200)),
                ("status", models.CharField(choices=[("PENDING", "Pending verification"), ("ACTIVE", "Active"), ("INVALID", "Invalid")], default="PENDING", max_length=12)),
                ("is_active", models.BooleanField(default=True)),
                ("last_verified_at", models.DateTimeField(blank=True, null=True)),
                ("verification_error", models.CharField(blank=True, max_length=500)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("club", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name="payment_accounts", to="orgs.club")),
                ("created_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="created_payment_accounts", to=settings.AUTH_USER_MODEL)),
                ("organization", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name="payment_accounts", to="orgs.organization")),
            ],
            options={"ordering": ["-updated_at"]},
        ),
        migrations.AddConstraint(
            model_name="paymentaccount",
            constraint=models.CheckConstraint(
                condition=(
                    models.Q(("club__isnull", False), ("organization__isnull", True), ("scope", "CLUB"))
                    | models.Q(("club__isnull", True), ("organization__isnull", False), ("scope", "ORGANIZATION"))
                ),
                name="payment_account_scope_owner",
            ),
        ),
        migrations.CreateModel(
            name="PaymentIntent",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("provider", models.CharField(choices=[("WAYFORPAY", "WayForPay")], max_length=20)),
                ("order_reference", models.CharField(max_length=100, unique=True)),
                ("amount_cents", models.PositiveIntegerField()),
                ("currency", models.CharField(max_length=3)),
                ("status", models.CharField(choices=[("pending", "Pending"), ("paid", "Paid"), ("failed", "Failed")], default="pending", max_length=10)),
                ("transaction_id", models.CharField(blank=True, max_length=100)),
                ("auth_code", models.CharField(blank=True, max_length=50)),
                ("card_pan", models.CharField(blank=True, max_length=30)),
                ("card_type", models.CharField(blank=True, max_length=30)),
                ("signature_valid", models.BooleanField(null=True)),
                ("callback_data", models.JSONField(blank=True, null=True)),
                ("error_message", models.CharField(blank=True, max_length=500)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("booking", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="payment_intents", to="bookings.booking")),
                ("payment_account", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="payment_intents", to="payments.paymentaccount")),
            ],
            options={"ordering": ["-created_at", "-id"]},
        ),
    ]
