import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Organization",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("slug", models.SlugField(unique=True)),
                ("contact_email", models.EmailField(blank=True, max_length=254)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
        ),
        migrations.CreateModel(
            name="Club",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("slug", models.SlugField(unique=True)),
                ("city", models.CharField(blank=True, max_length=120)),
                ("address", models.CharField(blank=True, max_length=255)),
                ("default_currency", models.CharField(default="UAH", max_length=3)),
                ("is_published", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("organization", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="clubs", to="orgs.organization")),
            ],
        ),
        migrations.CreateModel(
            name="ClubBusinessHours",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("day_of_week", models.PositiveSmallIntegerField(choices=[(0, "Monday"), (1, "Tuesday"), (2, "Wednesday"), (3, "Thursday"), (4, "Friday"), (5, "Saturday"), (6, "Sunday")])),
                ("open_time", models.TimeField(blank=True, null=True)),
                ("close_time", models.TimeField(blank=True, null=True)),
                ("is_closed", models.BooleanField(default=False)),
                ("club", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="business_hours", to="orgs.club")),
            ],
            options={"ordering": ["club", "day_of_week"]},
        ),
        migrations.CreateModel(
            name="ClubSpecialHours",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("date", models.DateField()),
                ("open_time", models.TimeField(blank=True, null=True)),
                ("close_time", models.TimeField(blank=True, null=True)),
                ("is_closed", models.BooleanField(default=False)),
                ("reason", models.CharField(blank=True, max_length=200)),
                ("club", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="special_hours", to="orgs.club")),
            ],
            options={"ordering": ["club", "date"]},
        ),
        migrations.AddConstraint(
            model_name="clubbusinesshours",
            constraint=models.UniqueConstraint(fields=("club", "day_of_week"), name="unique_business_hours_per_weekday"),
        ),
        migrations.AddConstraint(
            model_name="clubspecialhours",
            constraint=models.UniqueConstraint(fields=("club", "date"), name="unique_special_hours_per_date"),
        ),
    ]
