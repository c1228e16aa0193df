import django.db.models.deletion
from django.db import migrations, models

COURT_TYPES = [
    ("padel", "Padel"),
    ("tennis", "Tennis"),
    ("squash", "Squash"),
    ("badminton", "Badminton"),
    ("pickleball", "Pickleball"),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("orgs", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Court",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=120)),
                ("slug", models.SlugField(blank=True)),
                ("type", models.CharField(blank=True, choices=COURT_TYPES, max_length=20)),
                ("sport_type", models.CharField(choices=COURT_TYPES, default="padel", max_length=20)),
                ("surface", models.CharField(blank=True, max_length=60)),
                ("indoor", models.BooleanField(default=False)),
                ("default_price_cents", models.PositiveIntegerField(default=0)),
                ("is_published", models.BooleanField(default=True)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("club", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="courts", to="orgs.club")),
            ],
            options={"ordering": ["club", "name"]},
        ),
        migrations.CreateModel(
            name="CourtPriceRule",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("day_of_week", models.PositiveSmallIntegerField(blank=True, null=True)),
                ("date", models.DateField(blank=True, null=True)),
                ("start_time", models.TimeField()),
                ("end_time", models.TimeField()),
                ("price_cents", models.PositiveIntegerField()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("court", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="price_rules", to="courts.court")),
            ],
            options={"ordering": ["court", "start_time"]},
        ),
    ]
