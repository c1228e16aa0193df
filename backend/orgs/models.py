from django.core.exceptions import ValidationError
from django.db import models


class Organization(models.Model):
    name = models.CharField(max_length=200)
    slug = models.SlugField(unique=True)
    contact_email = models.EmailField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.name


class Club(models.Model):
    organization = models.ForeignKey(
        Organization,
        on_delete=models.CASCADE,
        related_name="clubs",
    )
    name = models.CharField(max_length=200)
    slug = models.SlugField(unique=True)
    city = models.CharField(max_length=120, blank=True)
    address = models.CharField(max_length=255, blank=True)
    default_currency = models.CharField(max_length=3, default="UAH")
    is_published = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name


class ClubBusinessHours(models.Model):
    MONDAY, TUESDAY, WEDNESDAY, THURSDAY, FRIDAY, SATURDAY, SUNDAY = range(7)
    WEEKDAYS = [
        (MONDAY, "Monday"),
        (TUESDAY, "Tuesday"),
        (WEDNESDAY, "Wednesday"),
        (THURSDAY, "Thursday"),
        (FRIDAY, "Friday"),
        (SATURDAY, "Saturday"),
        (SUNDAY, "Sunday"),
    ]

    club = models.ForeignKey(
        Club,
        on_delete=models.CASCADE,
        related_name="business_hours",
    )
    day_of_week = models.PositiveSmallIntegerField(choices=WEEKDAYS)
    open_time = models.TimeField(null=True, blank=True)
    close_time = models.TimeField(null=True, blank=True)
    is_closed = models.BooleanField(default=False)

    class Meta:
        ordering = ["club", "day_of_week"]
        constraints = [
            models.UniqueConstraint(
                fields=["club", "day_of_week"],
                name="unique_business_hours_per_weekday",
            )
        ]

    def clean(self):
        super().clean()
        _validate_opening_window(self)

    def __str__(self):
        return f"{self.club.name} {self.get_day_of_week_display()}"


class ClubSpecialHours(models.Model):
    club = models.ForeignKey(
        Club,
        on_delete=models.CASCADE,
        related_name="special_hours",
    )
    date = models.DateField()
    open_time = models.TimeField(null=True, blank=True)
    close_time = models.TimeField(null=True, blank=True)
    is_closed = models.BooleanField(default=False)
    reason = models.CharField(max_length=200, blank=True)

    class Meta:
        ordering = ["club", "date"]
        constraints = [
            models.UniqueConstraint(
                fields=["club", "date"],
                name="unique_special_hours_per_date",
            )
        ]

    def clean(self):
        super().clean()
        _validate_opening_window(self)

    def __str__(self):
        return f"{self.club.name} {self.date.isoformat()}"


def _validate_opening_window(hours) -> None:
    if hours.is_closed:
        return
    if hours.open_time is None or hours.close_time is None:
        raise ValidationError("Open and close times are required unless the club is closed.")
    if hours.close_time <= hours.open_time:
        raise ValidationError({"close_time": "Close time must be after the open time."})
