from django.core.exceptions import ValidationError
from django.db import models

from orgs.models import Club


class Court(models.Model):
    PADEL = "padel"
    TENNIS = "tennis"
    SQUASH = "squash"
    BADMINTON = "badminton"
    PICKLEBALL = "pickleball"
    TYPES = [
        (PADEL, "Padel"),
        (TENNIS, "Tennis"),
        (SQUASH, "Squash"),
        (BADMINTON, "Badminton"),
        (PICKLEBALL, "Pickleball"),
    ]

    club = models.ForeignKey(Club, on_delete=models.CASCADE, related_name="courts")
    name = models.CharField(max_length=120)
    slug = models.SlugField(blank=True)
    type = models.CharField(max_length=20, choices=TYPES, blank=True)
    sport_type = models.CharField(max_length=20, choices=TYPES, default=PADEL)
    surface = models.CharField(max_length=60, blank=True)
    indoor = models.BooleanField(default=False)
    # Hourly rate in minor units; used wherever no price rule covers a slot.
    default_price_cents = models.PositiveIntegerField(default=0)
    is_published = models.BooleanField(default=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["club", "name"]

    def __str__(self):
        return f"{self.club.name} · {self.name}"


class CourtPriceRule(models.Model):
    """
    Hourly price for a window of the day.

    A rule with a ``date`` only applies to that date, a rule with a
    ``day_of_week`` (Monday = 0) applies to that weekday, and a rule with
    neither applies every day. More specific rules win where they overlap.
    """

    court = models.ForeignKey(Court, on_delete=models.CASCADE, related_name="price_rules")
    day_of_week = models.PositiveSmallIntegerField(null=True, blank=True)
    date = models.DateField(null=True, blank=True)
    start_time = models.TimeField()
    end_time = models.TimeField()
    price_cents = models.PositiveIntegerField()
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["court", "start_time"]

    @property
    def kind(self) -> str:
        if self.date is not None:
            return "date"
        if self.day_of_week is not None:
            return "weekday"
        return "general"

    def clean(self):
        super().clean()
        if self.date is not None and self.day_of_week is not None:
            raise ValidationError("A price rule applies either to a date or to a weekday, not both.")
        if self.day_of_week is not None and not 0 <= self.day_of_week <= 6:
            raise ValidationError({"day_of_week": "Weekday must be between 0 (Monday) and 6 (Sunday)."})
        if self.start_time and self.end_time and self.end_time <= self.start_time:
            raise ValidationError({"end_time": "End time must be after the start time."})

        if self.court_id and self.start_time and self.end_time:
            from .pricing import find_conflicting_rule

            conflict = find_conflicting_rule(self)
            if conflict is not None:
                raise ValidationError(
                    f"Overlaps an existing {conflict.kind} rule "
                    f"({conflict.start_time:%H:%M}-{conflict.end_time:%H:%M})."
                )

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.court.name} {self.start_time:%H:%M}-{self.end_time:%H:%M}"
