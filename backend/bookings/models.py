from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models


class Booking(models.Model):
    """Reservation of one court for a time range."""

    STATUS_CONFIRMED = "CONFIRMED"
    STATUS_CANCELLED = "CANCELLED"
    STATUS_COMPLETED = "COMPLETED"
    BOOKING_STATUSES = [
        (STATUS_CONFIRMED, "Confirmed"),
        (STATUS_CANCELLED, "Cancelled"),
        (STATUS_COMPLETED, "Completed"),
    ]

    UNPAID = "UNPAID"
    PAID = "PAID"
    REFUNDED = "REFUNDED"
    PAYMENT_STATUSES = [
        (UNPAID, "Unpaid"),
        (PAID, "Paid"),
        (REFUNDED, "Refunded"),
    ]

    court = models.ForeignKey("courts.Court", on_delete=models.PROTECT, related_name="bookings")
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="bookings",
    )
    guest_name = models.CharField(max_length=200, blank=True)
    guest_email = models.EmailField(blank=True)
    start = models.DateTimeField()
    end = models.DateTimeField()
    price_cents = models.PositiveIntegerField()
    sport_type = models.CharField(max_length=20, blank=True)
    booking_status = models.CharField(
        max_length=12, choices=BOOKING_STATUSES, default=STATUS_CONFIRMED
    )
    payment_status = models.CharField(max_length=12, choices=PAYMENT_STATUSES, default=UNPAID)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["start", "id"]
        indexes = [
            models.Index(fields=["court", "start"], name="booking_court_start_idx"),
        ]

    def _check_paid_range(self):
        if not self.pk:
            return
        stored = (
            Booking.objects.filter(pk=self.pk).values("start", "end", "payment_status").first()
        )
        if stored is None or stored["payment_status"] != self.PAID:
            return
        if stored["start"] != self.start or stored["end"] != self.end:
            raise ValidationError("The time range of a paid booking cannot change.")

    def clean(self):
        super().clean()
        if self.start and self.end and self.end <= self.start:
            raise ValidationError({"end": "End time must be after the start time."})
        self._check_paid_range()

    def save(self, *args, **kwargs):
        update_fields = kwargs.get("update_fields")
        if update_fields is None or {"start", "end"} & set(update_fields):
            self._check_paid_range()
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.court} {self.start:%Y-%m-%d %H:%M}"
