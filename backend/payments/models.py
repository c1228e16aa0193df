from django.conf import settings
from django.db import models
from django.db.models import Q


class PaymentProvider(models.TextChoices):
    WAYFORPAY = "WAYFORPAY", "WayForPay"


class PaymentAccount(models.Model):
    """
    Merchant credentials that receive card payments for a club.

    A club-scoped account takes precedence over the account of the club's
    organization. Credentials are stored encrypted; use
    ``payments.services.accounts`` to read them.
    """

    SCOPE_CLUB = "CLUB"
    SCOPE_ORGANIZATION = "ORGANIZATION"
    SCOPES = [
        (SCOPE_CLUB, "Club"),
        (SCOPE_ORGANIZATION, "Organization"),
    ]

    STATUS_PENDING = "PENDING"
    STATUS_ACTIVE = "ACTIVE"
    STATUS_INVALID = "INVALID"
    STATUSES = [
        (STATUS_PENDING, "Pending verification"),
        (STATUS_ACTIVE, "Active"),
        (STATUS_INVALID, "Invalid"),
    ]

    provider = models.CharField(
        max_length=20, choices=PaymentProvider.choices, default=PaymentProvider.WAYFORPAY
    )
    scope = models.CharField(max_length=20, choices=SCOPES)
    organization = models.ForeignKey(
        "orgs.Organization",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="payment_accounts",
    )
    club = models.ForeignKey(
        "orgs.Club",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="payment_accounts",
    )
    merchant_id = models.TextField()
    secret_key = models.TextField()
    provider_config = models.TextField(blank=True)
    display_name = models.CharField(max_length=200, blank=True)
    status = models.CharField(max_length=12, choices=STATUSES, default=STATUS_PENDING)
    is_active = models.BooleanField(default=True)
    last_verified_at = models.DateTimeField(null=True, blank=True)
    verification_error = models.CharField(max_length=500, blank=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="created_payment_accounts",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-updated_at"]
        constraints = [
            models.CheckConstraint(
                condition=(
                    Q(scope="CLUB", club__isnull=False, organization__isnull=True)
                    | Q(scope="ORGANIZATION", organization__isnull=False, club__isnull=True)
                ),
                name="payment_account_scope_owner",
            )
        ]

    def __str__(self):
        owner = self.club if self.scope == self.SCOPE_CLUB else self.organization
        return f"{owner} {self.get_provider_display()} ({self.get_status_display()})"


class PaymentIntent(models.Model):
    """One attempt to collect payment for a booking through the gateway."""

    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    STATUSES = [
        (PENDING, "Pending"),
        (PAID, "Paid"),
        (FAILED, "Failed"),
    ]
    TERMINAL_STATUSES = (PAID, FAILED)

    booking = models.ForeignKey(
        "bookings.Booking", on_delete=models.CASCADE, related_name="payment_intents"
    )
    payment_account = models.ForeignKey(
        PaymentAccount, on_delete=models.PROTECT, related_name="payment_intents"
    )
    provider = models.CharField(max_length=20, choices=PaymentProvider.choices)
    order_reference = models.CharField(max_length=100, unique=True)
    amount_cents = models.PositiveIntegerField()
    currency = models.CharField(max_length=3)
    status = models.CharField(max_length=10, choices=STATUSES, default=PENDING)
    transaction_id = models.CharField(max_length=100, blank=True)
    auth_code = models.CharField(max_length=50, blank=True)
    card_pan = models.CharField(max_length=30, blank=True)
    card_type = models.CharField(max_length=30, blank=True)
    signature_valid = models.BooleanField(null=True)
    callback_data = models.JSONField(null=True, blank=True)
    error_message = models.CharField(max_length=500, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]

    @property
    def is_terminal(self) -> bool:
        return self.status in self.TERMINAL_STATUSES

    def __str__(self):
        return f"{self.order_reference} ({self.status})"
