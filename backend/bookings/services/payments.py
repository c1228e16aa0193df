from __future__ import annotations

import logging
import time as time_module
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone as django_timezone
from django.utils.dateparse import parse_datetime

from bookings.models import Booking
from courts.models import Court
from courts.pricing import quote_slot_price
from payments.gateways import GatewayError, get_gateway, is_supported_provider
from payments.models import PaymentIntent
from payments.services.accounts import (
    ResolvedPaymentAccount,
    resolve_payment_account_for_booking,
)
from payments.wayforpay import InvoiceRequest

logger = logging.getLogger(__name__)


class BookingPaymentError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidBookingRequest(BookingPaymentError):
    status_code = 400


class BookingForbidden(BookingPaymentError):
    status_code = 403


class BookingNotFound(BookingPaymentError):
    status_code = 404


class SlotUnavailable(BookingPaymentError):
    status_code = 409


class PaymentUnavailable(BookingPaymentError):
    status_code = 409


@dataclass(frozen=True)
class CheckoutResult:
    checkout_url: str
    booking_id: int
    payment_intent_id: int
    order_reference: str
    amount_cents: int
    currency: str

    def as_payload(self) -> dict:
        return {
            "checkoutUrl": self.checkout_url,
            "bookingId": self.booking_id,
            "paymentIntentId": self.payment_intent_id,
            "orderReference": self.order_reference,
            "amount": self.amount_cents,
            "currency": self.currency,
        }


def parse_instant(value) -> datetime:
    """Parse an ISO 8601 instant; naive values are taken as UTC."""
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = parse_datetime(str(value or ""))
        except ValueError:
            parsed = None
    if parsed is None:
        raise InvalidBookingRequest("Invalid date format")
    if django_timezone.is_naive(parsed):
        parsed = django_timezone.make_aware(parsed, timezone.utc)
    return parsed


def has_overlapping_booking(court_id: int, start: datetime, end: datetime) -> bool:
    return (
        Booking.objects.filter(court_id=court_id, start__lt=end, end__gt=start)
        .exclude(booking_status=Booking.STATUS_CANCELLED)
        .exists()
    )


def booking_price_cents(court: Court, start: datetime, end: datetime) -> int:
    start_utc = start.astimezone(timezone.utc)
    duration_minutes = int((end - start) / timedelta(minutes=1))
    return quote_slot_price(
        court,
        start_utc.date(),
        start_utc.hour * 60 + start_utc.minute,
        duration_minutes,
    )


def _new_order_reference(booking: Booking) -> str:
    return f"booking_{booking.id}_{int(time_module.time() * 1000)}"


def _create_intent(booking: Booking, account: ResolvedPaymentAccount, provider: str) -> PaymentIntent:
    return PaymentIntent.objects.create(
        booking=booking,
        payment_account_id=account.id,
        provider=provider,
        order_reference=_new_order_reference(booking),
        amount_cents=booking.price_cents,
        currency=settings.BOOKING_CURRENCY,
        status=PaymentIntent.PENDING,
    )


def _request_checkout_url(
    *,
    booking: Booking,
    intent: PaymentIntent,
    account: ResolvedPaymentAccount,
    user,
) -> str:
    court = booking.court
    invoice = InvoiceRequest(
        merchant_id=account.merchant_id,
        secret_key=account.secret_key,
        order_reference=intent.order_reference,
        amount_cents=intent.amount_cents,
        currency=intent.currency,
        product_name=f"Court Booking - {court.name} at {court.club.name}",
        client_name=user.get_booking_name() if user else booking.guest_name,
        client_email=(user.email if user else booking.guest_email) or "",
        client_phone=getattr(user, "phone", "") or "",
        order_date=intent.created_at,
    )
    try:
        return get_gateway(account.provider).create_invoice(invoice)
    except GatewayError:
        # Booking and intent stay pending so the payment can be retried.
        logger.exception(
            "Checkout creation failed for booking %s (payment intent %s)",
            booking.id,
            intent.id,
        )
        raise


def _resolve_account(club_id: int, provider: str) -> ResolvedPaymentAccount:
    account = resolve_payment_account_for_booking(club_id, provider)
    if account is None:
        raise PaymentUnavailable("Payment is not available for this club")
    return account


def initiate_booking_payment(
    *,
    user,
    club_id,
    court_id,
    start_at,
    end_at,
    provider: str,
) -> CheckoutResult:
    """
    Reserve a court slot and open a gateway checkout for it.

    The overlap check and the inserts run while holding a row lock on the
    court, so two attempts for the same slot cannot both succeed. The gateway
    is called after commit; a gateway failure leaves the pending booking and
    intent in place.
    """
    if not is_supported_provider(provider):
        raise InvalidBookingRequest("Unsupported payment provider")

    start = parse_instant(start_at)
    end = parse_instant(end_at)
    if start >= end:
        raise InvalidBookingRequest("Start time must be before end time")
    if start <= django_timezone.now():
        raise InvalidBookingRequest("Cannot book in the past")

    court = Court.objects.select_related("club").filter(pk=court_id).first()
    if court is None:
        raise BookingNotFound("Court not found")
    if str(court.club_id) != str(club_id):
        raise InvalidBookingRequest("Court does not belong to the specified club")

    if has_overlapping_booking(court.id, start, end):
        raise SlotUnavailable("Time slot is not available")

    price_cents = booking_price_cents(court, start, end)
    account = _resolve_account(court.club_id, provider)

    with transaction.atomic():
        Court.objects.select_for_update().get(pk=court.pk)
        if has_overlapping_booking(court.id, start, end):
            raise SlotUnavailable("Time slot is not available")

        booking = Booking.objects.create(
            court=court,
            user=user,
            start=start,
            end=end,
            price_cents=price_cents,
            sport_type=court.sport_type,
            booking_status=Booking.STATUS_CONFIRMED,
            payment_status=Booking.UNPAID,
        )
        intent = _create_intent(booking, account, provider)

    logger.info(
        "Reserved court %s for booking %s (payment intent %s)",
        court.id,
        booking.id,
        intent.id,
    )
    checkout_url = _request_checkout_url(booking=booking, intent=intent, account=account, user=user)
    return CheckoutResult(
        checkout_url=checkout_url,
        booking_id=booking.id,
        payment_intent_id=intent.id,
        order_reference=intent.order_reference,
        amount_cents=intent.amount_cents,
        currency=intent.currency,
    )


def pay_existing_booking(*, user, booking_id, provider: str) -> CheckoutResult:
    """Open a new checkout for an unpaid booking owned by ``user``."""
    if not is_supported_provider(provider):
        raise InvalidBookingRequest("Unsupported payment provider")

    booking = Booking.objects.select_related("court__club").filter(pk=booking_id).first()
    if booking is None:
        raise BookingNotFound("Booking not found")
    if booking.user_id != user.id:
        raise BookingForbidden("You do not have permission to pay for this booking")
    if booking.booking_status == Booking.STATUS_CANCELLED:
        raise InvalidBookingRequest("Cannot pay for a cancelled booking")
    if booking.payment_status == Booking.PAID:
        raise InvalidBookingRequest("Booking is already paid")
    if booking.start <= django_timezone.now():
        raise InvalidBookingRequest("Cannot pay for a booking that has already started")

    account = _resolve_account(booking.court.club_id, provider)

    with transaction.atomic():
        locked = Booking.objects.select_for_update().get(pk=booking.pk)
        if locked.payment_status == Booking.PAID:
            raise InvalidBookingRequest("Booking is already paid")
        if locked.booking_status == Booking.STATUS_CANCELLED:
            raise InvalidBookingRequest("Cannot pay for a cancelled booking")
        now = django_timezone.now()
        superseded = locked.payment_intents.filter(status=PaymentIntent.PENDING).update(
            status=PaymentIntent.FAILED,
            error_message="Superseded",
            completed_at=now,
            updated_at=now,
        )
        intent = _create_intent(booking, account, provider)

    if superseded:
        logger.info(
            "Superseded %s pending payment intent(s) of booking %s with intent %s",
            superseded,
            booking.id,
            intent.id,
        )

    checkout_url = _request_checkout_url(booking=booking, intent=intent, account=account, user=user)
    return CheckoutResult(
        checkout_url=checkout_url,
        booking_id=booking.id,
        payment_intent_id=intent.id,
        order_reference=intent.order_reference,
        amount_cents=intent.amount_cents,
        currency=intent.currency,
    )


def get_booking_status(*, user, booking_id) -> Optional[dict]:
    """Booking and latest payment status, or ``None`` unless ``user`` owns the booking."""
    booking = (
        Booking.objects.select_related("court__club")
        .filter(pk=booking_id, user=user)
        .first()
    )
    if booking is None:
        return None

    latest_intent = booking.payment_intents.order_by("-created_at", "-id").first()
    return {
        "bookingId": booking.id,
        "bookingStatus": booking.booking_status,
        "paymentStatus": booking.payment_status,
        "paymentIntentStatus": latest_intent.status if latest_intent else None,
        "courtName": booking.court.name,
        "clubName": booking.court.club.name,
        "startTime": booking.start.isoformat(),
        "endTime": booking.end.isoformat(),
        "price": booking.price_cents,
    }
