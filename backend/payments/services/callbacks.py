from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from cryptography.fernet import InvalidToken
from django.db import transaction
from django.utils import timezone

from bookings.models import Booking
from core.encryption import decrypt_string
from payments.models import PaymentIntent
from payments.wayforpay import MalformedCallback, parse_callback, verify_callback_signature

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CallbackResult:
    success: bool
    message: str

    def as_payload(self) -> dict:
        return {"success": self.success, "message": self.message}


def _already_processed(status: str) -> CallbackResult:
    return CallbackResult(
        success=status == PaymentIntent.PAID,
        message=f"Payment already processed as {status}",
    )


def _awaits_payment_from(booking: Booking, intent: PaymentIntent) -> bool:
    """Only the latest intent of a confirmed, unpaid booking may settle it."""
    if booking.booking_status != Booking.STATUS_CONFIRMED or booking.payment_status != Booking.UNPAID:
        return False
    latest_id = (
        PaymentIntent.objects.filter(booking_id=booking.pk)
        .order_by("-created_at", "-id")
        .values_list("id", flat=True)
        .first()
    )
    return latest_id == intent.pk


def handle_booking_payment_callback(payload: Any) -> CallbackResult:
    """
    Apply a gateway payment callback to its PaymentIntent and Booking.

    The intent moves out of ``pending`` exactly once: repeated or concurrent
    deliveries of the same callback report the stored outcome and change
    nothing. An invalid signature always fails the intent and cancels the
    booking, whatever transaction status the payload claims. The booking only
    changes while it is confirmed, unpaid and this intent is its latest one;
    otherwise the intent is settled on its own and logged for reconciliation.
    """
    envelope = parse_callback(payload)
    if isinstance(envelope, MalformedCallback):
        logger.warning("Rejected malformed payment callback: %s", envelope.reason)
        return CallbackResult(False, envelope.reason)

    intent = (
        PaymentIntent.objects.select_related("payment_account", "booking")
        .filter(order_reference=envelope.order_reference)
        .first()
    )
    if intent is None:
        logger.warning("Payment callback for unknown order %s", envelope.order_reference)
        return CallbackResult(False, "Payment intent not found")

    if intent.is_terminal:
        logger.info("Payment intent %s already processed as %s", intent.id, intent.status)
        return _already_processed(intent.status)

    try:
        secret_key = decrypt_string(intent.payment_account.secret_key)
    except InvalidToken:
        logger.error(
            "Cannot decrypt secret key of payment account %s for payment intent %s",
            intent.payment_account_id,
            intent.id,
        )
        return CallbackResult(False, "Payment account credentials unavailable")

    signature_valid = verify_callback_signature(secret_key, envelope)
    approved = signature_valid and envelope.is_approved_status

    if not signature_valid:
        error_message = "Invalid signature"
    elif not approved:
        error_message = f"Transaction status: {envelope.transaction_status}"
    else:
        error_message = ""

    now = timezone.now()
    with transaction.atomic():
        booking = Booking.objects.select_for_update().get(pk=intent.booking_id)
        updated = PaymentIntent.objects.filter(
            pk=intent.pk, status=PaymentIntent.PENDING
        ).update(
            status=PaymentIntent.PAID if approved else PaymentIntent.FAILED,
            signature_valid=signature_valid,
            callback_data=envelope.raw,
            transaction_id=str(envelope.transaction_id or "")[:100],
            auth_code=str(envelope.auth_code or "")[:50],
            card_pan=str(envelope.card_pan or "")[:30],
            card_type=str(envelope.card_type or "")[:30],
            error_message=error_message[:500],
            completed_at=now,
            updated_at=now,
        )
        if not updated:
            current_status = (
                PaymentIntent.objects.filter(pk=intent.pk)
                .values_list("status", flat=True)
                .get()
            )
            logger.info(
                "Payment intent %s was settled by a concurrent callback as %s",
                intent.id,
                current_status,
            )
            return _already_processed(current_status)

        booking_open = _awaits_payment_from(booking, intent)
        if booking_open and approved:
            booking.payment_status = Booking.PAID
            booking.save(update_fields=["payment_status", "updated_at"])
        elif booking_open:
            booking.booking_status = Booking.STATUS_CANCELLED
            booking.cancelled_at = now
            booking.save(update_fields=["booking_status", "cancelled_at", "updated_at"])

    if not booking_open:
        logger.error(
            "Payment intent %s (account %s) settled as %s but booking %s is %s/%s; "
            "booking left unchanged",
            intent.id,
            intent.payment_account_id,
            PaymentIntent.PAID if approved else PaymentIntent.FAILED,
            booking.id,
            booking.booking_status,
            booking.payment_status,
        )
        if approved:
            return CallbackResult(False, "Booking is no longer awaiting this payment")

    if approved:
        logger.info("Booking %s marked as paid (intent %s)", booking.id, intent.id)
        return CallbackResult(True, "Booking payment confirmed successfully")
    if not signature_valid:
        logger.error(
            "Invalid callback signature for payment intent %s (account %s)",
            intent.id,
            intent.payment_account_id,
        )
        return CallbackResult(False, "Invalid signature")

    logger.info(
        "Payment for booking %s declined with status %s",
        booking.id,
        envelope.transaction_status,
    )
    return CallbackResult(False, f"Payment not approved: {envelope.transaction_status}")
