import json
import logging
from datetime import datetime, timedelta, timezone
from urllib.parse import urlencode

import pytest
from django.urls import reverse
from rest_framework.test import APIClient

from accounts.models import User
from bookings.models import Booking
from core.encryption import encrypt_string
from courts.models import Court
from orgs.models import Club, Organization
from payments.models import PaymentAccount, PaymentIntent, PaymentProvider
from payments.services.callbacks import handle_booking_payment_callback
from payments.wayforpay import callback_signature, parse_callback, sign

SECRET_KEY = "merchant-secret"
ORDER_REFERENCE = "booking_1_1906711200000"


@pytest.fixture
def club(db):
    organization = Organization.objects.create(name="Kyiv Padel", slug="kyiv-padel")
    return Club.objects.create(organization=organization, name="Central", slug="central")


@pytest.fixture
def intent(club):
    court = Court.objects.create(club=club, name="Padel 1", default_price_cents=40000)
    player = User.objects.create_user(
        username="player@example.com", email="player@example.com", password="examplepass"
    )
    booking = Booking.objects.create(
        court=court,
        user=player,
        start=datetime(2030, 6, 3, 10, 0, tzinfo=timezone.utc),
        end=datetime(2030, 6, 3, 11, 0, tzinfo=timezone.utc),
        price_cents=40000,
    )
    account = PaymentAccount.objects.create(
        provider=PaymentProvider.WAYFORPAY,
        scope=PaymentAccount.SCOPE_CLUB,
        club=club,
        merchant_id=encrypt_string("test_merch"),
        secret_key=encrypt_string(SECRET_KEY),
        status=PaymentAccount.STATUS_ACTIVE,
    )
    return PaymentIntent.objects.create(
        booking=booking,
        payment_account=account,
        provider=PaymentProvider.WAYFORPAY,
        order_reference=ORDER_REFERENCE,
        amount_cents=40000,
        currency="UAH",
    )


def _callback(transaction_status="Approved", secret_key=SECRET_KEY, **overrides):
    payload = {
        "merchantAccount": "test_merch",
        "orderReference": ORDER_REFERENCE,
        "amount": 400,
        "currency": "UAH",
        "authCode": "541963",
        "cardPan": "41****8217",
        "transactionStatus": transaction_status,
        "reasonCode": 1100,
        "cardType": "Visa",
        "transactionId": 31842,
    }
    payload.update(overrides)
    payload["merchantSignature"] = callback_signature(secret_key, parse_callback(payload))
    return payload


def test_approved_callback_marks_booking_paid(intent):
    result = handle_booking_payment_callback(_callback())

    assert result.as_payload() == {
        "success": True,
        "message": "Booking payment confirmed successfully",
    }
    intent.refresh_from_db()
    assert intent.status == PaymentIntent.PAID
    assert intent.signature_valid is True
    assert intent.transaction_id == "31842"
    assert intent.card_pan == "41****8217"
    assert intent.callback_data["orderReference"] == ORDER_REFERENCE
    assert intent.completed_at is not None
    booking = intent.booking
    booking.refresh_from_db()
    assert booking.payment_status == Booking.PAID
    assert booking.booking_status == Booking.STATUS_CONFIRMED


def test_float_amount_is_signed_without_fraction(intent):
    payload = _callback()
    payload["amount"] = 400.0
    payload["merchantSignature"] = sign(
        SECRET_KEY,
        ["test_merch", ORDER_REFERENCE, "400", "UAH", "541963", "41****8217", "Approved", "1100"],
    )

    assert handle_booking_payment_callback(payload).success is True


def test_declined_callback_cancels_booking(intent):
    result = handle_booking_payment_callback(_callback("Declined", reasonCode=1004))

    assert result.as_payload() == {"success": False, "message": "Payment not approved: Declined"}
    intent.refresh_from_db()
    assert intent.status == PaymentIntent.FAILED
    assert intent.signature_valid is True
    assert intent.error_message == "Transaction status: Declined"
    booking = intent.booking
    booking.refresh_from_db()
    assert booking.booking_status == Booking.STATUS_CANCELLED
    assert booking.payment_status == Booking.UNPAID
    assert booking.cancelled_at is not None


def test_invalid_signature_fails_even_when_approved(intent):
    result = handle_booking_payment_callback(_callback(secret_key="forged"))

    assert result.as_payload() == {"success": False, "message": "Invalid signature"}
    intent.refresh_from_db()
    assert intent.status == PaymentIntent.FAILED
    assert intent.signature_valid is False
    assert intent.error_message == "Invalid signature"
    intent.booking.refresh_from_db()
    assert intent.booking.booking_status == Booking.STATUS_CANCELLED
    assert intent.booking.payment_status == Booking.UNPAID


def test_repeated_callback_changes_nothing(intent):
    handle_booking_payment_callback(_callback())
    intent.refresh_from_db()
    completed_at = intent.completed_at

    again = handle_booking_payment_callback(_callback("Declined"))

    assert again.as_payload() == {"success": True, "message": "Payment already processed as paid"}
    intent.refresh_from_db()
    assert intent.status == PaymentIntent.PAID
    assert intent.completed_at == completed_at
    intent.booking.refresh_from_db()
    assert intent.booking.payment_status == Booking.PAID


def test_callback_after_failure_reports_failure(intent):
    handle_booking_payment_callback(_callback("Declined"))

    again = handle_booking_payment_callback(_callback())

    assert again.as_payload() == {
        "success": False,
        "message": "Payment already processed as failed",
    }
    intent.booking.refresh_from_db()
    assert intent.booking.booking_status == Booking.STATUS_CANCELLED


def test_intent_settled_concurrently_is_reported_not_overwritten(intent, monkeypatch):
    def racing(self):
        # Another delivery settles the intent right after this one read it.
        PaymentIntent.objects.filter(pk=self.pk).update(status=PaymentIntent.PAID)
        return False

    monkeypatch.setattr(PaymentIntent, "is_terminal", property(racing))

    result = handle_booking_payment_callback(_callback("Declined"))

    assert result.as_payload() == {"success": True, "message": "Payment already processed as paid"}
    intent.booking.refresh_from_db()
    assert intent.booking.booking_status == Booking.STATUS_CONFIRMED


def _newer_intent(intent, order_reference="booking_1_1906711300000"):
    newer = PaymentIntent.objects.create(
        booking=intent.booking,
        payment_account=intent.payment_account,
        provider=PaymentProvider.WAYFORPAY,
        order_reference=order_reference,
        amount_cents=intent.amount_cents,
        currency="UAH",
    )
    PaymentIntent.objects.filter(pk=newer.pk).update(
        created_at=intent.created_at + timedelta(seconds=5)
    )
    return newer


def test_late_decline_of_older_intent_keeps_paid_booking(intent):
    newer = _newer_intent(intent)

    paid = handle_booking_payment_callback(_callback(orderReference=newer.order_reference))
    late = handle_booking_payment_callback(_callback("Declined"))

    assert paid.success is True
    assert late.as_payload() == {"success": False, "message": "Payment not approved: Declined"}
    intent.refresh_from_db()
    assert intent.status == PaymentIntent.FAILED
    booking = intent.booking
    booking.refresh_from_db()
    assert booking.booking_status == Booking.STATUS_CONFIRMED
    assert booking.payment_status == Booking.PAID
    assert booking.cancelled_at is None


def test_decline_of_older_intent_leaves_booking_open_for_newer(intent):
    newer = _newer_intent(intent)

    handle_booking_payment_callback(_callback("Declined"))
    booking = intent.booking
    booking.refresh_from_db()
    assert booking.booking_status == Booking.STATUS_CONFIRMED
    assert booking.payment_status == Booking.UNPAID

    result = handle_booking_payment_callback(_callback(orderReference=newer.order_reference))

    assert result.success is True
    booking.refresh_from_db()
    assert booking.booking_status == Booking.STATUS_CONFIRMED
    assert booking.payment_status == Booking.PAID


def test_approval_for_cancelled_booking_is_not_applied(intent, caplog):
    Booking.objects.filter(pk=intent.booking_id).update(booking_status=Booking.STATUS_CANCELLED)

    with caplog.at_level(logging.ERROR, logger="payments.services.callbacks"):
        result = handle_booking_payment_callback(_callback())

    assert result.as_payload() == {
        "success": False,
        "message": "Booking is no longer awaiting this payment",
    }
    intent.refresh_from_db()
    assert intent.status == PaymentIntent.PAID
    booking = intent.booking
    booking.refresh_from_db()
    assert booking.booking_status == Booking.STATUS_CANCELLED
    assert booking.payment_status == Booking.UNPAID
    assert any(
        f"Payment intent {intent.id} (account {intent.payment_account_id})" in record.getMessage()
        for record in caplog.records
    )


def test_non_string_card_type_is_stored_as_text(intent):
    result = handle_booking_payment_callback(_callback(cardType=7))

    assert result.success is True
    intent.refresh_from_db()
    assert intent.card_type == "7"


def test_undecryptable_secret_key_fails_without_settling(intent, settings):
    settings.ENCRYPTION_KEY = "rotated-key"

    result = handle_booking_payment_callback(_callback())

    assert result.as_payload() == {
        "success": False,
        "message": "Payment account credentials unavailable",
    }
    intent.refresh_from_db()
    assert intent.status == PaymentIntent.PENDING


def test_unknown_order_reference(intent):
    result = handle_booking_payment_callback(_callback(orderReference="booking_404_1"))

    assert result.as_payload() == {"success": False, "message": "Payment intent not found"}


def test_missing_order_reference(db):
    result = handle_booking_payment_callback({"transactionStatus": "Approved"})

    assert result.as_payload() == {"success": False, "message": "Missing orderReference"}


def test_webhook_accepts_json_body(intent):
    url = reverse("wayforpay-payment-webhook")

    response = APIClient().post(url, json.dumps(_callback()), content_type="application/json")

    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Booking payment confirmed successfully"}


def test_webhook_accepts_json_document_as_form_key(intent):
    url = reverse("wayforpay-payment-webhook")
    body = urlencode({json.dumps(_callback()): ""})

    response = APIClient().post(url, body, content_type="application/x-www-form-urlencoded")

    assert response.status_code == 200
    assert response.json()["success"] is True
    intent.refresh_from_db()
    assert intent.status == PaymentIntent.PAID


@pytest.mark.parametrize("body", ["", "not json at all", json.dumps({"orderReference": "nope"})])
def test_webhook_always_answers_200(db, body):
    url = reverse("wayforpay-payment-webhook")

    response = APIClient().post(url, body, content_type="application/json")

    assert response.status_code == 200
    assert response.json()["success"] is False


def test_payment_status_endpoint_is_public(intent, club):
    response = APIClient().get(reverse("club-payment-status", args=[club.id]))

    assert response.status_code == 200
    assert response.json()["isAvailable"] is True
    assert "merchantId" not in response.json()


def test_payment_status_for_unknown_club(db):
    response = APIClient().get(reverse("club-payment-status", args=[999999]))

    assert response.status_code == 404
