"""
WayForPay client.

Requests and callbacks are signed with HMAC-MD5 keyed by the merchant secret
over a ``;``-joined list of fields. The field order differs between outgoing
requests and incoming callbacks and must be reproduced exactly.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, Mapping, Optional, Union

import requests
from django.conf import settings
from django.utils import timezone

from .gateways import CredentialCheck, GatewayError

logger = logging.getLogger(__name__)

APPROVED = "Approved"

# Codes returned once the merchant signature was accepted, even though the
# probe itself was declined.
CREDENTIALS_ACCEPTED_CODES = {1001, 1002, 1003, 1004, 1005, 1100, 1109}
REASON_INVALID_SIGNATURE = 1113
REASON_MERCHANT_NOT_FOUND = 1101

VERIFICATION_DOMAIN = "verification.test"


@dataclass(frozen=True)
class WayForPayConfig:
    api_url: str
    app_url: str
    default_phone: str
    timeout_seconds: float = 10.0

    @classmethod
    def from_settings(cls) -> "WayForPayConfig":
        return cls(
            api_url=settings.WAYFORPAY_API_URL,
            app_url=settings.APP_URL.rstrip("/"),
            default_phone=settings.DEFAULT_BOOKING_PHONE,
            timeout_seconds=settings.WAYFORPAY_TIMEOUT_SECONDS,
        )

    @property
    def return_url(self) -> str:
        return f"{self.app_url}/player/bookings?payment=return"

    @property
    def service_url(self) -> str:
        return f"{self.app_url}/api/webhooks/wayforpay/payment/"


@dataclass(frozen=True)
class InvoiceRequest:
    merchant_id: str
    secret_key: str
    order_reference: str
    amount_cents: int
    currency: str
    product_name: str
    client_name: str = ""
    client_email: str = ""
    client_phone: str = ""
    order_date: Optional[datetime] = None


@dataclass(frozen=True)
class CallbackEnvelope:
    """Fields of a payment callback that the signature covers, plus card details."""

    merchant_account: str
    order_reference: str
    amount: Any
    currency: str
    transaction_status: str
    auth_code: Any = None
    card_pan: Any = None
    reason_code: Any = None
    merchant_signature: str = ""
    card_type: str = ""
    transaction_id: str = ""
    raw: Optional[dict] = None

    @property
    def is_approved_status(self) -> bool:
        return self.transaction_status == APPROVED


@dataclass(frozen=True)
class MalformedCallback:
    reason: str
    raw: Any = None


def format_amount(amount_cents: int) -> str:
    return f"{amount_cents / 100:.2f}"


def sign(secret_key: str, fields: Iterable[Any]) -> str:
    message = ";".join(str(field) for field in fields)
    return hmac.new(secret_key.encode(), message.encode(), hashlib.md5).hexdigest()


def purchase_signature(
    *,
    secret_key: str,
    merchant_id: str,
    domain: str,
    order_reference: str,
    order_date: int,
    amount: str,
    currency: str,
    product_name: str,
    product_price: str,
) -> str:
    return sign(
        secret_key,
        [
            merchant_id,
            domain,
            order_reference,
            order_date,
            amount,
            currency,
            product_name,
            "1",
            product_price,
        ],
    )


def _callback_value(value: Any) -> str:
    """Render a callback field the way the gateway did when it signed it."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return str(int(value)) if value.is_integer() else repr(value)
    return str(value)


def callback_signature(secret_key: str, envelope: CallbackEnvelope) -> str:
    return sign(
        secret_key,
        [
            _callback_value(envelope.merchant_account),
            _callback_value(envelope.order_reference),
            _callback_value(envelope.amount),
            _callback_value(envelope.currency),
            _callback_value(envelope.auth_code),
            _callback_value(envelope.card_pan),
            _callback_value(envelope.transaction_status),
            _callback_value(envelope.reason_code),
        ],
    )


def verify_callback_signature(secret_key: str, envelope: CallbackEnvelope) -> bool:
    if not envelope.merchant_signature:
        return False
    expected = callback_signature(secret_key, envelope)
    return hmac.compare_digest(expected, str(envelope.merchant_signature))


def parse_callback(payload: Any) -> Union[CallbackEnvelope, MalformedCallback]:
    if not isinstance(payload, Mapping):
        return MalformedCallback("Callback body must be a JSON object.", raw=payload)
    order_reference = payload.get("orderReference")
    if not order_reference:
        return MalformedCallback("Missing orderReference", raw=dict(payload))

    return CallbackEnvelope(
        merchant_account=payload.get("merchantAccount") or "",
        order_reference=str(order_reference),
        amount=payload.get("amount"),
        currency=payload.get("currency") or "",
        transaction_status=payload.get("transactionStatus") or "",
        auth_code=payload.get("authCode"),
        card_pan=payload.get("cardPan"),
        reason_code=payload.get("reasonCode"),
        merchant_signature=payload.get("merchantSignature") or "",
        card_type=payload.get("cardType") or "",
        transaction_id=str(payload.get("transactionId") or ""),
        raw=dict(payload),
    )


def split_client_name(name: str) -> tuple[str, str]:
    parts = (name or "").split()
    first = parts[0] if parts else "Player"
    last = " ".join(parts[1:]) or "User"
    return first, last


def _reason_code(data: Mapping[str, Any]) -> Optional[int]:
    value = data.get("reasonCode")
    if value in (None, ""):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class WayForPayGateway:
    def __init__(self, config: WayForPayConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.session = session or requests.Session()

    def _post(self, body: dict) -> dict:
        try:
            response = self.session.post(
                self.config.api_url,
                json=body,
                timeout=self.config.timeout_seconds,
            )
        except requests.Timeout as exc:
            raise GatewayError("Payment gateway timed out.") from exc
        except requests.RequestException as exc:
            raise GatewayError(f"Payment gateway request failed: {exc}") from exc

        if not response.ok:
            raise GatewayError(
                f"Payment gateway request failed with status {response.status_code}."
            )
        try:
            data = response.json()
        except ValueError as exc:
            raise GatewayError("Payment gateway returned an invalid response.") from exc
        if not isinstance(data, dict):
            raise GatewayError("Payment gateway returned an invalid response.")
        return data

    def build_invoice_body(self, invoice: InvoiceRequest) -> dict:
        order_date = int((invoice.order_date or timezone.now()).timestamp())
        amount = format_amount(invoice.amount_cents)
        first_name, last_name = split_client_name(invoice.client_name)
        signature = purchase_signature(
            secret_key=invoice.secret_key,
            merchant_id=invoice.merchant_id,
            domain=self.config.app_url,
            order_reference=invoice.order_reference,
            order_date=order_date,
            amount=amount,
            currency=invoice.currency,
            product_name=invoice.product_name,
            product_price=amount,
        )
        return {
            "transactionType": "CREATE_INVOICE",
            "merchantAccount": invoice.merchant_id,
            "merchantAuthType": "SimpleSignature",
            "merchantDomainName": self.config.app_url,
            "merchantTransactionSecureType": "AUTO",
            "merchantSignature": signature,
            "apiVersion": 1,
            "orderReference": invoice.order_reference,
            "orderDate": order_date,
            "amount": amount,
            "currency": invoice.currency,
            "productName": [invoice.product_name],
            "productCount": [1],
            "productPrice": [amount],
            "clientFirstName": first_name,
            "clientLastName": last_name,
            "clientEmail": invoice.client_email,
            "clientPhone": invoice.client_phone or self.config.default_phone,
            "returnUrl": self.config.return_url,
            "serviceUrl": self.config.service_url,
        }

    def create_invoice(self, invoice: InvoiceRequest) -> str:
        """Register the order with WayForPay and return the hosted checkout URL."""
        data = self._post(self.build_invoice_body(invoice))
        checkout_url = data.get("invoiceUrl") or data.get("paymentURL")
        if not checkout_url:
            reason_code = data.get("reasonCode")
            logger.warning(
                "WayForPay returned no checkout URL for %s (reasonCode=%s, reason=%s)",
                invoice.order_reference,
                reason_code,
                data.get("reason"),
            )
            raise GatewayError(
                data.get("reason") or "Payment gateway did not return a checkout URL.",
                reason_code=str(reason_code) if reason_code is not None else None,
            )
        return checkout_url

    def verify_credentials(self, merchant_id: str, secret_key: str) -> CredentialCheck:
        """
        Probe the gateway with a signed test purchase.

        The probe never completes a charge; the gateway's reason code tells
        whether the merchant signature was accepted.
        """
        order_reference = f"verify_{int(timezone.now().timestamp() * 1000)}"
        order_date = int(timezone.now().timestamp())
        amount = "1"
        signature = purchase_signature(
            secret_key=secret_key,
            merchant_id=merchant_id,
            domain=VERIFICATION_DOMAIN,
            order_reference=order_reference,
            order_date=order_date,
            amount=amount,
            currency=settings.BOOKING_CURRENCY,
            product_name="Verification",
            product_price=amount,
        )
        data = self._post(
            {
                "transactionType": "PURCHASE",
                "merchantAccount": merchant_id,
                "merchantAuthType": "SimpleSignature",
                "merchantDomainName": VERIFICATION_DOMAIN,
                "merchantSignature": signature,
                "apiVersion": 1,
                "orderReference": order_reference,
                "orderDate": order_date,
                "amount": amount,
                "currency": settings.BOOKING_CURRENCY,
                "productName": ["Verification"],
                "productCount": [1],
                "productPrice": [amount],
                "clientEmail": f"test@{VERIFICATION_DOMAIN}",
                "clientPhone": self.config.default_phone,
            }
        )

        reason_code = _reason_code(data)
        if reason_code == REASON_INVALID_SIGNATURE:
            return CredentialCheck(
                False, "Invalid merchant credentials or secret key", "INVALID_CREDENTIALS"
            )
        if reason_code == REASON_MERCHANT_NOT_FOUND:
            return CredentialCheck(
                False, "Merchant account not found or inactive", "MERCHANT_NOT_FOUND"
            )
        if data.get("invoiceUrl") or data.get("paymentURL"):
            return CredentialCheck(True)
        if reason_code in CREDENTIALS_ACCEPTED_CODES:
            return CredentialCheck(True)
        if data.get("reasonCode"):
            return CredentialCheck(
                False,
                f"Unknown response code: {data.get('reasonCode')} - {data.get('reason') or 'Unknown error'}",
                "UNKNOWN_RESPONSE_CODE",
            )
        return CredentialCheck(False, "Unexpected API response format", "UNEXPECTED_RESPONSE")
