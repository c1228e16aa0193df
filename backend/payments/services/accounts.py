from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from django.db import transaction
from django.utils import timezone

from core.encryption import decrypt_json, decrypt_string, encrypt_json, encrypt_string
from orgs.models import Club, Organization
from payments.gateways import GatewayError, get_gateway
from payments.models import PaymentAccount, PaymentProvider

logger = logging.getLogger(__name__)


class PaymentAccountError(ValueError):
    """Raised when a payment account cannot be created or changed."""


@dataclass(frozen=True)
class ResolvedPaymentAccount:
    """A usable payment account with decrypted credentials."""

    id: int
    provider: str
    scope: str
    merchant_id: str
    secret_key: str
    provider_config: Optional[dict]
    display_name: str


def _lookup(queryset, club_id: int):
    account = (
        queryset.filter(scope=PaymentAccount.SCOPE_CLUB, club_id=club_id)
        .order_by("-updated_at")
        .first()
    )
    if account is not None:
        return account

    organization_id = (
        Club.objects.filter(pk=club_id).values_list("organization_id", flat=True).first()
    )
    if organization_id is None:
        return None
    return (
        queryset.filter(
            scope=PaymentAccount.SCOPE_ORGANIZATION, organization_id=organization_id
        )
        .order_by("-updated_at")
        .first()
    )


def resolve_payment_account_for_booking(
    club_id: int, provider: Optional[str] = None
) -> Optional[ResolvedPaymentAccount]:
    """
    Find the account that should receive payment for a booking at ``club_id``.

    The club's own active account wins; otherwise the organization's active
    account is used. ``None`` means payments are not configured for the club.
    """
    queryset = PaymentAccount.objects.filter(
        status=PaymentAccount.STATUS_ACTIVE, is_active=True
    )
    if provider:
        queryset = queryset.filter(provider=provider)

    account = _lookup(queryset, club_id)
    if account is None:
        return None

    return ResolvedPaymentAccount(
        id=account.id,
        provider=account.provider,
        scope=account.scope,
        merchant_id=decrypt_string(account.merchant_id),
        secret_key=decrypt_string(account.secret_key),
        provider_config=decrypt_json(account.provider_config),
        display_name=account.display_name,
    )


def get_payment_account_status(club_id: int) -> dict:
    """Report whether a club can take payments without reading any credentials."""
    queryset = PaymentAccount.objects.filter(is_active=True).only(
        "id", "provider", "scope", "status", "display_name", "updated_at"
    )
    account = _lookup(queryset, club_id)
    if account is None:
        return {
            "isConfigured": False,
            "isAvailable": False,
            "provider": None,
            "scope": None,
            "status": None,
            "displayName": None,
        }
    return {
        "isConfigured": True,
        "isAvailable": account.status == PaymentAccount.STATUS_ACTIVE,
        "provider": account.provider,
        "scope": account.scope,
        "status": account.status,
        "displayName": account.display_name or None,
    }


def mask_credential(value: str, visible: int = 4) -> str:
    if not value:
        return ""
    if len(value) <= visible:
        return "*" * len(value)
    return "*" * (len(value) - visible) + value[-visible:]


def schedule_verification(account: PaymentAccount) -> None:
    from payments.tasks import verify_payment_account_task

    transaction.on_commit(lambda: verify_payment_account_task.delay(account.id))


def create_payment_account(
    *,
    scope: str,
    merchant_id: str,
    secret_key: str,
    provider: str = PaymentProvider.WAYFORPAY,
    club: Optional[Club] = None,
    organization: Optional[Organization] = None,
    provider_config: Optional[dict[str, Any]] = None,
    display_name: str = "",
    created_by=None,
) -> PaymentAccount:
    if provider not in PaymentProvider.values:
        raise PaymentAccountError(f"Unsupported payment provider: {provider}")
    if scope == PaymentAccount.SCOPE_CLUB:
        if club is None or organization is not None:
            raise PaymentAccountError("A club account must reference exactly one club.")
    elif scope == PaymentAccount.SCOPE_ORGANIZATION:
        if organization is None or club is not None:
            raise PaymentAccountError(
                "An organization account must reference exactly one organization."
            )
    else:
        raise PaymentAccountError(f"Unknown account scope: {scope}")
    if not merchant_id or not secret_key:
        raise PaymentAccountError("Merchant id and secret key are required.")
    if provider_config is not None and not isinstance(provider_config, dict):
        raise PaymentAccountError("Provider configuration must be an object.")

    duplicates = PaymentAccount.objects.filter(provider=provider, scope=scope)
    if scope == PaymentAccount.SCOPE_CLUB:
        duplicates = duplicates.filter(club=club)
    else:
        duplicates = duplicates.filter(organization=organization)
    if duplicates.exists():
        raise PaymentAccountError(
            f"A {provider} account is already configured for this {scope.lower()}."
        )

    with transaction.atomic():
        account = PaymentAccount.objects.create(
            provider=provider,
            scope=scope,
            club=club,
            organization=organization,
            merchant_id=encrypt_string(merchant_id),
            secret_key=encrypt_string(secret_key),
            provider_config=encrypt_json(provider_config),
            display_name=display_name,
            status=PaymentAccount.STATUS_PENDING,
            created_by=created_by,
        )
        schedule_verification(account)
    return account


def update_payment_account_credentials(
    account: PaymentAccount,
    *,
    merchant_id: Optional[str] = None,
    secret_key: Optional[str] = None,
    provider_config: Optional[dict[str, Any]] = None,
    display_name: Optional[str] = None,
) -> PaymentAccount:
    update_fields = ["updated_at"]
    credentials_changed = False

    if merchant_id is not None:
        if not merchant_id:
            raise PaymentAccountError("Merchant id cannot be empty.")
        account.merchant_id = encrypt_string(merchant_id)
        update_fields.append("merchant_id")
        credentials_changed = True
    if secret_key is not None:
        if not secret_key:
            raise PaymentAccountError("Secret key cannot be empty.")
        account.secret_key = encrypt_string(secret_key)
        update_fields.append("secret_key")
        credentials_changed = True
    if provider_config is not None:
        if not isinstance(provider_config, dict):
            raise PaymentAccountError("Provider configuration must be an object.")
        account.provider_config = encrypt_json(provider_config)
        update_fields.append("provider_config")
    if display_name is not None:
        account.display_name = display_name
        update_fields.append("display_name")

    if credentials_changed:
        account.status = PaymentAccount.STATUS_PENDING
        account.verification_error = ""
        update_fields += ["status", "verification_error"]

    with transaction.atomic():
        account.save(update_fields=update_fields)
        if credentials_changed:
            schedule_verification(account)
    return account


def deactivate_payment_account(account: PaymentAccount) -> PaymentAccount:
    if account.is_active:
        account.is_active = False
        account.save(update_fields=["is_active", "updated_at"])
    return account


def verify_payment_account(account_id: int) -> PaymentAccount:
    """
    Check the stored credentials against the provider and record the outcome.

    A definitive rejection marks the account INVALID. Transport failures leave
    it PENDING and re-raise ``GatewayError`` so the caller can retry.
    """
    account = PaymentAccount.objects.get(pk=account_id)
    gateway = get_gateway(account.provider)
    try:
        check = gateway.verify_credentials(
            decrypt_string(account.merchant_id),
            decrypt_string(account.secret_key),
        )
    except GatewayError as exc:
        logger.warning("Verification of payment account %s failed: %s", account.id, exc)
        account.verification_error = str(exc)[:500]
        account.save(update_fields=["verification_error", "updated_at"])
        raise

    if check.valid:
        account.status = PaymentAccount.STATUS_ACTIVE
        account.last_verified_at = timezone.now()
        account.verification_error = ""
        logger.info("Payment account %s verified", account.id)
    else:
        account.status = PaymentAccount.STATUS_INVALID
        account.verification_error = check.error[:500]
        logger.warning(
            "Payment account %s rejected by %s: %s (%s)",
            account.id,
            account.provider,
            check.error,
            check.error_code,
        )
    account.save(
        update_fields=["status", "last_verified_at", "verification_error", "updated_at"]
    )
    return account
