from types import SimpleNamespace

import pytest

from core.encryption import decrypt_string, encrypt_string
from orgs.models import Club, Organization
from payments.gateways import CredentialCheck, GatewayError
from payments.models import PaymentAccount, PaymentProvider
from payments.services.accounts import (
    PaymentAccountError,
    create_payment_account,
    deactivate_payment_account,
    get_payment_account_status,
    mask_credential,
    resolve_payment_account_for_booking,
    update_payment_account_credentials,
    verify_payment_account,
)
from payments.tasks import verify_payment_account_task


@pytest.fixture
def organization(db):
    return Organization.objects.create(name="Kyiv Padel", slug="kyiv-padel")


@pytest.fixture
def club(organization):
    return Club.objects.create(organization=organization, name="Central", slug="central")


@pytest.fixture
def scheduled(monkeypatch):
    queued = []
    monkeypatch.setattr(
        "payments.tasks.verify_payment_account_task",
        SimpleNamespace(delay=queued.append),
    )
    return queued


def _account(*, merchant_id, status=PaymentAccount.STATUS_ACTIVE, **kwargs):
    return PaymentAccount.objects.create(
        provider=PaymentProvider.WAYFORPAY,
        merchant_id=encrypt_string(merchant_id),
        secret_key=encrypt_string(f"{merchant_id}-secret"),
        status=status,
        **kwargs,
    )


def _club_account(club, merchant_id="club_merch", **kwargs):
    return _account(scope=PaymentAccount.SCOPE_CLUB, club=club, merchant_id=merchant_id, **kwargs)


def _org_account(organization, merchant_id="org_merch", **kwargs):
    return _account(
        scope=PaymentAccount.SCOPE_ORGANIZATION,
        organization=organization,
        merchant_id=merchant_id,
        **kwargs,
    )


def test_club_account_takes_precedence(club, organization):
    _org_account(organization)
    account = _club_account(club)

    resolved = resolve_payment_account_for_booking(club.id, PaymentProvider.WAYFORPAY)

    assert resolved.id == account.id
    assert resolved.scope == PaymentAccount.SCOPE_CLUB
    assert resolved.merchant_id == "club_merch"
    assert resolved.secret_key == "club_merch-secret"


def test_organization_account_is_the_fallback(club, organization):
    account = _org_account(organization)

    resolved = resolve_payment_account_for_booking(club.id)

    assert resolved.id == account.id
    assert resolved.scope == PaymentAccount.SCOPE_ORGANIZATION


@pytest.mark.parametrize(
    "overrides",
    [
        {"status": PaymentAccount.STATUS_PENDING},
        {"status": PaymentAccount.STATUS_INVALID},
        {"is_active": False},
    ],
)
def test_unusable_club_account_falls_through_to_organization(club, organization, overrides):
    _club_account(club, **overrides)
    account = _org_account(organization)

    assert resolve_payment_account_for_booking(club.id).id == account.id


def test_nothing_configured_resolves_to_none(club, organization):
    _org_account(organization, status=PaymentAccount.STATUS_INVALID)

    assert resolve_payment_account_for_booking(club.id) is None
    assert resolve_payment_account_for_booking(999999) is None


def test_status_without_account(club):
    assert get_payment_account_status(club.id) == {
        "isConfigured": False,
        "isAvailable": False,
        "provider": None,
        "scope": None,
        "status": None,
        "displayName": None,
    }


def test_status_reports_pending_account_as_unavailable(club, organization):
    _org_account(organization, status=PaymentAccount.STATUS_PENDING, display_name="Main")

    payload = get_payment_account_status(club.id)

    assert payload == {
        "isConfigured": True,
        "isAvailable": False,
        "provider": "WAYFORPAY",
        "scope": "ORGANIZATION",
        "status": "PENDING",
        "displayName": "Main",
    }


def test_status_ignores_deactivated_accounts(club):
    _club_account(club, is_active=False)

    assert get_payment_account_status(club.id)["isConfigured"] is False


def test_create_account_encrypts_and_schedules_verification(
    club, scheduled, django_capture_on_commit_callbacks
):
    with django_capture_on_commit_callbacks(execute=True):
        account = create_payment_account(
            scope=PaymentAccount.SCOPE_CLUB,
            club=club,
            merchant_id="club_merch",
            secret_key="top-secret",
            provider_config={"terminal": "T1"},
        )

    account.refresh_from_db()
    assert account.status == PaymentAccount.STATUS_PENDING
    assert account.secret_key != "top-secret"
    assert decrypt_string(account.secret_key) == "top-secret"
    assert scheduled == [account.id]


def test_duplicate_account_for_same_owner_is_rejected(club, scheduled):
    _club_account(club)

    with pytest.raises(PaymentAccountError):
        create_payment_account(
            scope=PaymentAccount.SCOPE_CLUB,
            club=club,
            merchant_id="another",
            secret_key="secret",
        )


@pytest.mark.parametrize(
    ("scope", "owner", "merchant_id", "provider"),
    [
        (PaymentAccount.SCOPE_CLUB, "organization", "m", PaymentProvider.WAYFORPAY),
        (PaymentAccount.SCOPE_ORGANIZATION, "both", "m", PaymentProvider.WAYFORPAY),
        ("REGION", "club", "m", PaymentProvider.WAYFORPAY),
        (PaymentAccount.SCOPE_CLUB, "club", "", PaymentProvider.WAYFORPAY),
        (PaymentAccount.SCOPE_CLUB, "club", "m", "STRIPE"),
    ],
)
def test_create_account_validates_input(
    club, organization, scheduled, scope, owner, merchant_id, provider
):
    owners = {
        "club": {"club": club},
        "organization": {"organization": organization},
        "both": {"club": club, "organization": organization},
    }

    with pytest.raises(PaymentAccountError):
        create_payment_account(
            scope=scope,
            merchant_id=merchant_id,
            secret_key="s",
            provider=provider,
            **owners[owner],
        )

    assert not PaymentAccount.objects.exists()


def test_changing_credentials_resets_status_and_reverifies(
    club, scheduled, django_capture_on_commit_callbacks
):
    account = _club_account(club, verification_error="old")

    with django_capture_on_commit_callbacks(execute=True):
        update_payment_account_credentials(account, secret_key="rotated")

    account.refresh_from_db()
    assert account.status == PaymentAccount.STATUS_PENDING
    assert account.verification_error == ""
    assert decrypt_string(account.secret_key) == "rotated"
    assert scheduled == [account.id]


def test_renaming_account_keeps_status(club, scheduled, django_capture_on_commit_callbacks):
    account = _club_account(club)

    with django_capture_on_commit_callbacks(execute=True):
        update_payment_account_credentials(account, display_name="Front desk")

    account.refresh_from_db()
    assert account.status == PaymentAccount.STATUS_ACTIVE
    assert account.display_name == "Front desk"
    assert scheduled == []


def test_deactivate_account(club):
    account = _club_account(club)

    deactivate_payment_account(account)

    account.refresh_from_db()
    assert account.is_active is False
    assert resolve_payment_account_for_booking(club.id) is None


def _fake_gateway(monkeypatch, verify):
    gateway = SimpleNamespace(verify_credentials=verify)
    monkeypatch.setattr("payments.services.accounts.get_gateway", lambda provider: gateway)
    return gateway


def test_verification_activates_account(club, monkeypatch):
    account = _club_account(club, status=PaymentAccount.STATUS_PENDING)
    seen = []

    def verify(merchant_id, secret_key):
        seen.append((merchant_id, secret_key))
        return CredentialCheck(True)

    _fake_gateway(monkeypatch, verify)

    verify_payment_account(account.id)

    account.refresh_from_db()
    assert seen == [("club_merch", "club_merch-secret")]
    assert account.status == PaymentAccount.STATUS_ACTIVE
    assert account.last_verified_at is not None


def test_rejected_credentials_mark_account_invalid(club, monkeypatch):
    account = _club_account(club, status=PaymentAccount.STATUS_PENDING)
    _fake_gateway(
        monkeypatch,
        lambda merchant_id, secret_key: CredentialCheck(
            False, "Invalid merchant credentials or secret key", "INVALID_CREDENTIALS"
        ),
    )

    verify_payment_account(account.id)

    account.refresh_from_db()
    assert account.status == PaymentAccount.STATUS_INVALID
    assert account.verification_error == "Invalid merchant credentials or secret key"


def test_unreachable_gateway_leaves_account_pending(club, monkeypatch):
    account = _club_account(club, status=PaymentAccount.STATUS_PENDING)

    def verify(merchant_id, secret_key):
        raise GatewayError("Payment gateway timed out.")

    _fake_gateway(monkeypatch, verify)

    with pytest.raises(GatewayError):
        verify_payment_account(account.id)

    account.refresh_from_db()
    assert account.status == PaymentAccount.STATUS_PENDING
    assert account.verification_error == "Payment gateway timed out."


def test_verification_task_returns_new_status(club, monkeypatch):
    account = _club_account(club, status=PaymentAccount.STATUS_PENDING)
    _fake_gateway(monkeypatch, lambda merchant_id, secret_key: CredentialCheck(True))

    assert verify_payment_account_task(account.id) == PaymentAccount.STATUS_ACTIVE


def test_verification_task_skips_deleted_accounts(db):
    assert verify_payment_account_task(999999) == "missing"


def test_mask_credential():
    assert mask_credential("test_merch_n1") == "*********h_n1"
    assert mask_credential("abc") == "***"
    assert mask_credential("") == ""
