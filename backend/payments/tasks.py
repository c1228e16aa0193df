import logging

from celery import shared_task

from .gateways import GatewayError
from .models import PaymentAccount
from .services.accounts import verify_payment_account

logger = logging.getLogger(__name__)


@shared_task(
    name="payments.verify_payment_account",
    autoretry_for=(GatewayError,),
    retry_backoff=True,
    max_retries=3,
)
def verify_payment_account_task(account_id: int) -> str:
    try:
        account = verify_payment_account(account_id)
    except PaymentAccount.DoesNotExist:
        logger.warning("Payment account %s no longer exists; skipping verification.", account_id)
        return "missing"
    return account.status
