"""
SumUp webhook processing.

SumUp notifies us that a checkout changed status; the notification body is
never trusted. The checkout is re-fetched from SumUp and only a ``PAID``
checkout reaches the ledger, keyed by its checkout reference so redelivery
is harmless.
"""

import logging
from typing import Optional
from uuid import UUID

from apps.integrations.conf import get_integration_settings
from apps.integrations.sumup import SumUpClient
from apps.tabs.models import Account
from apps.tabs.services import (
    AccountNotFoundError,
    DuplicateTransactionError,
    record_payment,
)

from .checkout import get_sumup_client
from .exceptions import CheckoutAccountMismatchError, PaymentAccountNotFoundError

logger = logging.getLogger(__name__)


class WebhookOutcome:
    IGNORED = 'ignored'
    DUPLICATE = 'duplicate'
    RECORDED = 'recorded'


def process_checkout_event(
    *,
    checkout_id: str,
    account_id: UUID,
    client: Optional[SumUpClient] = None
) -> str:
    """
    Verify a checkout with SumUp and record it if paid.

    Args:
        checkout_id: SumUp checkout id from the notification
        account_id: Account the checkout was created for (return URL)
        client: SumUp client; built from settings when omitted

    Returns:
        One of WebhookOutcome

    Raises:
        UpstreamServiceError: If SumUp cannot be queried
        PaymentAccountNotFoundError: If the account does not exist
        CheckoutAccountMismatchError: If the checkout was created for another account
    """
    client = client or get_sumup_client()
    checkout = client.get_checkout(checkout_id)

    if not checkout.is_paid:
        logger.info('Checkout %s is %s; nothing to record', checkout_id, checkout.status)
        return WebhookOutcome.IGNORED

    if checkout.account_id is not None and not _same_account(checkout.account_id, account_id):
        logger.warning('Checkout %s belongs to account %s, notification named %s',
                       checkout_id, checkout.account_id, account_id)
        raise CheckoutAccountMismatchError(
            f"Checkout {checkout_id} was not created for account {account_id}"
        )

    if not Account.objects.filter(id=account_id).exists():
        raise PaymentAccountNotFoundError(f"Account with ID {account_id} not found")

    expected_currency = get_integration_settings().checkout_currency
    if checkout.currency and checkout.currency != expected_currency:
        logger.warning('Checkout %s paid in %s, expected %s',
                       checkout_id, checkout.currency, expected_currency)

    try:
        record_payment(
            account_id=account_id,
            amount=checkout.amount,
            transaction_id=checkout.checkout_reference,
        )
    except DuplicateTransactionError:
        logger.info('Checkout %s (reference %s) already recorded',
                    checkout_id, checkout.checkout_reference)
        return WebhookOutcome.DUPLICATE
    except AccountNotFoundError:
        # Removed between the existence check and the ledger lock
        raise PaymentAccountNotFoundError(f"Account with ID {account_id} not found")

    return WebhookOutcome.RECORDED


def _same_account(checkout_account_id: str, account_id) -> bool:
    try:
        return UUID(checkout_account_id) == UUID(str(account_id))
    except ValueError:
        return False
