"""
Checkout creation for accounts.
"""

from decimal import Decimal
from typing import Optional

from apps.integrations.conf import get_integration_settings
from apps.integrations.sumup import Checkout, SumUpClient
from apps.tabs.models import Account

SUMUP_SETTINGS = ('sumup_api_key', 'sumup_merchant_code', 'sumup_webhook_url')


def get_sumup_client() -> SumUpClient:
    return SumUpClient(get_integration_settings(require=SUMUP_SETTINGS))


def create_account_checkout(
    *,
    account: Account,
    amount: Decimal,
    client: Optional[SumUpClient] = None
) -> Checkout:
    """
    Create a hosted checkout that settles ``amount`` on ``account``.

    The account id travels in the return URL; the generated checkout
    reference becomes the ledger transaction id once the checkout is paid.
    """
    client = client or get_sumup_client()
    return client.create_checkout(
        amount=amount,
        account_id=account.id,
        description=f'Bar tab payment for {account.name}',
    )
