"""
Payment links: balance lookups for the Slack bot and DMs with checkout links.
"""

import logging
from decimal import Decimal
from typing import Optional
from uuid import UUID

from apps.integrations.conf import get_integration_settings
from apps.integrations.slack import SlackClient
from apps.integrations.sumup import Checkout, SumUpClient
from apps.tabs.models import Account
from apps.tabs.services import AccountNotFoundError, get_account_by_slack_id

from .checkout import create_account_checkout
from .exceptions import PaymentAccountNotFoundError, UnknownMemberError

logger = logging.getLogger(__name__)


def lookup_balance(*, slack_user_id: str, client: Optional[SumUpClient] = None) -> dict:
    """
    Balance of a Slack member, with a payment link when they owe money.

    Creating the checkout is the only side effect; nothing is stored
    locally until the checkout is paid and the webhook records it.

    Returns:
        ``{'balance': Decimal}`` or ``{'balance': Decimal, 'paymentLink': str}``

    Raises:
        UnknownMemberError: If no account has this Slack id
        UpstreamServiceError: If the checkout cannot be created
    """
    try:
        account = get_account_by_slack_id(slack_id=slack_user_id)
    except AccountNotFoundError as e:
        raise UnknownMemberError(str(e))

    balance = account.balance
    if balance >= 0:
        return {'balance': balance}

    checkout = create_account_checkout(account=account, amount=abs(balance), client=client)
    logger.info('Issued payment link for %s (balance %s)', slack_user_id, balance)
    return {'balance': balance, 'paymentLink': checkout.checkout_url}


def format_payment_message(*, amount: Decimal, checkout_url: str, currency: str) -> str:
    return (
        ':money_with_wings: Time to settle your bar tab!\n'
        f'You owe {amount:.2f} {currency}.\n'
        f'You can pay using <{checkout_url}|this link>.'
    )


def send_payment_link(
    *,
    account_id: UUID,
    amount: Decimal,
    sumup: Optional[SumUpClient] = None,
    slack: Optional[SlackClient] = None
) -> Checkout:
    """
    Create a checkout for ``amount`` and DM its link to the account's member.

    Raises:
        PaymentAccountNotFoundError: If the account doesn't exist
        UpstreamServiceError: If SumUp or Slack fails
    """
    try:
        account = Account.objects.get(id=account_id)
    except Account.DoesNotExist:
        raise PaymentAccountNotFoundError(f"Account with ID {account_id} not found")

    slack = slack or SlackClient(get_integration_settings(require=['slack_bot_token']))
    checkout = create_account_checkout(account=account, amount=amount, client=sumup)

    slack.post_message(
        account.slack_id,
        format_payment_message(
            amount=amount,
            checkout_url=checkout.checkout_url,
            currency=get_integration_settings().checkout_currency,
        ),
    )
    logger.info('Sent payment link %s for %s to %s', checkout.checkout_id, amount, account.slack_id)
    return checkout
