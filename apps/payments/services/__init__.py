"""
Payments app services layer.
"""

from .exceptions import (
    PaymentsServiceError,
    UnknownMemberError,
    PaymentAccountNotFoundError,
    CheckoutAccountMismatchError,
)

from .checkout import (
    create_account_checkout,
    get_sumup_client,
)

from .webhook import (
    WebhookOutcome,
    process_checkout_event,
)

from .payment_links import (
    lookup_balance,
    send_payment_link,
)


__all__ = [
    # Exceptions
    'PaymentsServiceError',
    'UnknownMemberError',
    'PaymentAccountNotFoundError',
    'CheckoutAccountMismatchError',

    # Checkout
    'create_account_checkout',
    'get_sumup_client',

    # Webhook
    'WebhookOutcome',
    'process_checkout_event',

    # Payment links
    'lookup_balance',
    'send_payment_link',
]
