"""
SumUp Checkouts API client.

Hosted checkouts are created with a caller-chosen ``checkout_reference``,
which becomes the ledger transaction id once the checkout is paid.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Optional
from urllib.parse import parse_qs, urlencode, urlparse
from uuid import uuid4

from .conf import IntegrationSettings
from .exceptions import UpstreamServiceError
from .http import build_session, send_with_retry

logger = logging.getLogger(__name__)

SERVICE = 'sumup'


class CheckoutStatus:
    PENDING = 'PENDING'
    PAID = 'PAID'
    FAILED = 'FAILED'
    EXPIRED = 'EXPIRED'


@dataclass(frozen=True)
class Checkout:
    """A freshly created hosted checkout."""

    checkout_id: str
    checkout_url: str
    reference: str


@dataclass(frozen=True)
class CheckoutDetails:
    """Checkout state as reported by SumUp."""

    checkout_id: str
    status: str
    amount: Decimal
    currency: str
    checkout_reference: str
    return_url: str = ''

    @property
    def is_paid(self) -> bool:
        return self.status == CheckoutStatus.PAID

    @property
    def account_id(self) -> Optional[str]:
        """The ``accountId`` the checkout was created for, from its return URL."""
        values = parse_qs(urlparse(self.return_url).query).get('accountId')
        return values[0] if values else None


class SumUpClient:
    """Create and read SumUp hosted checkouts."""

    def __init__(self, conf: IntegrationSettings, session=None):
        self.conf = conf
        self.session = session or build_session()

    @property
    def _headers(self):
        return {'Authorization': f'Bearer {self.conf.sumup_api_key}'}

    def return_url_for(self, account_id) -> str:
        return f'{self.conf.sumup_webhook_url}?{urlencode({"accountId": str(account_id)})}'

    def create_checkout(
        self,
        *,
        amount: Decimal,
        account_id,
        description: str,
        reference: Optional[str] = None
    ) -> Checkout:
        """
        Create a hosted checkout for ``amount`` in the configured currency.

        The return URL points back at the webhook with the account id, so the
        payment can be attributed when SumUp calls it.

        Only connection-level failures are retried: a 5xx after the request
        reached SumUp may already have created the checkout.

        Raises:
            UpstreamServiceError: If SumUp rejects the request or is unreachable.
        """
        reference = reference or str(uuid4())
        payload = {
            'checkout_reference': reference,
            'amount': float(amount),
            'currency': self.conf.checkout_currency,
            'merchant_code': self.conf.sumup_merchant_code,
            'description': description,
            'return_url': self.return_url_for(account_id),
            'hosted_checkout': {'enabled': True},
        }
        response = send_with_retry(
            self.session,
            'POST',
            f'{self.conf.sumup_api_url}/checkouts',
            service=SERVICE,
            timeout=self.conf.timeout_seconds,
            attempts=self.conf.max_retries + 1,
            retry_on_status=False,
            headers=self._headers,
            json=payload,
        )
        body = _json(response)
        checkout_url = body.get('hosted_checkout_url')
        if not body.get('id') or not checkout_url:
            raise UpstreamServiceError(
                'SumUp checkout response is missing id or hosted_checkout_url',
                service=SERVICE,
            )
        logger.info('Created SumUp checkout %s (reference %s) for account %s',
                    body['id'], reference, account_id)
        return Checkout(checkout_id=body['id'], checkout_url=checkout_url, reference=reference)

    def get_checkout(self, checkout_id: str) -> CheckoutDetails:
        """Retrieve a checkout by its SumUp id."""
        response = send_with_retry(
            self.session,
            'GET',
            f'{self.conf.sumup_api_url}/checkouts/{checkout_id}',
            service=SERVICE,
            timeout=self.conf.timeout_seconds,
            attempts=self.conf.max_retries + 1,
            headers=self._headers,
        )
        body = _json(response)
        try:
            return CheckoutDetails(
                checkout_id=body.get('id', checkout_id),
                status=body['status'],
                amount=Decimal(str(body['amount'])).quantize(Decimal('0.01')),
                currency=body.get('currency', ''),
                checkout_reference=body['checkout_reference'],
                return_url=body.get('return_url') or '',
            )
        except (KeyError, InvalidOperation) as exc:
            raise UpstreamServiceError(
                f'SumUp checkout {checkout_id} response is malformed: {exc}',
                service=SERVICE,
            ) from exc


def _json(response) -> dict:
    try:
        body = response.json()
    except ValueError as exc:
        raise UpstreamServiceError('SumUp returned a non-JSON body', service=SERVICE) from exc
    if not isinstance(body, dict):
        raise UpstreamServiceError('SumUp returned an unexpected body', service=SERVICE)
    return body
