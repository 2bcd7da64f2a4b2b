import pytest
from decimal import Decimal
from unittest.mock import Mock, patch
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from apps.integrations.slack import SlackClient
from apps.integrations.sumup import Checkout, CheckoutDetails, SumUpClient
from apps.tabs.models import Account


def paid_checkout(reference='ref-1', amount='60.00', status='PAID', account_id=None):
    return_url = f'https://bartab.test/api/payments/webhooks/sumup/?accountId={account_id}' if account_id else ''
    return CheckoutDetails(
        checkout_id='chk_1',
        status=status,
        amount=Decimal(amount),
        currency='EUR',
        checkout_reference=reference,
        return_url=return_url,
    )


@pytest.fixture
def api_client():
    """Return an unauthenticated API client."""
    return APIClient()


@pytest.fixture
def authenticated_client(api_client, db):
    """Return API client authenticated as a dashboard operator."""
    operator = get_user_model().objects.create_user(username='ops', password='TestPass123!')
    refresh = RefreshToken.for_user(operator)
    api_client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
    return api_client


@pytest.fixture
def bot_client(api_client):
    """Return API client carrying the balance API key."""
    api_client.credentials(HTTP_AUTHORIZATION='Bearer test-balance-key')
    return api_client


@pytest.fixture
def debtor(db):
    """Purchased 100, paid 40."""
    return Account.objects.create(
        slack_id='U100',
        name='Dana Debtor',
        username='dana',
        total_purchased=Decimal('100.00'),
        total_paid=Decimal('40.00'),
    )


@pytest.fixture
def creditor(db):
    """Purchased 40, paid 100."""
    return Account.objects.create(
        slack_id='U200',
        name='Carl Creditor',
        username='carl',
        total_purchased=Decimal('40.00'),
        total_paid=Decimal('100.00'),
    )


@pytest.fixture
def sumup():
    """A mocked SumUp client that every service builds instead of a real one."""
    client = Mock(spec=SumUpClient)
    client.create_checkout.return_value = Checkout(
        checkout_id='chk_1',
        checkout_url='https://pay.sumup.com/chk_1',
        reference='ref-1',
    )
    client.get_checkout.return_value = paid_checkout()
    with patch('apps.payments.services.checkout.SumUpClient', return_value=client):
        yield client


@pytest.fixture
def slack():
    client = Mock(spec=SlackClient)
    client.post_message.return_value = {'ok': True}
    with patch('apps.payments.services.payment_links.SlackClient', return_value=client):
        yield client
