import pytest
from decimal import Decimal
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from apps.tabs.models import Account, Item


@pytest.fixture
def api_client():
    """Return an unauthenticated API client."""
    return APIClient()


@pytest.fixture
def operator(db):
    """Create and return a dashboard operator."""
    return get_user_model().objects.create_user(
        username='bartender',
        email='bartender@example.com',
        password='TestPass123!',
    )


@pytest.fixture
def authenticated_client(api_client, operator):
    """Return API client authenticated as the operator."""
    refresh = RefreshToken.for_user(operator)
    api_client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
    return api_client


@pytest.fixture
def account(db):
    """An employee with a clean tab."""
    return Account.objects.create(
        slack_id='U100',
        name='Ada Lovelace',
        username='ada',
        is_employee=True,
    )


@pytest.fixture
def indebted_account(db):
    """A non-employee who owes 7.50."""
    return Account.objects.create(
        slack_id='U200',
        name='Grace Hopper',
        username='grace',
        is_employee=False,
        total_purchased=Decimal('10.00'),
        total_paid=Decimal('2.50'),
    )


@pytest.fixture
def beer(db):
    return Item.objects.create(name='Beer', price=Decimal('3.50'))


@pytest.fixture
def retired_item(db):
    return Item.objects.create(name='Old Cider', price=Decimal('2.00'), is_available=False)
