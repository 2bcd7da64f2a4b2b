import pytest
from decimal import Decimal
from unittest.mock import Mock, patch
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from apps.integrations.slack import SlackClient, SlackMember
from apps.tabs.models import Account


def member(slack_id, email='', *, deleted=False, is_bot=False, picture_url=''):
    """Build a directory member for tests."""
    return SlackMember(
        id=slack_id,
        name=f'Member {slack_id}',
        username=slack_id.lower(),
        email=email,
        picture_url=picture_url,
        is_bot=is_bot,
        deleted=deleted,
    )


def make_account(slack_id, *, is_employee=True, picture_url='', total_purchased='0.00', name=None):
    return Account.objects.create(
        slack_id=slack_id,
        name=name or f'Member {slack_id}',
        username=slack_id.lower(),
        is_employee=is_employee,
        picture_url=picture_url,
        total_purchased=Decimal(total_purchased),
    )


@pytest.fixture
def directory():
    """
    A fake Slack client; tests set ``directory.members``.

    ``list_members`` always returns the current list.
    """
    client = Mock(spec=SlackClient)
    client.members = []
    client.list_members.side_effect = lambda: list(client.members)
    return client


@pytest.fixture
def patched_directory(directory):
    """Make ``reconcile()`` build the fake client instead of a real one."""
    with patch('apps.roster.services.reconciliation.SlackClient', return_value=directory):
        yield directory


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
