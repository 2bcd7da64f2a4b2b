import pytest
from unittest.mock import Mock

import requests

from apps.integrations.conf import get_integration_settings


def make_response(status_code=200, json_body=None, text=''):
    """Build a stand-in for ``requests.Response``."""
    response = Mock(spec=requests.Response)
    response.status_code = status_code
    response.text = text
    if json_body is None:
        response.json.side_effect = ValueError('No JSON object could be decoded')
    else:
        response.json.return_value = json_body
    return response


@pytest.fixture
def conf():
    """Integration settings from the test settings block."""
    return get_integration_settings()


@pytest.fixture
def session():
    """A mocked ``requests.Session``; set ``request.side_effect`` per test."""
    return Mock(spec=requests.Session)


@pytest.fixture
def no_sleep(monkeypatch):
    """Skip backoff delays."""
    monkeypatch.setattr('apps.integrations.http.time.sleep', lambda seconds: None)
