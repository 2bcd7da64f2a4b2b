import hmac

from django.contrib.auth.models import AnonymousUser
from rest_framework import authentication, exceptions, permissions

from apps.integrations.conf import get_integration_settings


class BalanceApiKeyAuthentication(authentication.BaseAuthentication):
    """
    Static bearer secret shared with the Slack bot.

    Authorization: Bearer <BALANCE_API_KEY>
    """

    keyword = 'Bearer'

    def authenticate(self, request):
        header = authentication.get_authorization_header(request).decode('latin-1')
        if not header:
            return None

        keyword, _, token = header.partition(' ')
        expected = get_integration_settings(require=['balance_api_key']).balance_api_key
        if keyword != self.keyword or not hmac.compare_digest(token.strip().encode(), expected.encode()):
            raise exceptions.AuthenticationFailed('Invalid API key')

        return (AnonymousUser(), 'balance-api-key')

    def authenticate_header(self, request):
        return self.keyword


class HasBalanceApiKey(permissions.BasePermission):
    """
    Permission: Request must carry the balance API key.
    """

    def has_permission(self, request, view):
        return isinstance(request.successful_authenticator, BalanceApiKeyAuthentication)
