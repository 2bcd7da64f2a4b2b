"""
Typed configuration for the third-party integrations.

Settings are read from ``django.conf.settings`` once and cached as an
immutable ``IntegrationSettings`` instance. The cache is dropped whenever
Django reports a settings change (``override_settings`` in tests).

Usage:
    from apps.integrations.conf import get_integration_settings

    conf = get_integration_settings(require=['sumup_api_key', 'sumup_merchant_code'])
    client = SumUpClient(conf)
"""

from dataclasses import dataclass, fields
from functools import lru_cache
from typing import Iterable, Optional, Tuple

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.core.signals import setting_changed
from django.dispatch import receiver


# Settings without which the service cannot do its job
REQUIRED_SETTINGS = (
    'slack_bot_token',
    'sumup_api_key',
    'sumup_merchant_code',
    'sumup_webhook_url',
    'balance_api_key',
)


@dataclass(frozen=True)
class IntegrationSettings:
    """Snapshot of integration settings."""

    slack_bot_token: str
    slack_api_url: str
    sumup_api_key: str
    sumup_merchant_code: str
    sumup_api_url: str
    sumup_webhook_url: str
    checkout_currency: str
    balance_api_key: str
    organization_name: str
    employee_email_domains: Tuple[str, ...]
    roster_employees_only: bool
    roster_batch_size: int
    timeout_seconds: float
    max_retries: int

    @classmethod
    def from_django_settings(cls) -> 'IntegrationSettings':
        return cls(
            slack_bot_token=settings.SLACK_BOT_TOKEN,
            slack_api_url=settings.SLACK_API_URL.rstrip('/'),
            sumup_api_key=settings.SUMUP_API_KEY,
            sumup_merchant_code=settings.SUMUP_MERCHANT_CODE,
            sumup_api_url=settings.SUMUP_API_URL.rstrip('/'),
            sumup_webhook_url=settings.SUMUP_WEBHOOK_URL,
            checkout_currency=settings.CHECKOUT_CURRENCY,
            balance_api_key=settings.BALANCE_API_KEY,
            organization_name=settings.ORGANIZATION_NAME,
            employee_email_domains=tuple(
                domain.strip().lower()
                for domain in settings.EMPLOYEE_EMAIL_DOMAINS
                if domain.strip()
            ),
            roster_employees_only=settings.ROSTER_EMPLOYEES_ONLY,
            roster_batch_size=settings.ROSTER_BATCH_SIZE,
            timeout_seconds=settings.UPSTREAM_TIMEOUT_SECONDS,
            max_retries=settings.UPSTREAM_MAX_RETRIES,
        )

    def missing(self, names: Optional[Iterable[str]] = None) -> list:
        """Return the names of required settings that are blank."""
        names = REQUIRED_SETTINGS if names is None else names
        return [name for name in names if not getattr(self, name)]

    def require(self, names: Iterable[str]) -> 'IntegrationSettings':
        missing = self.missing(names)
        if missing:
            raise ImproperlyConfigured(
                'Missing integration settings: ' + ', '.join(name.upper() for name in missing)
            )
        return self


@lru_cache(maxsize=1)
def _load() -> IntegrationSettings:
    return IntegrationSettings.from_django_settings()


def get_integration_settings(require: Optional[Iterable[str]] = None) -> IntegrationSettings:
    """
    Return the cached integration settings.

    Args:
        require: Field names that must be non-blank for the caller.

    Raises:
        ImproperlyConfigured: If a required field is blank.
    """
    conf = _load()
    if require:
        conf.require(require)
    return conf


_SETTING_NAMES = {field.name.upper() for field in fields(IntegrationSettings)} | {
    'UPSTREAM_TIMEOUT_SECONDS',
    'UPSTREAM_MAX_RETRIES',
}


@receiver(setting_changed)
def _reset_integration_settings(*, setting, **kwargs):
    if setting in _SETTING_NAMES:
        _load.cache_clear()
