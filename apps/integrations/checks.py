"""System checks run by ``manage.py check``, ``migrate`` and ``runserver``."""

from django.core.checks import Error, register

from .conf import IntegrationSettings


@register()
def check_integration_settings(app_configs, **kwargs):
    """Fail startup when a required integration setting is blank."""
    missing = IntegrationSettings.from_django_settings().missing()
    return [
        Error(
            f'{name.upper()} is not configured.',
            hint=f'Set the {name.upper()} environment variable.',
            id='bartab.E001',
        )
        for name in missing
    ]
