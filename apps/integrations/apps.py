from django.apps import AppConfig


class IntegrationsConfig(AppConfig):
    name = 'apps.integrations'
    verbose_name = 'Integrations'

    def ready(self):
        from . import checks  # noqa: F401  registers system checks
