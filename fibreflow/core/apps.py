from django.apps import AppConfig


class CoreConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'fibreflow.core'
    label = 'core'

    def ready(self):
        """Import signals and checks when app is ready"""
        import fibreflow.core.cache_signals  # noqa: F401  # Cache invalidation signals
        import fibreflow.core.checks  # noqa: F401
