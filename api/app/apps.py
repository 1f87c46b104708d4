import logging

from django.apps import AppConfig

logger = logging.getLogger(__name__)


class AppUtilitiesConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'app'
    verbose_name = 'Grantflow core'

    def ready(self):  # type: ignore[override]
        from .common import keys

        try:
            keys.ready()
        except (OSError, ValueError) as exc:
            # Copy falls back to raw keys; never block startup over it
            logger.warning('copy keys failed to load: %s', exc)
