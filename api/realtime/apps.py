from django.apps import AppConfig


class RealtimeConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'realtime'
    verbose_name = 'Realtime change feed'

    def ready(self):  # type: ignore[override]
        from . import signals

        signals.connect()
