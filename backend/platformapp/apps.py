from django.apps import AppConfig


class PlatformappConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "platformapp"

    def ready(self):
        from . import signals  # noqa
