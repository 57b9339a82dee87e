from django.apps import AppConfig


class PingsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "pings"
    verbose_name = "Pings"

    def ready(self):
        from . import checks  # noqa: F401  registers system checks
