from django.apps import AppConfig


class ScoresConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "scores"
    verbose_name = "Resultat"

    def ready(self):
        from . import signals  # noqa: F401
