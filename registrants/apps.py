from django.apps import AppConfig


class RegistrantsConfig(AppConfig):
    """Configuration for the registrants app."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "registrants"
