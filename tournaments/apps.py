from django.apps import AppConfig


class TournamentsConfig(AppConfig):
    """Configuration for the tournaments app."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "tournaments"
