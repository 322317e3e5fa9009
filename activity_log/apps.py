from django.apps import AppConfig


class ActivityLogConfig(AppConfig):
    """Configuration for the activity log app."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "activity_log"
    verbose_name = "Activity log"
